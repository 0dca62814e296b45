"""Activity logging helpers.

Best-effort audit trail: failures should not break the main request. Call
only after the request's own unit of work has been committed, since a
failure here rolls the session back.
"""

from __future__ import annotations

from typing import Any, Optional

from flask import current_app, has_request_context, request

from extensions import db


def log_activity(
    *,
    customer_id: Optional[int],
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[Any] = None,
    details: Optional[dict[str, Any]] = None,
) -> bool:
    try:
        from models.activity_log import ActivityLog

        in_request = has_request_context()
        log = ActivityLog(
            customer_id=customer_id,
            action=action,
            entity_type=entity_type,
            entity_id=(str(entity_id) if entity_id is not None else None),
            details=details,
            ip_address=(request.remote_addr if in_request else None),
            user_agent=(request.user_agent.string[:255] if in_request and request.user_agent else None),
        )
        db.session.add(log)
        db.session.commit()
        return True
    except Exception:
        db.session.rollback()
        current_app.logger.warning("Activity log write failed for action=%s", action, exc_info=True)
        return False
