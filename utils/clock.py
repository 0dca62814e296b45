"""Wall-clock helpers.

Timestamps are stored as naive UTC so SQLite, MySQL and Postgres compare
them the same way.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
