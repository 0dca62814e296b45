"""Outbound SMS delivery.

``TwilioSmsDispatcher`` talks to the Twilio Messages API;
``ConsoleSmsDispatcher`` only logs and keeps the last messages, for local
development and tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client

from utils.phone import mask_phone

logger = logging.getLogger(__name__)


@dataclass
class SmsResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class SmsDispatcher:
    def send(self, to: str, body: str) -> SmsResult:
        raise NotImplementedError


class TwilioSmsDispatcher(SmsDispatcher):
    """Send via Twilio. ``to`` must already be canonical E.164."""

    def __init__(self, *, account_sid: str, auth_token: str, from_number: str):
        self.account_sid = (account_sid or '').strip()
        self.auth_token = (auth_token or '').strip()
        self.from_number = (from_number or '').strip()
        self._client: Optional[Client] = None

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    def send(self, to: str, body: str) -> SmsResult:
        if not self.account_sid or not self.auth_token:
            return SmsResult(False, error='Twilio is not configured (TWILIO_ACCOUNT_SID/TWILIO_AUTH_TOKEN)')
        if not self.from_number:
            return SmsResult(False, error='TWILIO_PHONE_NUMBER is not configured')
        if not to:
            return SmsResult(False, error='Phone number is empty')

        try:
            message = self._get_client().messages.create(body=body, from_=self.from_number, to=to)
        except TwilioRestException as e:
            return SmsResult(False, error=f'Twilio HTTP {e.status} code={e.code}: {e.msg}')
        except TwilioException as e:
            return SmsResult(False, error=f'Twilio error: {e}')

        logger.info("SMS sent to %s sid=%s", mask_phone(to), message.sid)
        return SmsResult(True, message_id=message.sid)


class ConsoleSmsDispatcher(SmsDispatcher):
    def __init__(self, history_size: int = 50):
        self.history_size = history_size
        self.sent: list[tuple[str, str]] = []

    def send(self, to: str, body: str) -> SmsResult:
        self.sent.append((to, body))
        del self.sent[:-self.history_size]
        logger.warning("[console SMS] not delivered to %s (SMS_PROVIDER=console)", mask_phone(to))
        logger.debug("[console SMS] to=%s body=%s", to, body)
        return SmsResult(True, message_id=f'console-{len(self.sent)}')


def build_sms_dispatcher(config) -> SmsDispatcher:
    provider = (config.get('SMS_PROVIDER') or 'twilio').strip().lower()
    if provider == 'console':
        return ConsoleSmsDispatcher()
    if provider == 'twilio':
        return TwilioSmsDispatcher(
            account_sid=config.get('TWILIO_ACCOUNT_SID', ''),
            auth_token=config.get('TWILIO_AUTH_TOKEN', ''),
            from_number=config.get('TWILIO_PHONE_NUMBER', ''),
        )
    raise ValueError(f'Unknown SMS_PROVIDER: {provider!r}')
