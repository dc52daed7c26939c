"""Email dispatch using Resend.

`EmailDispatcher.send` never raises for provider errors; callers get a
`DispatchResult` and decide whether a failure matters to them.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import logfire
import resend

from planning.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


class NotificationDispatcher(Protocol):
    async def send(self, recipient: str, subject: str, body: str) -> DispatchResult: ...


class EmailDispatcher:
    """Sends plain-text emails through the Resend API."""

    def __init__(self, config: Settings | None = None):
        self.config = config or default_settings
        if self.config.resend_api_key:
            resend.api_key = self.config.resend_api_key

    async def send(self, recipient: str, subject: str, body: str) -> DispatchResult:
        if not recipient:
            return DispatchResult(success=False, error="No recipient address")

        if self.config.email_dry_run:
            logger.info(f"🔕 Dry run - skipping email to {recipient}: {subject}")
            return DispatchResult(success=True)

        if not self.config.resend_api_key:
            logger.warning(f"⚠️ Resend API key not set - cannot email {recipient}")
            return DispatchResult(success=False, error="Email provider not configured")

        params = {
            "from": self.config.email_from,
            "to": [recipient],
            "subject": subject,
            "text": body,
        }
        try:
            # The Resend SDK is blocking
            response = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            logger.error(f"❌ Failed to send email to {recipient}: {e}")
            logfire.error("email_send_error", recipient=recipient, subject=subject, error=str(e))
            return DispatchResult(success=False, error=str(e))

        message_id = response.get("id") if isinstance(response, dict) else None
        logger.info(f"📬 Email sent to {recipient}")
        logfire.info("email_sent", recipient=recipient, subject=subject, message_id=message_id)
        return DispatchResult(success=True, message_id=message_id)


async def send_with_timeout(
    dispatcher: NotificationDispatcher,
    recipient: str,
    subject: str,
    body: str,
    timeout: float,
) -> DispatchResult:
    """Bound a single dispatch so one slow provider call cannot stall a batch."""
    try:
        return await asyncio.wait_for(dispatcher.send(recipient, subject, body), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"⏱️ Email to {recipient} timed out after {timeout}s")
        return DispatchResult(success=False, error=f"Timed out after {timeout}s")
