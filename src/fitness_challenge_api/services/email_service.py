"""
Email service.

Renders the challenge notification emails and sends them through the Resend
HTTP API. Transient failures (network errors, 429, 5xx) are retried with
exponential backoff; anything else fails immediately.
"""
import html
import logging
from typing import Optional, Tuple

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from fitness_challenge_api.config import Settings, settings as default_settings
from fitness_challenge_api.errors import NotificationDeliveryError
from fitness_challenge_api.models import NotificationEvent, NotificationKind

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_WAIT_SECONDS = 1
DEFAULT_MAX_WAIT_SECONDS = 10


def is_retryable_error(exception: BaseException) -> bool:
    """
    Retry on transport errors, rate limits (429) and server errors (5xx).
    Client errors (bad address, bad key) are not retried.
    """
    if isinstance(exception, httpx.TransportError):
        return True
    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        return status == 429 or status >= 500
    return False


def render_email(event: NotificationEvent, challenge_days: int = 45) -> Tuple[str, str]:
    """
    Build the subject and HTML body for an event.

    Returns:
        Tuple of (subject, html)
    """
    name = html.escape(event.user_name or "there")

    if event.kind == NotificationKind.RESET:
        subject = f"Your {challenge_days}-Day Challenge has been Reset"
        body = (
            f"Hi {name},<br><br>You missed a day, and your challenge progress has been reset "
            f"after {event.streak_value} days. The key to transformation is consistency. "
            "Don't be discouraged, start over strong today!"
        )
    elif event.kind == NotificationKind.MILESTONE:
        subject = f"🎉 You just completed Day {event.streak_value}!"
        body = (
            f"Hi {name},<br><br>Incredible work! You've just crushed Day {event.streak_value} "
            f"of the {challenge_days}-Day Challenge. Keep that fire going!"
        )
    else:
        subject = "Friendly reminder for your challenge!"
        body = (
            f"Hi {name},<br><br>Just a heads-up that you still need to complete your task "
            f"for Day {event.streak_value + 1}. Don't lose that streak!"
        )

    return subject, body


class EmailService:
    """Sends notification events as emails via Resend."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_wait_seconds: float = DEFAULT_MIN_WAIT_SECONDS,
        max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
    ):
        self.config = config or default_settings
        self._transport = transport
        self.max_attempts = max_attempts
        self.min_wait_seconds = min_wait_seconds
        self.max_wait_seconds = max_wait_seconds

    async def _post(self, payload: dict) -> None:
        async with httpx.AsyncClient(transport=self._transport, timeout=10) as client:
            response = await client.post(
                RESEND_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.config.RESEND_API_KEY}"},
            )
            response.raise_for_status()

    async def send(self, event: NotificationEvent) -> bool:
        """
        Send one event.

        Returns:
            True if sent, False if skipped (no address or no API key)

        Raises:
            NotificationDeliveryError: the provider rejected it or retries ran out
        """
        if not event.user_email:
            logger.warning(f"No email address for user {event.user_id}, skipping {event.kind.value} email")
            return False

        if not self.config.RESEND_API_KEY:
            logger.warning(f"RESEND_API_KEY not configured, skipping {event.kind.value} email to {event.user_id}")
            return False

        subject, body = render_email(event, self.config.CHALLENGE_DAYS)
        payload = {
            "from": self.config.EMAIL_FROM,
            "to": event.user_email,
            "subject": subject,
            "html": body,
        }

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(is_retryable_error),
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(
                    multiplier=1,
                    min=self.min_wait_seconds,
                    max=self.max_wait_seconds,
                ),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    await self._post(payload)
        except httpx.HTTPError as e:
            raise NotificationDeliveryError(
                f"Failed to send {event.kind.value} email to {event.user_id}: {e}"
            ) from e

        logger.info(f"Sent {event.kind.value} email to {event.user_id}")
        return True
