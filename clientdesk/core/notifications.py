"""
Notification gateway.

Services hand typed events to a ``NotificationGateway`` after their own
transaction has committed. Delivery is best-effort: the gateway logs channel
failures and never raises into the caller, and ``notify_safely`` guards
against gateway implementations that do.
"""

import logging
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select

from clientdesk.config import settings
from clientdesk.db.session import get_session_local
from clientdesk.models.enums import ALL_CHANNELS, NotificationChannel, NotificationType
from clientdesk.models.iam.users import User
from clientdesk.models.notifications import Notification, NotificationPreference

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_MESSAGE_LENGTH = 1000


class NotificationResult(BaseModel):
    success: bool
    delivered: list[str] = []
    failed: list[str] = []
    error: str | None = None


class EmailDeliveryError(Exception):
    pass


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class EmailSender(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver one message or raise ``EmailDeliveryError``."""
        ...


@runtime_checkable
class NotificationGateway(Protocol):
    async def notify(
        self,
        user_id: UUID,
        event_type: NotificationType,
        title: str,
        message: str,
        channels: Sequence[NotificationChannel] = ALL_CHANNELS,
        metadata: dict[str, Any] | None = None,
    ) -> NotificationResult: ...


# ---------------------------------------------------------------------------
# Default implementations
# ---------------------------------------------------------------------------


class LoggingEmailSender:
    """Email sender used when no transport is wired in: records the message in the log."""

    async def send(self, to: str, subject: str, body: str) -> None:
        if not settings.send_emails:
            logger.info(f"Email sending disabled, dropping '{subject}' for {to}")
            return
        logger.info(f"Email from {settings.email_from} to {to}: {subject}")


def should_send_via_channel(
    preference: NotificationPreference | None,
    event_type: NotificationType,
    channel: NotificationChannel,
) -> bool:
    """
    Without a stored preference every channel is enabled, except that
    system events only go in-app.
    """
    if preference is None:
        return event_type != NotificationType.SYSTEM or channel == NotificationChannel.IN_APP

    if channel == NotificationChannel.EMAIL:
        return preference.email_enabled
    if channel == NotificationChannel.PUSH:
        return preference.push_enabled
    return preference.in_app_enabled


class DatabaseNotificationGateway:
    """
    Stores in-app notifications, sends email through an ``EmailSender`` and
    logs push events (no push transport is configured).

    Uses its own session so a delivery failure can never touch the caller's
    transaction.
    """

    def __init__(self, session_factory=None, email_sender: EmailSender | None = None):
        self._session_factory = session_factory
        self.email_sender = email_sender or LoggingEmailSender()

    def _get_session_factory(self):
        return self._session_factory or get_session_local()

    async def notify(
        self,
        user_id: UUID,
        event_type: NotificationType,
        title: str,
        message: str,
        channels: Sequence[NotificationChannel] = ALL_CHANNELS,
        metadata: dict[str, Any] | None = None,
    ) -> NotificationResult:
        if not channels:
            return NotificationResult(success=False, error="At least one channel is required")
        if not title or len(title) > MAX_TITLE_LENGTH:
            return NotificationResult(success=False, error="Invalid notification title")
        if not message or len(message) > MAX_MESSAGE_LENGTH:
            return NotificationResult(success=False, error="Invalid notification message")

        event_type = NotificationType(event_type)
        delivered: list[str] = []
        failed: list[str] = []

        try:
            AsyncSessionLocal = self._get_session_factory()
            async with AsyncSessionLocal() as session:
                user = await session.get(User, user_id)
                if user is None:
                    return NotificationResult(success=False, error="User not found")

                pref_result = await session.execute(
                    select(NotificationPreference).where(
                        NotificationPreference.user_id == user_id,
                        NotificationPreference.type == event_type.value,
                    )
                )
                preference = pref_result.scalar_one_or_none()

                for channel in channels:
                    channel = NotificationChannel(channel)
                    if not should_send_via_channel(preference, event_type, channel):
                        continue
                    try:
                        if channel == NotificationChannel.IN_APP:
                            session.add(
                                Notification(
                                    user_id=user_id,
                                    type=event_type.value,
                                    title=title,
                                    message=message,
                                    extra=metadata,
                                    read=False,
                                )
                            )
                            await session.commit()
                        elif channel == NotificationChannel.EMAIL:
                            await self.email_sender.send(user.email, title, message)
                        else:
                            logger.info(
                                f"Push channel not configured, skipping {event_type.value} for user {user_id}"
                            )
                        delivered.append(channel.value)
                    except Exception as exc:
                        logger.error(
                            f"Notification channel {channel.value} failed for user {user_id}: {exc}",
                            exc_info=True,
                        )
                        if channel == NotificationChannel.IN_APP:
                            await session.rollback()
                        failed.append(channel.value)

            return NotificationResult(success=True, delivered=delivered, failed=failed)
        except Exception as exc:
            logger.error(f"Error processing notification for user {user_id}: {exc}", exc_info=True)
            return NotificationResult(
                success=False, delivered=delivered, failed=failed, error=str(exc)
            )


async def notify_safely(
    gateway: NotificationGateway | None,
    user_id: UUID | None,
    event_type: NotificationType,
    title: str,
    message: str,
    channels: Sequence[NotificationChannel] = ALL_CHANNELS,
    metadata: dict[str, Any] | None = None,
) -> NotificationResult | None:
    """
    Run a post-commit notification. Never raises: the primary operation has
    already succeeded and must be reported as such.
    """
    if gateway is None or user_id is None:
        return None
    try:
        result = await gateway.notify(
            user_id=user_id,
            event_type=event_type,
            title=title,
            message=message,
            channels=channels,
            metadata=metadata,
        )
    except Exception as exc:
        logger.error(
            f"Error sending {NotificationType(event_type).value} notification to {user_id}: {exc}",
            exc_info=True,
        )
        return None
    if result is not None and not result.success:
        logger.warning(
            f"Notification {NotificationType(event_type).value} to {user_id} not delivered: {result.error}"
        )
    return result
