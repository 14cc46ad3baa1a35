"""Hand-off point for user notifications.

Delivery channels (e-mail, chat webhooks, ...) live outside this service;
they plug in by implementing :class:`NotificationTrigger`.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from loguru import logger

from src.jellybridge.core.models.lifecycle import NotificationKind


@runtime_checkable
class NotificationTrigger(Protocol):
    async def notify(self, kind: NotificationKind, user_id: str, params: dict[str, Any]) -> None: ...


class LoggingNotificationTrigger:
    """Default trigger that records notifications in the log only."""

    async def notify(self, kind: NotificationKind, user_id: str, params: dict[str, Any]) -> None:
        logger.bind(notification=str(kind), user_id=user_id).info(
            "Notification {} for user {}: {}", kind, user_id, params
        )
