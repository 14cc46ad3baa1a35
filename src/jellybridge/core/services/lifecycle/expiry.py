"""Account expiry: warn ahead of time, disable once expired."""

from __future__ import annotations

import math
from datetime import UTC, datetime

from loguru import logger

from src.jellybridge.core.models.lifecycle import (
    ExpiringUser,
    ExpiryState,
    NotificationKind,
    SweepReport,
)
from src.jellybridge.core.services.downstream.client import DownstreamService
from src.jellybridge.core.services.notifications.trigger import NotificationTrigger
from src.jellybridge.entities.local_user import LocalUser, LocalUserRepository

SECONDS_PER_DAY = 86400


def days_until_expiry(expires_at: datetime, now: datetime) -> int:
    """Whole days left, rounded up, so anything under a day still counts as one."""
    return math.ceil((expires_at - now).total_seconds() / SECONDS_PER_DAY)


def compute_expiry_state(user: LocalUser, downstream_disabled: bool) -> ExpiryState:
    """Derive the expiry state; nothing but the inputs is stored."""
    if downstream_disabled:
        return ExpiryState.DISABLED
    if user.expires_at is None:
        return ExpiryState.NO_EXPIRY
    if user.expiry_warning_sent:
        return ExpiryState.WARNING_SENT
    return ExpiryState.ACTIVE


class AccountLifecycleService:
    def __init__(
        self,
        repository: LocalUserRepository,
        downstream: DownstreamService,
        notifier: NotificationTrigger,
    ):
        self._users = repository
        self._downstream = downstream
        self._notifier = notifier

    async def run_sweep(self, warn_window_days: int = 7, now: datetime | None = None) -> SweepReport:
        """Warn users about to expire and disable expired ones.

        Per-user failures are logged and counted; the sweep always visits
        every candidate and never raises for an individual user.
        """
        now = now or datetime.now(UTC)
        report = SweepReport()

        for user in self._users.list_with_expiry():
            report.examined += 1
            try:
                if user.expires_at < now:
                    outcome = await self._disable_expired(user)
                    if outcome == "disabled":
                        report.disabled += 1
                    elif outcome == "skipped":
                        report.skipped += 1
                    else:
                        report.failed += 1
                elif not user.expiry_warning_sent:
                    days = days_until_expiry(user.expires_at, now)
                    if 0 < days <= warn_window_days:
                        await self._warn(user, days)
                        report.warned += 1
            except Exception as e:
                report.failed += 1
                logger.error(
                    "Expiry processing failed for user {}",
                    user.id,
                    extra={
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                )

        logger.info(
            "Expiry sweep finished: {} examined, {} warned, {} disabled, {} skipped, {} failed",
            report.examined,
            report.warned,
            report.disabled,
            report.skipped,
            report.failed,
        )
        return report

    async def _warn(self, user: LocalUser, days: int) -> None:
        await self._notifier.notify(
            NotificationKind.EXPIRY_WARNING,
            user.id,
            {"days_until_expiry": days, "display_name": user.display_name},
        )
        # Only flag once the warning is out, so a failed send is retried next sweep
        self._users.update_fields(user.id, expiry_warning_sent=True)
        logger.info("Sent expiry warning to user {} ({} days left)", user.id, days)

    async def _disable_expired(self, user: LocalUser) -> str:
        account = await self._downstream.get_user(user.downstream_user_id)
        if account is None:
            logger.warning(
                "Expired user {} has no downstream account {}", user.id, user.downstream_user_id
            )
            return "failed"
        if account.is_disabled:
            return "skipped"

        try:
            await self._notifier.notify(
                NotificationKind.ACCOUNT_DISABLED,
                user.id,
                {"display_name": user.display_name},
            )
        except Exception as e:
            logger.warning("Account disabled notification for {} failed: {}", user.id, e)

        await self._downstream.disable_user(account.id, account.policy)
        logger.info("Disabled expired user {}", user.id)
        return "disabled"

    def list_expiring(self, days: int = 7, now: datetime | None = None) -> list[ExpiringUser]:
        """Users expiring within ``days``, soonest first."""
        now = now or datetime.now(UTC)
        expiring = []
        for user in self._users.list_with_expiry():
            remaining = days_until_expiry(user.expires_at, now)
            if 0 < remaining <= days:
                expiring.append(
                    ExpiringUser(
                        user_id=user.id,
                        email=user.email,
                        display_name=user.display_name,
                        days_until_expiry=remaining,
                        expiry_warning_sent=user.expiry_warning_sent,
                    )
                )
        return sorted(expiring, key=lambda item: item.days_until_expiry)

    def set_expiry(self, user_id: str, expires_at: datetime | None) -> LocalUser:
        """Change or clear the expiry of a user; the warning flag always resets."""
        return self._users.update_fields(user_id, expires_at=expires_at, expiry_warning_sent=False)
