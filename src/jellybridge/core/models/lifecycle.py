"""Account expiry states and sweep reports."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class ExpiryState(StrEnum):
    NO_EXPIRY = "no_expiry"
    ACTIVE = "active"
    WARNING_SENT = "warning_sent"
    DISABLED = "disabled"


class NotificationKind(StrEnum):
    WELCOME = "welcome"
    EXPIRY_WARNING = "expiry_warning"
    ACCOUNT_DISABLED = "account_disabled"


class ExpiringUser(BaseModel):
    """A user inside the warning window, as shown to administrators."""

    user_id: str
    email: str | None = None
    display_name: str | None = None
    days_until_expiry: int
    expiry_warning_sent: bool


class SweepReport(BaseModel):
    """Aggregate counts of one expiry sweep."""

    examined: int = Field(default=0, description="Users with an expiry date")
    warned: int = Field(default=0, description="Expiry warnings fired")
    disabled: int = Field(default=0, description="Accounts disabled downstream")
    skipped: int = Field(default=0, description="Expired accounts already disabled")
    failed: int = Field(default=0, description="Users whose processing failed")
