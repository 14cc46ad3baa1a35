"""Outcome of a pairing-code approval."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class ApprovalStrategy(StrEnum):
    """Approval strategies, strongest attribution guarantee first."""

    DELEGATED = "delegated"
    PRIVILEGED_USER_ID = "privileged_user_id"
    PRIVILEGED_USER_HINT = "privileged_user_hint"
    PRIVILEGED_BARE = "privileged_bare"


class ApprovalResult(BaseModel):
    """Which strategy approved the code and whether the session is attributed."""

    strategy: ApprovalStrategy = Field(description="Strategy that succeeded")
    attributed: bool = Field(description="Whether the paired session belongs to the user")
    warning: str | None = Field(default=None, description="Message the caller must surface")

    @property
    def requires_warning(self) -> bool:
        return self.warning is not None
