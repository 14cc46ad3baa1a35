"""Domain models shared by the services."""

from .identity import ExternalIdentity, extract_groups
from .lifecycle import ExpiringUser, ExpiryState, NotificationKind, SweepReport
from .pairing import ApprovalResult, ApprovalStrategy
from .policy import Role, UserPolicy

__all__ = [
    "ApprovalResult",
    "ApprovalStrategy",
    "ExpiringUser",
    "ExpiryState",
    "ExternalIdentity",
    "NotificationKind",
    "Role",
    "SweepReport",
    "UserPolicy",
    "extract_groups",
]
