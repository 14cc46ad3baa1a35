"""Core services exports."""

from .database.db_session import DbSessionService
from .downstream.client import DownstreamService, DownstreamUser, JellyfinClient
from .lifecycle.expiry import AccountLifecycleService, compute_expiry_state
from .lifecycle.scheduler import ExpiryScheduler
from .locking import InProcessKeyedLock, KeyedLock, RedisKeyedLock
from .notifications.trigger import LoggingNotificationTrigger, NotificationTrigger
from .pairing.authorization_bridge import AuthorizationBridge
from .redis_service import RedisService
from .roles.group_mapping import map_groups_to_role, normalize_group, policy_for_role, role_for_policy
from .user.credential_migration import MigrationReport, ShadowCredentialMigrationService
from .user.reconciliation import IdentityReconciliationService
from .vault.credential_vault import CredentialVault, generate_secret, generate_username, sanitize_username

__all__ = [
    # Persistence
    "DbSessionService",
    "RedisService",
    # Downstream media server
    "DownstreamService",
    "DownstreamUser",
    "JellyfinClient",
    # Roles
    "map_groups_to_role",
    "normalize_group",
    "policy_for_role",
    "role_for_policy",
    # Vault
    "CredentialVault",
    "generate_secret",
    "generate_username",
    "sanitize_username",
    # Users
    "IdentityReconciliationService",
    "ShadowCredentialMigrationService",
    "MigrationReport",
    "InProcessKeyedLock",
    "KeyedLock",
    "RedisKeyedLock",
    # Pairing
    "AuthorizationBridge",
    # Lifecycle
    "AccountLifecycleService",
    "ExpiryScheduler",
    "compute_expiry_state",
    # Notifications
    "LoggingNotificationTrigger",
    "NotificationTrigger",
]
