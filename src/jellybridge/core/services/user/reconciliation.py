"""Reconcile verified IdP identities with local users and downstream accounts."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from src.jellybridge.core.exceptions import (
    DownstreamError,
    DownstreamUnavailable,
    LocalUserConflictError,
    PolicyApplicationError,
    ProvisioningError,
    UsernameTakenError,
)
from src.jellybridge.core.models.identity import ExternalIdentity
from src.jellybridge.core.models.lifecycle import NotificationKind
from src.jellybridge.core.models.policy import Role
from src.jellybridge.core.services.downstream.client import DownstreamService, DownstreamUser
from src.jellybridge.core.services.locking import InProcessKeyedLock, KeyedLock
from src.jellybridge.core.services.notifications.trigger import NotificationTrigger
from src.jellybridge.core.services.roles.group_mapping import map_groups_to_role, policy_for_role
from src.jellybridge.core.services.vault.credential_vault import (
    CredentialVault,
    generate_secret,
    generate_username,
    sanitize_username,
)
from src.jellybridge.entities.local_user import LocalUser, LocalUserRepository
from src.jellybridge.runtime.config.config_data import ConfigData
from src.jellybridge.runtime.context import get_config

PRESERVED_PROVIDER_FIELDS = ("AuthenticationProviderId", "PasswordResetProviderId")


@dataclass(frozen=True)
class _Provisioned:
    account: DownstreamUser
    shadow_ciphertext: str | None
    created: bool


class IdentityReconciliationService:
    """Find, create, adopt or repair the accounts behind an IdP login.

    Logins for the same e-mail address are serialised through ``login_lock``;
    different users reconcile concurrently.
    """

    def __init__(
        self,
        repository: LocalUserRepository,
        downstream: DownstreamService,
        vault: CredentialVault,
        notifier: NotificationTrigger,
        login_lock: KeyedLock | None = None,
        config: ConfigData | None = None,
    ):
        config = config or get_config()
        self._users = repository
        self._downstream = downstream
        self._vault = vault
        self._notifier = notifier
        self._login_lock = login_lock or InProcessKeyedLock()
        self._identity_config = config.identity
        self._downstream_config = config.downstream
        self._secret_length = config.vault.secret_length

    async def reconcile_login(self, identity: ExternalIdentity) -> LocalUser:
        """Return the local user for ``identity``, provisioning it on first login.

        Raises:
            ProvisioningError: No downstream account could be created or adopted.
            DownstreamUnavailable: The media server could not be reached.
        """
        async with self._login_lock.hold(identity.email.strip().lower()):
            existing = self._users.get_by_email(identity.email)
            if existing is None:
                return await self._create(identity)
            return await self._update(existing, identity)

    async def _create(self, identity: ExternalIdentity) -> LocalUser:
        role = map_groups_to_role(identity.raw_groups)
        provisioned = await self._provision(identity, sanitize_username(identity.preferred_name))
        account = provisioned.account

        try:
            if not provisioned.created:
                owner = self._users.get_by_downstream_id(account.id)
                if owner is not None:
                    self._check_adoptable(owner, identity, account)
                    return owner

            await self._apply_policy(account, role)

            now = datetime.now(UTC)
            user = LocalUser(
                id=account.id,
                downstream_user_id=account.id,
                downstream_username=account.name,
                external_provider_name=self._identity_config.provider_name,
                external_subject_id=identity.subject,
                email=identity.email,
                display_name=identity.display_name,
                shadow_password_ciphertext=provisioned.shadow_ciphertext,
                raw_groups=list(identity.raw_groups),
                last_login_at=now,
            )
            try:
                stored = self._users.upsert(user)
            except LocalUserConflictError:
                winner = self._users.get_by_email(identity.email)
                if winner is None:
                    raise
                if provisioned.created and winner.downstream_user_id != account.id:
                    logger.warning(
                        "Concurrent first login for {}; downstream account {} is orphaned",
                        winner.id,
                        account.id,
                    )
                return winner
        except (asyncio.CancelledError, Exception):
            if provisioned.created:
                logger.error(
                    "Login aborted after creating downstream account {}; reconcile it manually",
                    account.id,
                )
            raise

        logger.info("Provisioned local user {} with role {}", stored.id, role)
        await self._notify_welcome(stored)
        return stored

    async def _update(self, user: LocalUser, identity: ExternalIdentity) -> LocalUser:
        changes: dict[str, Any] = {
            "external_provider_name": self._identity_config.provider_name,
            "external_subject_id": identity.subject,
            "last_login_at": datetime.now(UTC),
        }
        if identity.display_name:
            changes["display_name"] = identity.display_name

        role = map_groups_to_role(identity.raw_groups)
        account = await self._downstream.get_user(user.downstream_user_id)

        if account is None:
            changes.update(await self._recreate(user, identity, role))
        else:
            if not user.downstream_username:
                changes["downstream_username"] = account.name

            if set(user.raw_groups or ()) != set(identity.raw_groups):
                logger.info("Group membership of {} changed, re-applying {} policy", user.id, role)
                await self._apply_policy(account, role)

        changes["raw_groups"] = list(identity.raw_groups)
        return self._users.update_fields(user.id, **changes)

    async def _recreate(self, user: LocalUser, identity: ExternalIdentity, role: Role) -> dict[str, Any]:
        """Replace a downstream account that disappeared since the last login."""
        if not self._identity_config.recreate_missing_accounts:
            raise ProvisioningError(
                f"Downstream account {user.downstream_user_id} of local user {user.id} is missing"
            )

        logger.warning(
            "Downstream account {} of local user {} is missing, recreating it",
            user.downstream_user_id,
            user.id,
        )
        preferred = user.downstream_username or sanitize_username(identity.preferred_name)
        provisioned = await self._provision(identity, preferred)
        account = provisioned.account

        try:
            if not provisioned.created:
                owner = self._users.get_by_downstream_id(account.id)
                if owner is not None and owner.id != user.id:
                    raise ProvisioningError(
                        f"Downstream account {account.id} already belongs to local user {owner.id}"
                    )
            await self._apply_policy(account, role)
        except (asyncio.CancelledError, Exception):
            if provisioned.created:
                logger.error(
                    "Login aborted after creating downstream account {}; reconcile it manually",
                    account.id,
                )
            raise

        return {
            "downstream_user_id": account.id,
            "downstream_username": account.name,
            "shadow_password_ciphertext": provisioned.shadow_ciphertext,
        }

    async def _provision(self, identity: ExternalIdentity, preferred_username: str | None) -> _Provisioned:
        """Create a downstream account, adopting an existing one on name collision."""
        username = preferred_username or generate_username(identity.email)
        password = generate_secret(self._secret_length)

        try:
            account = await self._downstream.create_user(username, password)
        except UsernameTakenError:
            logger.info("Username {} already exists downstream, adopting it", username)
            return _Provisioned(await self._adopt(username), None, created=False)
        except DownstreamError as e:
            raise ProvisioningError(f"Could not create downstream account {username}: {e}") from e

        return _Provisioned(account, self._vault.encrypt(password), created=True)

    async def _adopt(self, username: str) -> DownstreamUser:
        wanted = username.lower()
        for account in await self._downstream.list_users():
            if account.name.lower() == wanted:
                return account
        raise ProvisioningError(f"Username {username} is taken but no downstream account matches it")

    @staticmethod
    def _check_adoptable(owner: LocalUser, identity: ExternalIdentity, account: DownstreamUser) -> None:
        if (owner.email or "").lower() != identity.email.strip().lower():
            raise ProvisioningError(
                f"Downstream account {account.id} already belongs to local user {owner.id}"
            )

    def _merge_policy(self, current: dict[str, Any], role: Role) -> dict[str, Any]:
        merged = {**current, **policy_for_role(role).to_downstream()}
        defaults = {
            "AuthenticationProviderId": self._downstream_config.default_authentication_provider_id,
            "PasswordResetProviderId": self._downstream_config.default_password_reset_provider_id,
        }
        for field in PRESERVED_PROVIDER_FIELDS:
            merged[field] = current.get(field) or defaults[field]
        # The disabled flag belongs to the lifecycle sweep
        if "IsDisabled" in current:
            merged["IsDisabled"] = current["IsDisabled"]
        return merged

    async def _apply_policy(self, account: DownstreamUser, role: Role) -> bool:
        """Push the role preset onto ``account``; failures are logged, not raised."""
        try:
            current = account.policy
            if not current:
                fresh = await self._downstream.get_user(account.id)
                current = fresh.policy if fresh is not None else {}
            await self._downstream.set_policy(account.id, self._merge_policy(current, role))
        except (DownstreamError, DownstreamUnavailable) as e:
            error = PolicyApplicationError(account.id, str(e))
            logger.warning("{}; login continues with the previous permissions", error)
            return False
        return True

    async def _notify_welcome(self, user: LocalUser) -> None:
        try:
            await self._notifier.notify(
                NotificationKind.WELCOME,
                user.id,
                {
                    "display_name": user.display_name,
                    "username": user.downstream_username,
                    "email": user.email,
                },
            )
        except Exception as e:
            logger.warning("Welcome notification for {} failed: {}", user.id, e)
