"""Give IdP-originated users without a shadow password a fresh one.

Accounts adopted by name or created before the vault existed have no stored
credential, so delegated pairing cannot work for them. Migration resets the
downstream password to a newly generated secret and stores it encrypted.
"""

from __future__ import annotations

from loguru import logger
from pydantic import BaseModel, Field

from src.jellybridge.core.services.downstream.client import DownstreamService
from src.jellybridge.core.services.vault.credential_vault import CredentialVault, generate_secret
from src.jellybridge.entities.local_user import LocalUser, LocalUserRepository


class MigrationOutcome(BaseModel):
    user_id: str
    email: str | None = None
    error: str | None = None


class MigrationReport(BaseModel):
    succeeded: list[MigrationOutcome] = Field(default_factory=list)
    failed: list[MigrationOutcome] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


class ShadowCredentialMigrationService:
    def __init__(
        self,
        repository: LocalUserRepository,
        downstream: DownstreamService,
        vault: CredentialVault,
        secret_length: int = 32,
    ):
        self._users = repository
        self._downstream = downstream
        self._vault = vault
        self._secret_length = secret_length

    def pending(self) -> list[LocalUser]:
        return self._users.list_external_without_shadow_password()

    async def migrate(self, confirm: bool, user_id: str | None = None) -> MigrationReport:
        """Reset downstream passwords of pending users.

        Raises:
            PermissionError: ``confirm`` is not true. Every affected user's
                downstream password is replaced, so the caller must opt in.
        """
        if confirm is not True:
            raise PermissionError("Credential migration requires explicit confirmation")

        candidates = self.pending()
        if user_id is not None:
            candidates = [u for u in candidates if user_id in (u.id, u.downstream_user_id)]

        logger.info("Migrating shadow credentials for {} users", len(candidates))
        report = MigrationReport()
        for user in candidates:
            try:
                password = generate_secret(self._secret_length)
                await self._downstream.update_password(user.downstream_user_id, password)
                self._users.update_fields(user.id, shadow_password_ciphertext=self._vault.encrypt(password))
            except Exception as e:
                logger.error("Credential migration failed for user {}: {}", user.id, e)
                report.failed.append(MigrationOutcome(user_id=user.id, email=user.email, error=str(e)))
                continue
            report.succeeded.append(MigrationOutcome(user_id=user.id, email=user.email))

        logger.info(
            "Credential migration complete: {} succeeded, {} failed",
            len(report.succeeded),
            len(report.failed),
        )
        return report
