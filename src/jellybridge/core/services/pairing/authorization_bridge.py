"""Approve device pairing (Quick Connect) codes for an authenticated user.

Strategies are tried strictly in order and the first success wins:

1. Delegated: sign in downstream as the user with the shadow password and
   approve with the user's own token. The only fully attributed strategy.
2. Privileged with an explicit ``userId`` parameter.
3. Privileged with the user id in the client authorization header.
4. Bare privileged approval. The session may end up attributed to the
   service account, so the result always carries a warning.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from loguru import logger

from src.jellybridge.core.exceptions import (
    DecryptionError,
    DownstreamError,
    DownstreamUnavailable,
    InvalidPairingCodeError,
    PairingApprovalError,
)
from src.jellybridge.core.models.pairing import ApprovalResult, ApprovalStrategy
from src.jellybridge.core.services.downstream.client import DownstreamService
from src.jellybridge.core.services.vault.credential_vault import CredentialVault
from src.jellybridge.entities.local_user import LocalUser
from src.jellybridge.runtime.config.config_data import ConfigData
from src.jellybridge.runtime.context import get_config

UNATTRIBUTED_WARNING = (
    "The device was paired with the service credential; the session may not be "
    "attributed to your account."
)


class AuthorizationBridge:
    def __init__(
        self,
        downstream: DownstreamService,
        vault: CredentialVault,
        config: ConfigData | None = None,
    ):
        config = config or get_config()
        self._downstream = downstream
        self._vault = vault
        self._allow_unattributed = config.bridge.allow_unattributed_approval

    async def approve_code(self, code: str, user: LocalUser) -> ApprovalResult:
        """Approve ``code`` on behalf of ``user``.

        Raises:
            InvalidPairingCodeError: ``code`` is blank.
            PairingApprovalError: Every enabled strategy failed.
        """
        code = (code or "").strip()
        if not code:
            raise InvalidPairingCodeError("Pairing code must not be blank")

        strategies: list[tuple[ApprovalStrategy, Callable[[], Awaitable[bool]]]] = [
            (ApprovalStrategy.DELEGATED, lambda: self._delegated(code, user)),
            (
                ApprovalStrategy.PRIVILEGED_USER_ID,
                lambda: self._downstream.approve_code(code, user_id=user.downstream_user_id),
            ),
            (
                ApprovalStrategy.PRIVILEGED_USER_HINT,
                lambda: self._downstream.approve_code(code, user_hint=user.downstream_user_id),
            ),
        ]
        if self._allow_unattributed:
            strategies.append(
                (ApprovalStrategy.PRIVILEGED_BARE, lambda: self._downstream.approve_code(code))
            )

        last_detail = "no strategy attempted"
        for strategy, attempt in strategies:
            try:
                approved = await attempt()
            except (DecryptionError, DownstreamError, DownstreamUnavailable) as e:
                last_detail = f"{strategy}: {e}"
                logger.warning("Pairing strategy {} failed for user {}: {}", strategy, user.id, e)
                continue

            if not approved:
                last_detail = f"{strategy}: approval was rejected"
                logger.warning("Pairing strategy {} was rejected for user {}", strategy, user.id)
                continue

            logger.info("Pairing code approved for user {} via {}", user.id, strategy)
            if strategy is ApprovalStrategy.PRIVILEGED_BARE:
                logger.warning("Pairing for user {} used the unattributed privileged strategy", user.id)
                return ApprovalResult(strategy=strategy, attributed=False, warning=UNATTRIBUTED_WARNING)
            return ApprovalResult(strategy=strategy, attributed=True)

        raise PairingApprovalError(last_detail)

    async def _delegated(self, code: str, user: LocalUser) -> bool:
        if not user.shadow_password_ciphertext:
            raise DecryptionError("No shadow password stored")
        if not user.downstream_username:
            raise DecryptionError("No downstream username stored")

        password = self._vault.decrypt(user.shadow_password_ciphertext)
        token = await self._downstream.authenticate_by_name(user.downstream_username, password)
        return await self._downstream.approve_code(code, token=token)
