"""Error taxonomy shared by the reconciliation, pairing and lifecycle services."""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(BridgeError):
    """Required configuration or key material is missing or invalid."""


class IdentityClaimsError(BridgeError):
    """Verified claims lack a field needed to identify the user."""


class ProvisioningError(BridgeError):
    """The downstream account could neither be created nor adopted.

    Fatal for the login attempt; no local user is created.
    """


class PolicyApplicationError(BridgeError):
    """The downstream account exists but its policy could not be pushed.

    Non-fatal: the login proceeds with possibly stale permissions.
    """

    def __init__(self, downstream_user_id: str, detail: str) -> None:
        super().__init__(f"Failed to apply policy to {downstream_user_id}: {detail}")
        self.downstream_user_id = downstream_user_id
        self.detail = detail


class DecryptionError(BridgeError):
    """A shadow password ciphertext is malformed, tampered with or foreign."""


class PairingApprovalError(BridgeError):
    """Every pairing approval strategy failed."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Pairing code approval failed: {detail}")
        self.detail = detail


class DownstreamError(BridgeError):
    """The media server answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UsernameTakenError(DownstreamError):
    """Account creation failed because the username already exists."""


class DownstreamUnavailable(BridgeError):
    """Transient transport failure talking to the media server."""


class LocalUserConflictError(BridgeError):
    """A local user write violated a uniqueness constraint."""


class UnknownUserError(BridgeError, LookupError):
    """No local user exists with the requested id."""


class InvalidPairingCodeError(BridgeError, ValueError):
    """The pairing code submitted for approval is unusable."""


class LoginLockTimeoutError(BridgeError):
    """Waiting for another login of the same identity took too long."""
