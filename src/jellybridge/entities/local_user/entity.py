"""Local user domain entity."""

from datetime import datetime

from pydantic import Field, field_validator

from src.jellybridge.entities._base import Entity, ensure_utc


class LocalUser(Entity):
    """A person known to the bridge.

    ``id`` is the downstream account id assigned when the record was first
    created and never changes. ``downstream_user_id`` follows the account if
    it has to be recreated.
    """

    downstream_user_id: str = Field(description="Current downstream account id")
    downstream_username: str | None = Field(default=None, description="Downstream account name")
    external_provider_name: str | None = Field(default=None, description="Identity provider name")
    external_subject_id: str | None = Field(default=None, description="Subject id at the provider")
    email: str | None = Field(default=None, description="E-mail address")
    display_name: str | None = Field(default=None, description="Human readable name")
    shadow_password_ciphertext: str | None = Field(
        default=None, description="Encrypted downstream password, never plaintext"
    )
    raw_groups: list[str] | None = Field(default=None, description="Last seen IdP group claims")
    expires_at: datetime | None = Field(default=None, description="Account expiry instant")
    expiry_warning_sent: bool = Field(default=False)
    last_login_at: datetime | None = Field(default=None)

    @field_validator("expires_at", "last_login_at", mode="after")
    @classmethod
    def _instants_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @property
    def is_external(self) -> bool:
        return bool(self.external_provider_name and self.external_subject_id)

    @property
    def has_shadow_password(self) -> bool:
        return bool(self.shadow_password_ciphertext)
