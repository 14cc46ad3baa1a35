"""Local user database table model."""

from datetime import datetime

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field

from src.jellybridge.entities._base import EntityTable


class LocalUserTable(EntityTable, table=True):
    """Database persistence model for local users."""

    __tablename__ = "local_users"
    __table_args__ = (
        UniqueConstraint(
            "external_provider_name",
            "external_subject_id",
            name="uq_local_users_external_identity",
        ),
    )

    downstream_user_id: str = Field(unique=True, index=True)
    downstream_username: str | None = None
    external_provider_name: str | None = None
    external_subject_id: str | None = None
    email: str | None = Field(default=None, unique=True, index=True)
    display_name: str | None = None
    shadow_password_ciphertext: str | None = None
    raw_groups: list[str] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    expires_at: datetime | None = Field(default=None, index=True)
    expiry_warning_sent: bool = False
    last_login_at: datetime | None = None
