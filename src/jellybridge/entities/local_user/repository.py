"""Data access layer for local users."""

from datetime import UTC, datetime
from typing import Any

from loguru import logger
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from src.jellybridge.core.exceptions import LocalUserConflictError, UnknownUserError

from .entity import LocalUser
from .table import LocalUserTable


class LocalUserRepository:
    """Data-access layer for local users."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    @staticmethod
    def _to_entity(row: LocalUserTable | None) -> LocalUser | None:
        if row is None:
            return None
        return LocalUser.model_validate(row, from_attributes=True)

    def get(self, user_id: str) -> LocalUser | None:
        return self._to_entity(self._session.get(LocalUserTable, user_id))

    def get_by_email(self, email: str) -> LocalUser | None:
        statement = select(LocalUserTable).where(
            func.lower(LocalUserTable.email) == email.strip().lower()
        )
        return self._to_entity(self._session.exec(statement).first())

    def get_by_downstream_id(self, downstream_user_id: str) -> LocalUser | None:
        statement = select(LocalUserTable).where(
            LocalUserTable.downstream_user_id == downstream_user_id
        )
        return self._to_entity(self._session.exec(statement).first())

    def get_by_external_identity(self, provider_name: str, subject_id: str) -> LocalUser | None:
        statement = select(LocalUserTable).where(
            (LocalUserTable.external_provider_name == provider_name)
            & (LocalUserTable.external_subject_id == subject_id)
        )
        return self._to_entity(self._session.exec(statement).first())

    def list_with_expiry(self) -> list[LocalUser]:
        statement = (
            select(LocalUserTable)
            .where(col(LocalUserTable.expires_at).is_not(None))
            .order_by(col(LocalUserTable.expires_at))
        )
        return [self._to_entity(row) for row in self._session.exec(statement).all()]

    def list_external_without_shadow_password(self) -> list[LocalUser]:
        statement = select(LocalUserTable).where(
            col(LocalUserTable.external_provider_name).is_not(None),
            col(LocalUserTable.shadow_password_ciphertext).is_(None),
        )
        return [self._to_entity(row) for row in self._session.exec(statement).all()]

    def upsert(self, user: LocalUser) -> LocalUser:
        """Insert ``user`` or overwrite the stored record with the same id.

        Every column is written. Updates of a user that other requests may
        be changing at the same time go through :meth:`update_fields`.

        Raises:
            LocalUserConflictError: Another record already owns the e-mail,
                downstream id or external identity. The session is rolled back.
        """
        data = user.model_dump()
        data["updated_at"] = datetime.now(UTC)

        row = self._session.get(LocalUserTable, user.id)
        if row is None:
            row = LocalUserTable(**data)
        else:
            for key, value in data.items():
                setattr(row, key, value)

        self._session.add(row)
        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            logger.warning("Local user write for {} conflicted with an existing record", user.id)
            raise LocalUserConflictError(f"Local user {user.id} conflicts with an existing record") from e

        self._session.refresh(row)
        return self._to_entity(row)

    def update_fields(self, user_id: str, **changes: Any) -> LocalUser:
        """Write only the named columns of one user and return the stored record.

        Concurrent writers touching other columns of the same row are not
        overwritten, unlike :meth:`upsert` which rewrites the whole record.

        Raises:
            UnknownUserError: No user has ``user_id``.
            LocalUserConflictError: The new values violate a uniqueness constraint.
        """
        invalid = sorted(set(changes) - (set(LocalUser.model_fields) - {"id", "created_at", "updated_at"}))
        if invalid:
            raise ValueError(f"Cannot update local user fields: {invalid}")

        statement = (
            update(LocalUserTable)
            .where(col(LocalUserTable.id) == user_id)
            .values(**changes, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        try:
            result = self._session.exec(statement)
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            logger.warning("Local user update for {} conflicted with an existing record", user_id)
            raise LocalUserConflictError(f"Local user {user_id} conflicts with an existing record") from e

        if result.rowcount == 0:
            raise UnknownUserError(f"Local user {user_id} not found")

        row = self._session.get(LocalUserTable, user_id, populate_existing=True)
        return self._to_entity(row)
