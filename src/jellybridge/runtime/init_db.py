"""Database initialization script."""

from loguru import logger
from sqlmodel import SQLModel

from src.jellybridge.core.services.database.db_session import DbSessionService
from src.jellybridge.entities.local_user import LocalUserTable  # noqa: F401


def init_db(database_service: DbSessionService | None = None) -> None:
    """Create all database tables."""
    database_service = database_service or DbSessionService()
    SQLModel.metadata.create_all(database_service.engine)
    logger.info("Database initialized with tables.")


if __name__ == "__main__":
    init_db()
