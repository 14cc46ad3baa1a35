from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from src.jellybridge.core.services.vault.credential_vault import CredentialVault
from src.jellybridge.runtime.config.config_data import (
    AppConfig,
    ConfigData,
    DatabaseConfig,
    LifecycleConfig,
)

INTERNAL_TOKEN = "test-internal-token"
VAULT_SECRET = "test-encryption-secret"


@pytest.fixture
def test_config() -> ConfigData:
    return ConfigData(
        app=AppConfig(environment="test", internal_api_token=INTERNAL_TOKEN),
        database=DatabaseConfig(url="sqlite:///:memory:"),
        lifecycle=LifecycleConfig(enabled=False),
    )


@pytest.fixture
def internal_token() -> str:
    return INTERNAL_TOKEN


@pytest.fixture
def vault() -> CredentialVault:
    return CredentialVault(VAULT_SECRET)


@pytest.fixture
def session() -> Generator[Session]:
    """Create a fresh database session for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    from src.jellybridge.entities.local_user import LocalUserTable  # noqa: F401

    SQLModel.metadata.create_all(engine)

    with Session(engine, expire_on_commit=False) as session:
        try:
            yield session
        finally:
            session.rollback()
            session.close()
            engine.dispose()


@pytest.fixture
def repository(session: Session):
    from src.jellybridge.entities.local_user import LocalUserRepository

    return LocalUserRepository(session)


@pytest.fixture
def app_dependencies(test_config, downstream, vault, notifier):
    """Application dependencies over an in-memory database and a fake media server."""
    from src.jellybridge.api.http.app_data import ApplicationDependencies
    from src.jellybridge.core.services import DbSessionService, InProcessKeyedLock
    from src.jellybridge.runtime.init_db import init_db

    database_service = DbSessionService(test_config)
    init_db(database_service)
    deps = ApplicationDependencies(
        config=test_config,
        database_service=database_service,
        downstream=downstream,
        vault=vault,
        notifier=notifier,
        login_lock=InProcessKeyedLock(),
    )
    try:
        yield deps
    finally:
        database_service.dispose()
