"""FastAPI dependency implementations."""

from __future__ import annotations

import hmac
from collections.abc import Iterator

from fastapi import Depends, Header, HTTPException, Request
from sqlmodel import Session

from src.jellybridge.api.http.app_data import ApplicationDependencies
from src.jellybridge.core.services import (
    AccountLifecycleService,
    AuthorizationBridge,
    IdentityReconciliationService,
)
from src.jellybridge.entities.local_user import LocalUserRepository


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_db_session(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> Iterator[Session]:
    """Yield a database session closed after the request."""
    session = app_deps.database_service.get_session()
    try:
        yield session
    finally:
        session.close()


def require_internal_token(
    x_internal_token: str | None = Header(default=None),
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> None:
    """Reject calls that do not carry the shared internal API token."""
    expected = app_deps.config.app.internal_api_token
    if not expected:
        raise HTTPException(status_code=503, detail="Internal API token is not configured")
    if not x_internal_token or not hmac.compare_digest(x_internal_token, expected):
        raise HTTPException(status_code=401, detail="Invalid internal token")


def get_local_user_repository(db: Session = Depends(get_db_session)) -> LocalUserRepository:
    return LocalUserRepository(db)


def get_reconciliation_service(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
    db: Session = Depends(get_db_session),
) -> IdentityReconciliationService:
    return app_deps.reconciliation_service(db)


def get_authorization_bridge(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> AuthorizationBridge:
    return app_deps.authorization_bridge()


def get_lifecycle_service(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
    db: Session = Depends(get_db_session),
) -> AccountLifecycleService:
    return app_deps.lifecycle_service(db)
