"""Reconcile a login whose claims were already verified by the OIDC layer."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.jellybridge.api.http.app_data import ApplicationDependencies
from src.jellybridge.api.http.deps import (
    get_app_dependencies,
    get_reconciliation_service,
    require_internal_token,
)
from src.jellybridge.core.models import ExternalIdentity, Role
from src.jellybridge.core.services import IdentityReconciliationService, map_groups_to_role

router = APIRouter(
    prefix="/internal/logins",
    tags=["logins"],
    dependencies=[Depends(require_internal_token)],
)


class LoginRequest(BaseModel):
    claims: dict[str, Any] = Field(description="Verified ID token or userinfo claims")


class LoginResponse(BaseModel):
    user_id: str
    downstream_user_id: str
    downstream_username: str | None
    email: str | None
    display_name: str | None
    role: Role


@router.post("", response_model=LoginResponse)
async def reconcile_login(
    body: LoginRequest,
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
    service: IdentityReconciliationService = Depends(get_reconciliation_service),
) -> LoginResponse:
    identity_config = app_deps.config.identity
    identity = ExternalIdentity.from_claims(
        body.claims,
        group_claims=identity_config.group_claims,
        name_claims=identity_config.name_claims,
    )
    user = await service.reconcile_login(identity)
    return LoginResponse(
        user_id=user.id,
        downstream_user_id=user.downstream_user_id,
        downstream_username=user.downstream_username,
        email=user.email,
        display_name=user.display_name,
        role=map_groups_to_role(identity.raw_groups),
    )
