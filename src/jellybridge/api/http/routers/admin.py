"""Administrative endpoints: expiry sweeps, expiry changes and role previews."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from src.jellybridge.api.http.app_data import ApplicationDependencies
from src.jellybridge.api.http.deps import (
    get_app_dependencies,
    get_lifecycle_service,
    require_internal_token,
)
from src.jellybridge.core.models import ExpiringUser, Role, SweepReport
from src.jellybridge.core.services import AccountLifecycleService, map_groups_to_role, policy_for_role

router = APIRouter(prefix="/internal", dependencies=[Depends(require_internal_token)])


class ExpiryUpdate(BaseModel):
    expires_at: datetime | None = None


class ExpiryResponse(BaseModel):
    user_id: str
    expires_at: datetime | None
    expiry_warning_sent: bool


class RolePreview(BaseModel):
    role: Role
    policy: dict[str, Any]


@router.post("/admin/expiry-sweep", response_model=SweepReport, tags=["lifecycle"])
async def trigger_expiry_sweep(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> SweepReport:
    return await app_deps.trigger_sweep()


@router.get("/admin/expiring-users", response_model=list[ExpiringUser], tags=["lifecycle"])
async def expiring_users(
    days: int = Query(default=7, ge=1, le=365),
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> list[ExpiringUser]:
    return service.list_expiring(days)


@router.put("/users/{user_id}/expiry", response_model=ExpiryResponse, tags=["lifecycle"])
async def set_user_expiry(
    user_id: str,
    body: ExpiryUpdate,
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ExpiryResponse:
    user = service.set_expiry(user_id, body.expires_at)
    return ExpiryResponse(
        user_id=user.id,
        expires_at=user.expires_at,
        expiry_warning_sent=user.expiry_warning_sent,
    )


@router.get("/roles/preview", response_model=RolePreview, tags=["roles"])
async def preview_role(groups: list[str] = Query(default=[])) -> RolePreview:
    role = map_groups_to_role(groups)
    return RolePreview(role=role, policy=policy_for_role(role).to_downstream())
