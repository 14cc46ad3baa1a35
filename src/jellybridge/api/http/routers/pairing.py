from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.jellybridge.api.http.deps import (
    get_authorization_bridge,
    get_local_user_repository,
    require_internal_token,
)
from src.jellybridge.core.exceptions import UnknownUserError
from src.jellybridge.core.models import ApprovalResult
from src.jellybridge.core.services import AuthorizationBridge
from src.jellybridge.entities.local_user import LocalUserRepository

router = APIRouter(
    prefix="/internal/users",
    tags=["pairing"],
    dependencies=[Depends(require_internal_token)],
)


class PairingRequest(BaseModel):
    code: str = Field(description="Code displayed by the device being paired")


@router.post("/{user_id}/pairing/approve", response_model=ApprovalResult)
async def approve_pairing_code(
    user_id: str,
    body: PairingRequest,
    users: LocalUserRepository = Depends(get_local_user_repository),
    bridge: AuthorizationBridge = Depends(get_authorization_bridge),
) -> ApprovalResult:
    user = users.get(user_id)
    if user is None:
        raise UnknownUserError(f"Local user {user_id} not found")
    return await bridge.approve_code(body.code, user)
