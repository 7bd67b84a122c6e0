from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from src.api.deps import get_user_repository, get_workflow_registry, require_roles
from src.api.schemas.users import UserItem, UsersResponse
from src.domain import Principal
from src.domain.services.checkin_workflow import CheckInWorkflowRegistry
from src.infrastructure.repositories import UserRepository

router = APIRouter(prefix="/users", tags=["Users"])
logger = structlog.get_logger()


@router.get("", response_model=UsersResponse)
async def list_users(
    users: UserRepository = Depends(get_user_repository),
    _: Principal = Depends(require_roles(["SUPERVISOR", "ADMIN"])),
) -> UsersResponse:
    """Return every registered user in registration order."""
    return UsersResponse(users=[UserItem.model_validate(user) for user in await users.list_users()])


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    users: UserRepository = Depends(get_user_repository),
    registry: CheckInWorkflowRegistry = Depends(get_workflow_registry),
    admin: Principal = Depends(require_roles(["ADMIN"])),
) -> None:
    """Delete a user together with their check-ins (admin-only)."""
    if user_id == admin.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Administrators cannot delete their own account",
        )

    if not await users.delete_user(user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )

    registry.discard(user_id)
    logger.info("user_deleted_via_api", user_id=user_id, deleted_by=admin.user_id)
