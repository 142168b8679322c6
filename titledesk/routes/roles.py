"""
TitleDesk Backend — Role & Permission Routes
==============================================

What:  /api/roles CRUD and the read-only /api/permissions catalogue.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.database import get_db_session
from titledesk.dependencies import get_current_user, require_permissions
from titledesk.models.user import User
from titledesk.routes import error_responses
from titledesk.schemas.common import MessageResponse
from titledesk.schemas.user import (
    PermissionListResponse,
    RoleCreate,
    RoleListResponse,
    RoleResponse,
    RoleUpdate,
)
from titledesk.services.role_service import role_service

router = APIRouter(prefix="/api", tags=["Roles"])


@router.get("/roles", response_model=RoleListResponse, responses=error_responses(401, 403))
async def list_roles(
    user: User = Depends(require_permissions("view_roles")),
    db: AsyncSession = Depends(get_db_session),
) -> RoleListResponse:
    return RoleListResponse(roles=await role_service.list_roles(db))


@router.get("/roles/{role_id}", response_model=RoleResponse, responses=error_responses(401, 403, 404))
async def get_role(
    role_id: int,
    user: User = Depends(require_permissions("view_roles")),
    db: AsyncSession = Depends(get_db_session),
) -> RoleResponse:
    return await role_service.get_role(db, role_id)


@router.post(
    "/roles",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 401, 403, 409),
)
async def create_role(
    payload: RoleCreate,
    user: User = Depends(require_permissions("add_roles")),
    db: AsyncSession = Depends(get_db_session),
) -> RoleResponse:
    return await role_service.create_role(db, payload)


@router.put("/roles/{role_id}", response_model=RoleResponse, responses=error_responses(400, 401, 403, 404, 409))
async def update_role(
    role_id: int,
    payload: RoleUpdate,
    user: User = Depends(require_permissions("edit_roles")),
    db: AsyncSession = Depends(get_db_session),
) -> RoleResponse:
    return await role_service.update_role(db, role_id, payload)


@router.delete(
    "/roles/{role_id}",
    response_model=MessageResponse,
    responses=error_responses(401, 403, 404, 409),
    summary="Delete a role that has no users",
)
async def delete_role(
    role_id: int,
    user: User = Depends(require_permissions("delete_roles")),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await role_service.delete_role(db, role_id)
    return MessageResponse(message="Role deleted")


@router.get(
    "/permissions",
    response_model=PermissionListResponse,
    responses=error_responses(401, 403),
    tags=["Permissions"],
)
async def list_permissions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PermissionListResponse:
    return PermissionListResponse(permissions=await role_service.list_permissions(db))
