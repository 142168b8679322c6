"""
TitleDesk Backend — User Management Routes
============================================

What:  /api/users CRUD and forced logout, for administrators.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.database import get_db_session
from titledesk.dependencies import require_permissions
from titledesk.models.user import User
from titledesk.routes import error_responses
from titledesk.schemas.common import MessageResponse
from titledesk.schemas.user import UserCreate, UserListResponse, UserResponse, UserUpdate
from titledesk.services.user_service import user_service

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("", response_model=UserListResponse, responses=error_responses(401, 403))
async def list_users(
    user: User = Depends(require_permissions("view_users")),
    db: AsyncSession = Depends(get_db_session),
) -> UserListResponse:
    return UserListResponse(users=await user_service.list_users(db))


@router.get("/{user_id}", response_model=UserResponse, responses=error_responses(401, 403, 404))
async def get_user(
    user_id: int,
    user: User = Depends(require_permissions("view_users")),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.get_user(db, user_id)


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 401, 403),
)
async def create_user(
    payload: UserCreate,
    user: User = Depends(require_permissions("add_users")),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.create_user(db, payload)


@router.put("/{user_id}", response_model=UserResponse, responses=error_responses(400, 401, 403, 404))
async def update_user(
    user_id: int,
    payload: UserUpdate,
    user: User = Depends(require_permissions("edit_users")),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.update_user(db, user_id, payload)


@router.delete("/{user_id}", response_model=MessageResponse, responses=error_responses(400, 401, 403, 404))
async def delete_user(
    user_id: int,
    user: User = Depends(require_permissions("delete_users")),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.delete_user(db, user, user_id)
    return MessageResponse(message="User deleted")


@router.post(
    "/{user_id}/force-logout",
    response_model=UserResponse,
    responses=error_responses(401, 403, 404),
    summary="Invalidate every token issued to the user so far",
)
async def force_logout(
    user_id: int,
    user: User = Depends(require_permissions("edit_users")),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.force_logout(db, user_id)
