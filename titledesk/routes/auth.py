"""
TitleDesk Backend — Auth Routes
=================================

What:  Registration, login, password reset and the caller's own profile.
Who:   The dashboard login and account pages.

Only register, login, forgot-password and reset-password are public;
the profile endpoints require a valid bearer token.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.database import get_db_session
from titledesk.dependencies import client_ip, get_current_user
from titledesk.models.user import User
from titledesk.routes import error_responses
from titledesk.schemas.auth import (
    ChangePasswordRequest,
    CurrentUserResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    RegisterRequest,
    ResetPasswordRequest,
)
from titledesk.schemas.common import MessageResponse
from titledesk.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400),
    summary="Create an account with the default role",
)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await auth_service.register(db, payload)
    return MessageResponse(message="User registered successfully")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses=error_responses(401, 403),
    summary="Exchange email and password for a JWT",
)
async def login(
    payload: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    return await auth_service.login(db, payload, ip_address=client_ip(request))


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    responses=error_responses(404),
    summary="Start a password reset",
    description=(
        "Creates a single-use reset token bound to the current password. The token "
        "is only included in the response when EXPOSE_RESET_TOKEN is enabled."
    ),
)
async def forgot_password(
    payload: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ForgotPasswordResponse:
    return await auth_service.forgot_password(db, payload.email)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses=error_responses(400),
    summary="Set a new password with a reset token",
)
async def reset_password(
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.reset_password(db, payload)
    return MessageResponse(message="Password has been reset")


@router.get(
    "/profile",
    response_model=CurrentUserResponse,
    responses=error_responses(401, 403),
    summary="The signed-in user with effective permissions",
)
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUserResponse:
    return await auth_service.current_user_response(db, user)


@router.put(
    "/profile",
    response_model=CurrentUserResponse,
    responses=error_responses(400, 401, 403),
    summary="Update the signed-in user's profile",
)
async def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUserResponse:
    user = await auth_service.update_profile(db, user, payload)
    return await auth_service.current_user_response(db, user)


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses=error_responses(400, 401, 403),
    summary="Change password after confirming the current one",
)
async def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.change_password(db, user, payload)
    return MessageResponse(message="Password changed successfully")
