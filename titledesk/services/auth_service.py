"""
TitleDesk Backend — Authentication Service
============================================

What:  Registration, login, password reset, profile and change-password,
       plus the per-request token → user resolution used by the
       permission dependencies.

Request authentication (authenticate_token):
    1. Verify JWT signature/expiry          → 403 "Invalid or expired token"
    2. Load the user named by `sub`         → 401 "User not found"
    3. iat earlier than forced-logout cutoff→ 401 "Session invalidated..."
    4. status != active                     → 403 "Account is inactive"

Effective permissions are recomputed on every call to
get_effective_permissions(); nothing is cached between requests.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, select, union
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.config import settings
from titledesk.exceptions import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from titledesk.models.user import Permission, Role, User, role_permissions, user_permissions
from titledesk.schemas.auth import (
    ChangePasswordRequest,
    CurrentUserResponse,
    ForgotPasswordResponse,
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    RegisterRequest,
    ResetPasswordRequest,
)
from titledesk.security import (
    TokenError,
    create_access_token,
    create_reset_token,
    decode_access_token,
    decode_reset_token,
    hash_password,
    issued_before,
    password_fingerprint,
    verify_password,
)
from titledesk.services.audit_log_service import audit_log_service

logger = logging.getLogger(__name__)

ACTIVE = "active"


def is_admin(user: User) -> bool:
    """Administrators bypass company scoping."""
    return user.role_name == settings.admin_role_name


class AuthService:
    # ── Lookups ───────────────────────────────────────────────────────────

    async def get_user_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_effective_permissions(self, db: AsyncSession, user_id: int) -> List[str]:
        """Role permissions ∪ per-user overrides, as sorted slugs."""
        from_role = (
            select(Permission.slug)
            .join(role_permissions, role_permissions.c.permission_id == Permission.id)
            .join(User, User.role_id == role_permissions.c.role_id)
            .where(User.id == user_id)
        )
        from_overrides = (
            select(Permission.slug)
            .join(user_permissions, user_permissions.c.permission_id == Permission.id)
            .where(user_permissions.c.user_id == user_id)
        )
        result = await db.execute(union(from_role, from_overrides))
        return sorted(set(result.scalars().all()))

    async def authenticate_token(self, db: AsyncSession, token: str) -> User:
        try:
            claims = decode_access_token(token)
            user_id = int(claims["sub"])
        except (TokenError, ValueError) as e:
            logger.info("Rejected token: %s", e)
            raise PermissionDeniedError(message="Invalid or expired token")

        user = await db.get(User, user_id)
        if user is None:
            raise AuthenticationError(message="User not found")
        if issued_before(claims["iat"], user.last_forced_logout_at):
            raise AuthenticationError(message="Session invalidated. Please log in again.")
        if user.status != ACTIVE:
            raise PermissionDeniedError(message="Account is inactive")
        return user

    async def current_user_response(self, db: AsyncSession, user: User) -> CurrentUserResponse:
        permissions = await self.get_effective_permissions(db, user.id)
        return CurrentUserResponse.from_user(user, permissions=permissions)

    # ── Registration & login ──────────────────────────────────────────────

    async def register(self, db: AsyncSession, payload: RegisterRequest) -> User:
        if await self.get_user_by_email(db, payload.email):
            raise ValidationError(message="Email already exists", field="email")

        role_result = await db.execute(select(Role).where(Role.name == settings.default_role_name))
        role = role_result.scalar_one_or_none()

        user = User(
            email=payload.email.lower(),
            username=payload.username,
            first_name=payload.first_name,
            last_name=payload.last_name,
            password_hash=hash_password(payload.password),
            role_id=role.id if role else None,
            status=ACTIVE,
            assigned_companies=[],
        )
        db.add(user)
        await db.flush()
        logger.info("Registered user %s (id=%s)", user.email, user.id)
        return user

    async def login(
        self,
        db: AsyncSession,
        payload: LoginRequest,
        ip_address: Optional[str] = None,
    ) -> LoginResponse:
        user = await self.get_user_by_email(db, payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            raise AuthenticationError(message="Invalid credentials")
        if user.status != ACTIVE:
            raise PermissionDeniedError(message="Account is inactive")

        token = create_access_token(user.id, user.email, user.role_name)
        await audit_log_service.log_action(
            db,
            user_id=user.id,
            user_name=user.full_name,
            action="LOGIN",
            module="Auth",
            details=f"User {user.email} logged in",
            ip_address=ip_address,
        )
        return LoginResponse(token=token, user=await self.current_user_response(db, user))

    # ── Password reset ────────────────────────────────────────────────────

    async def forgot_password(self, db: AsyncSession, email: str) -> ForgotPasswordResponse:
        user = await self.get_user_by_email(db, email)
        if user is None:
            raise NotFoundError(resource="user")

        token = create_reset_token(user.id, user.password_hash)
        logger.info("Password reset requested for user id=%s", user.id)
        return ForgotPasswordResponse(
            message="Password reset instructions have been generated for this account.",
            reset_token=token if settings.expose_reset_token else None,
        )

    async def reset_password(self, db: AsyncSession, payload: ResetPasswordRequest) -> None:
        invalid = ValidationError(message="Invalid or expired reset token", field="token")
        try:
            claims = decode_reset_token(payload.token)
            user_id = int(claims["sub"])
        except (TokenError, ValueError):
            raise invalid

        user = await db.get(User, user_id)
        if user is None or claims.get("fp") != password_fingerprint(user.password_hash):
            raise invalid

        user.password_hash = hash_password(payload.new_password)
        # Sessions opened with the old password end here
        user.last_forced_logout_at = datetime.now(timezone.utc)
        await db.flush()
        logger.info("Password reset completed for user id=%s", user.id)

    # ── Profile ───────────────────────────────────────────────────────────

    async def update_profile(self, db: AsyncSession, user: User, payload: ProfileUpdate) -> User:
        changes = payload.model_dump(exclude_unset=True)
        new_email = changes.get("email")
        if new_email and new_email.lower() != user.email.lower():
            existing = await self.get_user_by_email(db, new_email)
            if existing is not None and existing.id != user.id:
                raise ValidationError(message="Email already exists", field="email")
            changes["email"] = new_email.lower()
        elif "email" in changes and not new_email:
            changes.pop("email")

        for field, value in changes.items():
            setattr(user, field, value)
        await db.flush()
        return user

    async def change_password(
        self,
        db: AsyncSession,
        user: User,
        payload: ChangePasswordRequest,
    ) -> None:
        if not verify_password(payload.current_password, user.password_hash):
            raise ValidationError(message="Incorrect current password", field="currentPassword")
        user.password_hash = hash_password(payload.new_password)
        await db.flush()
        logger.info("Password changed for user id=%s", user.id)


auth_service = AuthService()
