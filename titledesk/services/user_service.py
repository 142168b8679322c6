"""
TitleDesk Backend — User Service
==================================

What:  Admin-side user management: CRUD, role assignment, per-user
       permission overrides and forced logout.

Overrides:
    `permissions` on create/update is the complete override set; it
    replaces whatever the user had. Unknown slugs are rejected with 400.

Forced logout:
    Stamps last_forced_logout_at = now. AuthService rejects any token
    issued before that instant.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.exceptions import NotFoundError, ValidationError
from titledesk.models.user import Permission, Role, User
from titledesk.schemas.user import UserCreate, UserResponse, UserUpdate
from titledesk.security import hash_password

logger = logging.getLogger(__name__)


async def resolve_permissions(db: AsyncSession, slugs: Iterable[str]) -> List[Permission]:
    """Permission rows for `slugs`; 400 listing any slug that does not exist."""
    wanted = sorted(set(slugs))
    if not wanted:
        return []
    result = await db.execute(select(Permission).where(Permission.slug.in_(wanted)))
    found = list(result.scalars().all())
    missing = sorted(set(wanted) - {p.slug for p in found})
    if missing:
        raise ValidationError(
            message=f"Unknown permissions: {', '.join(missing)}",
            field="permissions",
            context={"unknown": missing},
        )
    return found


class UserService:
    async def list_users(self, db: AsyncSession) -> List[UserResponse]:
        result = await db.execute(select(User).order_by(User.id))
        return [UserResponse.from_user(u) for u in result.scalars().all()]

    async def _get(self, db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        return user

    async def get_user(self, db: AsyncSession, user_id: int) -> UserResponse:
        return UserResponse.from_user(await self._get(db, user_id))

    async def _ensure_email_free(self, db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(User.id).where(func.lower(User.email) == email.lower())
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        result = await db.execute(stmt)
        if result.first() is not None:
            raise ValidationError(message="Email already exists", field="email")

    async def _resolve_role(
        self,
        db: AsyncSession,
        role_id: Optional[int],
        role_name: Optional[str],
    ) -> Optional[Role]:
        if role_id is not None:
            role = await db.get(Role, role_id)
            if role is None:
                raise ValidationError(message=f"Role {role_id} does not exist", field="roleId")
            return role
        if role_name:
            result = await db.execute(select(Role).where(Role.name == role_name))
            role = result.scalar_one_or_none()
            if role is None:
                raise ValidationError(message=f"Role '{role_name}' does not exist", field="role")
            return role
        return None

    async def create_user(self, db: AsyncSession, payload: UserCreate) -> UserResponse:
        email = str(payload.email).lower()
        await self._ensure_email_free(db, email)
        role = await self._resolve_role(db, payload.role_id, payload.role)
        overrides = await resolve_permissions(db, payload.permissions)

        user = User(
            first_name=payload.first_name,
            middle_name=payload.middle_name,
            last_name=payload.last_name,
            email=email,
            username=payload.username,
            password_hash=hash_password(payload.password),
            role=role,
            status=payload.status,
            phone=payload.phone,
            avatar=payload.avatar,
            address=payload.address,
            branch_id=payload.branch_id,
            assigned_companies=list(payload.assigned_companies),
            permission_overrides=overrides,
        )
        db.add(user)
        await db.flush()
        logger.info("Created user %s (id=%s)", user.email, user.id)
        return UserResponse.from_user(user)

    async def update_user(self, db: AsyncSession, user_id: int, payload: UserUpdate) -> UserResponse:
        user = await self._get(db, user_id)
        changes = payload.model_dump(exclude_unset=True)

        email = changes.pop("email", None)
        if email:
            email = str(email).lower()
            if email != user.email.lower():
                await self._ensure_email_free(db, email, exclude_id=user.id)
            user.email = email

        password = changes.pop("password", None)
        if password:
            user.password_hash = hash_password(password)

        role_id = changes.pop("role_id", None)
        role_name = changes.pop("role", None)
        if role_id is not None or role_name:
            user.role = await self._resolve_role(db, role_id, role_name)

        slugs = changes.pop("permissions", None)
        if slugs is not None:
            user.permission_overrides = await resolve_permissions(db, slugs)

        if changes.get("assigned_companies") is None:
            changes.pop("assigned_companies", None)
        for field, value in changes.items():
            if value is None and field in ("username", "status"):
                continue
            setattr(user, field, value)

        await db.flush()
        return UserResponse.from_user(user)

    async def delete_user(self, db: AsyncSession, actor: User, user_id: int) -> None:
        if actor.id == user_id:
            raise ValidationError(message="You cannot delete your own account")
        user = await self._get(db, user_id)
        await db.delete(user)
        await db.flush()
        logger.info("Deleted user id=%s", user_id)

    async def force_logout(self, db: AsyncSession, user_id: int) -> UserResponse:
        user = await self._get(db, user_id)
        user.last_forced_logout_at = datetime.now(timezone.utc)
        await db.flush()
        logger.info("Forced logout for user id=%s", user_id)
        return UserResponse.from_user(user)


user_service = UserService()
