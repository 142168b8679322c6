"""
TitleDesk Backend — Role Service
==================================

What:  Role CRUD and the read-only permission catalogue.
How:   A role's permission set is always written as a whole: create and
       update replace the association rows inside the request
       transaction, so a failure leaves the previous set intact.

Deletion:
    A role that still has users cannot be deleted (409).
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.exceptions import ConflictError, NotFoundError
from titledesk.models.user import Permission, Role, User
from titledesk.schemas.user import (
    PermissionResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)
from titledesk.services.user_service import resolve_permissions

logger = logging.getLogger(__name__)


class RoleService:
    async def user_counts(self, db: AsyncSession, role_ids: Optional[List[int]] = None) -> Dict[int, int]:
        stmt = select(User.role_id, func.count(User.id)).where(User.role_id.is_not(None)).group_by(User.role_id)
        if role_ids is not None:
            stmt = stmt.where(User.role_id.in_(role_ids))
        result = await db.execute(stmt)
        return {role_id: count for role_id, count in result.all()}

    async def list_roles(self, db: AsyncSession) -> List[RoleResponse]:
        result = await db.execute(select(Role).order_by(Role.name))
        roles = result.scalars().all()
        counts = await self.user_counts(db)
        return [RoleResponse.from_role(r, counts.get(r.id, 0)) for r in roles]

    async def _get(self, db: AsyncSession, role_id: int) -> Role:
        role = await db.get(Role, role_id)
        if role is None:
            raise NotFoundError(resource="role", resource_id=role_id)
        return role

    async def _response(self, db: AsyncSession, role: Role) -> RoleResponse:
        counts = await self.user_counts(db, [role.id])
        return RoleResponse.from_role(role, counts.get(role.id, 0))

    async def get_role(self, db: AsyncSession, role_id: int) -> RoleResponse:
        return await self._response(db, await self._get(db, role_id))

    async def _ensure_unique_name(self, db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(Role.id).where(func.lower(Role.name) == name.strip().lower())
        if exclude_id is not None:
            stmt = stmt.where(Role.id != exclude_id)
        result = await db.execute(stmt)
        if result.first() is not None:
            raise ConflictError(message=f"Role '{name}' already exists")

    async def create_role(self, db: AsyncSession, payload: RoleCreate) -> RoleResponse:
        await self._ensure_unique_name(db, payload.name)
        role = Role(
            name=payload.name.strip(),
            description=payload.description,
            permissions=await resolve_permissions(db, payload.permissions),
        )
        db.add(role)
        await db.flush()
        logger.info("Created role %s with %d permissions", role.name, len(role.permissions))
        return RoleResponse.from_role(role, 0)

    async def update_role(self, db: AsyncSession, role_id: int, payload: RoleUpdate) -> RoleResponse:
        role = await self._get(db, role_id)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("name"):
            await self._ensure_unique_name(db, changes["name"], exclude_id=role.id)
            role.name = changes["name"].strip()
        if "description" in changes:
            role.description = changes["description"]
        if changes.get("permissions") is not None:
            role.permissions = await resolve_permissions(db, changes["permissions"])
        await db.flush()
        return await self._response(db, role)

    async def delete_role(self, db: AsyncSession, role_id: int) -> None:
        role = await self._get(db, role_id)
        counts = await self.user_counts(db, [role.id])
        if counts.get(role.id, 0) > 0:
            raise ConflictError(
                message="Cannot delete role with assigned users.",
                context={"user_count": counts[role.id]},
            )
        await db.delete(role)
        await db.flush()
        logger.info("Deleted role %s", role.name)

    async def list_permissions(self, db: AsyncSession) -> List[PermissionResponse]:
        result = await db.execute(select(Permission).order_by(Permission.module, Permission.name))
        return [
            PermissionResponse(
                id=p.slug,
                slug=p.slug,
                name=p.name,
                description=p.description,
                module=p.module,
                action=p.action,
            )
            for p in result.scalars().all()
        ]


role_service = RoleService()
