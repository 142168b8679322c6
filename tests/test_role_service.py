"""
TitleDesk Backend — Role Service Tests
========================================

What:  Role create/update/delete rules and permission slug resolution.
"""

from unittest.mock import AsyncMock, patch

import pytest

from titledesk.exceptions import ConflictError, NotFoundError, ValidationError
from titledesk.models.user import Permission, Role
from titledesk.schemas.user import RoleCreate, RoleUpdate
from titledesk.services.role_service import RoleService
from titledesk.services.user_service import resolve_permissions


def permission(slug: str) -> Permission:
    module = slug.split("_", 1)[1].title()
    return Permission(slug=slug, name=slug.replace("_", " ").title(), module=module, action=slug.split("_")[0])


class TestResolvePermissions:
    @pytest.mark.asyncio
    async def test_empty_list_skips_the_query(self, mock_db_session):
        assert await resolve_permissions(mock_db_session, []) == []
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_slugs_are_rejected(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(scalars=[permission("view_roles")])
        with pytest.raises(ValidationError, match="fly_planes") as exc_info:
            await resolve_permissions(mock_db_session, ["view_roles", "fly_planes"])
        assert exc_info.value.context["unknown"] == ["fly_planes"]


class TestRoleService:
    def setup_method(self):
        self.service = RoleService()

    @pytest.mark.asyncio
    async def test_delete_role_with_users_conflicts(self, mock_db_session):
        mock_db_session.get.return_value = Role(id=2, name="Reviewer")
        with patch.object(self.service, "user_counts", AsyncMock(return_value={2: 3})):
            with pytest.raises(ConflictError, match="Cannot delete role with assigned users"):
                await self.service.delete_role(mock_db_session, 2)
        mock_db_session.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_unused_role(self, mock_db_session):
        role = Role(id=2, name="Reviewer")
        mock_db_session.get.return_value = role
        with patch.object(self.service, "user_counts", AsyncMock(return_value={})):
            await self.service.delete_role(mock_db_session, 2)
        mock_db_session.delete.assert_awaited_once_with(role)

    @pytest.mark.asyncio
    async def test_delete_missing_role(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.delete_role(mock_db_session, 404)

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(first=(1,))
        with pytest.raises(ConflictError, match="already exists"):
            await self.service.create_role(mock_db_session, RoleCreate(name="Admin"))

    @pytest.mark.asyncio
    async def test_create_role_with_permissions(self, mock_db_session, make_result):
        granted = [permission("view_applications"), permission("view_dashboard")]
        mock_db_session.execute.side_effect = [
            make_result(first=None),
            make_result(scalars=granted),
        ]

        async def assign_id():
            mock_db_session.add.call_args.args[0].id = 7

        mock_db_session.flush.side_effect = assign_id

        response = await self.service.create_role(
            mock_db_session,
            RoleCreate(name=" Reviewer ", permissions=["view_dashboard", "view_applications"]),
        )

        assert response.id == 7
        assert response.name == "Reviewer"
        assert sorted(response.permissions) == ["view_applications", "view_dashboard"]
        assert response.user_count == 0

    @pytest.mark.asyncio
    async def test_update_replaces_permission_set(self, mock_db_session, make_result):
        role = Role(id=2, name="Reviewer", permissions=[permission("view_roles")])
        mock_db_session.get.return_value = role
        mock_db_session.execute.return_value = make_result(scalars=[permission("edit_roles")])

        with patch.object(self.service, "user_counts", AsyncMock(return_value={2: 1})):
            response = await self.service.update_role(
                mock_db_session, 2, RoleUpdate(permissions=["edit_roles"])
            )

        assert response.permissions == ["edit_roles"]
        assert response.user_count == 1
        assert role.name == "Reviewer"
