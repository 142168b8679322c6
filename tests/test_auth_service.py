"""
TitleDesk Backend — Auth Service Tests (SQLite)
=================================================

What:  Effective permissions and registration against real SQL.
How:   Roles, permissions and overrides are inserted into an in-memory
       SQLite database, so the UNION query itself is exercised.

Test Strategy:
    - Effective permissions = role permissions ∪ user overrides, sorted,
      without duplicates
    - A user with no role still gets their overrides
    - Registration hands out the default role
"""

import pytest
import pytest_asyncio

from titledesk.exceptions import ValidationError
from titledesk.models.user import Permission, Role, User
from titledesk.schemas.auth import RegisterRequest
from titledesk.services.auth_service import AuthService


def permission(slug: str) -> Permission:
    module, _, action = slug.partition("_")
    return Permission(slug=slug, name=slug.replace("_", " ").title(), module=module, action=action)


@pytest_asyncio.fixture
async def permissions(sqlite_session):
    rows = {
        slug: permission(slug)
        for slug in ("view_applications", "edit_applications", "view_companies", "view_dashboard", "delete_users")
    }
    sqlite_session.add_all(rows.values())
    await sqlite_session.flush()
    return rows


class TestEffectivePermissions:
    def setup_method(self):
        self.service = AuthService()

    @pytest.mark.asyncio
    async def test_union_of_role_and_overrides(self, sqlite_session, permissions):
        reviewer = Role(
            name="Reviewer",
            permissions=[permissions["view_applications"], permissions["view_dashboard"]],
        )
        user = User(
            email="asha@example.com",
            username="asha",
            password_hash="x",
            role=reviewer,
            permission_overrides=[permissions["view_dashboard"], permissions["edit_applications"]],
        )
        bystander = User(
            email="ravi@example.com",
            username="ravi",
            password_hash="x",
            permission_overrides=[permissions["delete_users"]],
        )
        sqlite_session.add_all([reviewer, user, bystander])
        await sqlite_session.flush()

        effective = await self.service.get_effective_permissions(sqlite_session, user.id)

        assert effective == ["edit_applications", "view_applications", "view_dashboard"]

    @pytest.mark.asyncio
    async def test_overrides_without_role(self, sqlite_session, permissions):
        user = User(
            email="ravi@example.com",
            username="ravi",
            password_hash="x",
            permission_overrides=[permissions["view_companies"]],
        )
        sqlite_session.add(user)
        await sqlite_session.flush()

        assert await self.service.get_effective_permissions(sqlite_session, user.id) == ["view_companies"]

    @pytest.mark.asyncio
    async def test_role_only(self, sqlite_session, permissions):
        role = Role(name="Viewer", permissions=[permissions["view_companies"], permissions["view_applications"]])
        user = User(email="meena@example.com", username="meena", password_hash="x", role=role)
        sqlite_session.add_all([role, user])
        await sqlite_session.flush()

        assert await self.service.get_effective_permissions(sqlite_session, user.id) == [
            "view_applications",
            "view_companies",
        ]


class TestRegister:
    def setup_method(self):
        self.service = AuthService()

    @pytest.mark.asyncio
    async def test_new_user_gets_default_role(self, sqlite_session):
        default_role = Role(name="User")
        sqlite_session.add(default_role)
        await sqlite_session.flush()
        payload = RegisterRequest(email="New@Example.com", username="newbie", password="Str0ng!pass")

        user = await self.service.register(sqlite_session, payload)

        assert user.email == "new@example.com"
        assert user.role_id == default_role.id
        assert user.status == "active"

    @pytest.mark.asyncio
    async def test_duplicate_email_any_case(self, sqlite_session):
        sqlite_session.add(User(email="taken@example.com", username="first", password_hash="x"))
        await sqlite_session.flush()
        payload = RegisterRequest(email="TAKEN@example.com", username="second", password="Str0ng!pass")

        with pytest.raises(ValidationError, match="Email already exists"):
            await self.service.register(sqlite_session, payload)
