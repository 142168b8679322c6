"""
TitleDesk Backend — Administrator Bootstrap Tests
===================================================
"""

import pytest

from titledesk.exceptions import NotFoundError, ValidationError
from titledesk.models.user import Role
from titledesk.security import verify_password
from titledesk.seed import seed_admin

ADMIN_ROLE = Role(id=1, name="Admin")


class TestSeedAdmin:
    @pytest.mark.asyncio
    async def test_creates_admin_when_missing(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(one=ADMIN_ROLE), make_result(one=None)]

        user, created = await seed_admin(mock_db_session, " Ops@Example.com ", "S3cure!pass")

        assert created is True
        assert user.email == "ops@example.com"
        assert user.username == "admin"
        assert user.role is ADMIN_ROLE
        assert user.status == "active"
        assert verify_password("S3cure!pass", user.password_hash)
        mock_db_session.add.assert_called_once_with(user)

    @pytest.mark.asyncio
    async def test_existing_account_is_promoted(self, mock_db_session, make_result, make_user):
        existing = make_user(user_id=4, role="User", status="inactive", email="ops@example.com")
        mock_db_session.execute.side_effect = [make_result(one=ADMIN_ROLE), make_result(one=existing)]

        user, created = await seed_admin(mock_db_session, "ops@example.com", "N3w!password")

        assert created is False
        assert user is existing
        assert user.role_name == "Admin"
        assert user.status == "active"
        assert verify_password("N3w!password", user.password_hash)
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_needs_seeded_admin_role(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(one=None)
        with pytest.raises(NotFoundError):
            await seed_admin(mock_db_session, "ops@example.com", "S3cure!pass")

    @pytest.mark.asyncio
    async def test_weak_password_rejected(self, mock_db_session):
        with pytest.raises(ValidationError, match="uppercase"):
            await seed_admin(mock_db_session, "ops@example.com", "weakpass1!")
        mock_db_session.execute.assert_not_awaited()
