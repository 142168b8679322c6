"""
TitleDesk Backend — User Administration and Dashboard Helper Tests
====================================================================
"""

from datetime import datetime, timezone

import pytest

from titledesk.exceptions import NotFoundError, ValidationError
from titledesk.schemas.common import parse_bulk_ids
from titledesk.services.dashboard_service import last_months, month_label, percentage
from titledesk.services.user_service import UserService


class TestUserService:
    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, mock_db_session, make_user):
        with pytest.raises(ValidationError, match="own account"):
            await self.service.delete_user(mock_db_session, make_user(user_id=3), 3)
        mock_db_session.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_other_user(self, mock_db_session, make_user):
        target = make_user(user_id=8)
        mock_db_session.get.return_value = target
        await self.service.delete_user(mock_db_session, make_user(user_id=3), 8)
        mock_db_session.delete.assert_awaited_once_with(target)

    @pytest.mark.asyncio
    async def test_force_logout_stamps_cutoff(self, mock_db_session, make_user):
        target = make_user(user_id=8)
        mock_db_session.get.return_value = target
        before = datetime.now(timezone.utc)

        response = await self.service.force_logout(mock_db_session, 8)

        assert target.last_forced_logout_at >= before
        assert response.last_forced_logout_at == target.last_forced_logout_at

    @pytest.mark.asyncio
    async def test_force_logout_unknown_user(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.force_logout(mock_db_session, 404)

    @pytest.mark.asyncio
    async def test_duplicate_email(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(first=(1,))
        with pytest.raises(ValidationError, match="Email already exists"):
            await self.service._ensure_email_free(mock_db_session, "taken@example.com")


class TestBulkIds:
    def test_deduplicates_in_order(self):
        assert parse_bulk_ids({"ids": [3, 1, 3]}) == [3, 1]

    @pytest.mark.parametrize("body", [None, [], {}, {"ids": []}, {"ids": [True]}, {"ids": ["1"]}])
    def test_rejects_malformed(self, body):
        with pytest.raises(ValueError):
            parse_bulk_ids(body)


class TestDashboardHelpers:
    def test_last_months_crosses_year(self):
        now = datetime(2025, 2, 14, tzinfo=timezone.utc)
        assert last_months(now, 4) == [(2024, 11), (2024, 12), (2025, 1), (2025, 2)]

    def test_month_label(self):
        assert month_label(2024, 5) == "May 2024"

    def test_percentage(self):
        assert percentage(1, 3) == 33.3
        assert percentage(5, 0) == 0.0
