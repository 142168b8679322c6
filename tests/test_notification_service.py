"""
TitleDesk Backend — Notification Service Tests
================================================

What:  Per-user notifications: listing order, unread count, and the
       read/delete operations that must never touch another user's rows.
How:   Listing and updates run on a real SQLite session; the best-effort
       create path is checked against the mocked session.
"""

from datetime import datetime, timedelta, timezone

import pytest

from titledesk.exceptions import NotFoundError
from titledesk.models.notification import Notification
from titledesk.models.user import User
from titledesk.services.notification_service import LIST_LIMIT, NotificationService

T0 = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


async def seed_users(db, *user_ids):
    for user_id in user_ids:
        db.add(User(id=user_id, email=f"u{user_id}@example.com", username=f"u{user_id}", password_hash="x"))
    await db.flush()


def note(user_id: int, title: str, minutes: int, is_read: bool = False) -> Notification:
    return Notification(
        user_id=user_id,
        title=title,
        message=f"{title} message",
        is_read=is_read,
        created_at=T0 + timedelta(minutes=minutes),
    )


class TestCreateNotification:
    def setup_method(self):
        self.service = NotificationService()

    @pytest.mark.asyncio
    async def test_unknown_type_falls_back_to_info(self, mock_db_session):
        created = await self.service.create_notification(mock_db_session, 4, "Query raised", "ULF-1", type="urgent")

        assert created.type == "info"
        mock_db_session.add.assert_called_once_with(created)

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, mock_db_session):
        mock_db_session.begin_nested.side_effect = RuntimeError("savepoint failed")
        assert await self.service.create_notification(mock_db_session, 4, "Query raised", "ULF-1") is None


class TestUserNotifications:
    def setup_method(self):
        self.service = NotificationService()

    @pytest.mark.asyncio
    async def test_unread_first_then_newest(self, sqlite_session):
        await seed_users(sqlite_session, 1, 2)
        sqlite_session.add_all(
            [
                note(1, "old unread", 0),
                note(1, "newest but read", 30, is_read=True),
                note(1, "new unread", 20),
                note(2, "someone else", 40),
            ]
        )
        await sqlite_session.flush()

        listing = await self.service.list_for_user(sqlite_session, 1)

        assert [n.title for n in listing.notifications] == ["new unread", "old unread", "newest but read"]
        assert listing.unread_count == 2

    @pytest.mark.asyncio
    async def test_list_is_capped(self, sqlite_session):
        await seed_users(sqlite_session, 1)
        sqlite_session.add_all([note(1, f"n{i}", i) for i in range(LIST_LIMIT + 5)])
        await sqlite_session.flush()

        listing = await self.service.list_for_user(sqlite_session, 1)

        assert len(listing.notifications) == LIST_LIMIT
        assert listing.unread_count == LIST_LIMIT + 5

    @pytest.mark.asyncio
    async def test_cannot_touch_other_users_notifications(self, sqlite_session):
        await seed_users(sqlite_session, 1, 2)
        theirs = note(2, "theirs", 0)
        sqlite_session.add(theirs)
        await sqlite_session.flush()

        with pytest.raises(NotFoundError):
            await self.service.mark_read(sqlite_session, 1, theirs.id)
        with pytest.raises(NotFoundError):
            await self.service.delete(sqlite_session, 1, theirs.id)

        await sqlite_session.refresh(theirs)
        assert theirs.is_read is False

    @pytest.mark.asyncio
    async def test_mark_all_read_counts_only_unread(self, sqlite_session):
        await seed_users(sqlite_session, 1, 2)
        sqlite_session.add_all([note(1, "a", 0), note(1, "b", 1), note(1, "c", 2, is_read=True), note(2, "d", 3)])
        await sqlite_session.flush()

        assert await self.service.mark_all_read(sqlite_session, 1) == 2
        assert (await self.service.list_for_user(sqlite_session, 1)).unread_count == 0
        assert (await self.service.list_for_user(sqlite_session, 2)).unread_count == 1

    @pytest.mark.asyncio
    async def test_delete_own_notification(self, sqlite_session):
        await seed_users(sqlite_session, 1)
        mine = note(1, "mine", 0)
        sqlite_session.add(mine)
        await sqlite_session.flush()

        await self.service.delete(sqlite_session, 1, mine.id)

        assert (await self.service.list_for_user(sqlite_session, 1)).notifications == []
