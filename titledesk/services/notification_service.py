"""
TitleDesk Backend — Notification Service
==========================================

What:  In-app notifications for the current user.
Who:   Notification routes; ApplicationService (query raised) through
       create_notification().

create_notification() is best-effort like audit logging: it writes inside
a savepoint and returns None instead of raising.
"""

import logging
from typing import Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.exceptions import NotFoundError
from titledesk.models.notification import Notification
from titledesk.schemas.activity import NotificationListResponse, NotificationResponse

logger = logging.getLogger(__name__)

LIST_LIMIT = 50
NOTIFICATION_TYPES = {"info", "success", "warning", "error"}


class NotificationService:
    async def create_notification(
        self,
        db: AsyncSession,
        user_id: int,
        title: str,
        message: str,
        type: str = "info",
        link: Optional[str] = None,
    ) -> Optional[Notification]:
        if type not in NOTIFICATION_TYPES:
            type = "info"
        try:
            async with db.begin_nested():
                notification = Notification(
                    user_id=user_id,
                    title=title,
                    message=message,
                    type=type,
                    link=link,
                )
                db.add(notification)
            return notification
        except Exception as e:
            logger.warning("Could not create notification for user %s: %s", user_id, e)
            return None

    async def list_for_user(self, db: AsyncSession, user_id: int) -> NotificationListResponse:
        """Unread first, then newest first; at most 50 plus the unread total."""
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(
                case((Notification.is_read.is_(False), 0), else_=1),
                Notification.created_at.desc(),
                Notification.id.desc(),
            )
            .limit(LIST_LIMIT)
        )
        result = await db.execute(stmt)
        notifications = result.scalars().all()

        count_result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        unread = count_result.scalar() or 0

        return NotificationListResponse(
            notifications=[NotificationResponse.model_validate(n) for n in notifications],
            unread_count=unread,
        )

    async def mark_read(self, db: AsyncSession, user_id: int, notification_id: int) -> None:
        result = await db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(is_read=True)
        )
        if result.rowcount == 0:
            raise NotFoundError(resource="notification", resource_id=notification_id)

    async def mark_all_read(self, db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        return result.rowcount

    async def delete(self, db: AsyncSession, user_id: int, notification_id: int) -> None:
        result = await db.execute(
            delete(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(resource="notification", resource_id=notification_id)


notification_service = NotificationService()
