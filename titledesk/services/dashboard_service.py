"""
TitleDesk Backend — Dashboard Service
=======================================

What:  Aggregate counts for the dashboard landing page.
How:   Plain aggregate queries; deleted applications are excluded from
       every application-derived figure. The monthly trend buckets
       created_at in Python so the same code runs on PostgreSQL and SQLite.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.models.application import Application, ApplicationQuery, ApplicationStatus
from titledesk.models.branch import Branch
from titledesk.models.company import Company
from titledesk.models.user import User
from titledesk.schemas.application import ApplicationResponse
from titledesk.schemas.dashboard import (
    DashboardStats,
    DashboardSummary,
    MonthCount,
    NamedCount,
    StatusCount,
)

logger = logging.getLogger(__name__)

TREND_MONTHS = 6
TOP_N = 5
RECENT_N = 5

NOT_DELETED = Application.status != ApplicationStatus.DELETED.value


def last_months(now: datetime, count: int = TREND_MONTHS) -> List[Tuple[int, int]]:
    """(year, month) pairs, oldest first, ending with the month of `now`."""
    months = []
    year, month = now.year, now.month
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


def month_label(year: int, month: int) -> str:
    return datetime(year, month, 1).strftime("%b %Y")


def percentage(part: int, whole: int) -> float:
    return round(part * 100.0 / whole, 1) if whole else 0.0


class DashboardService:
    async def _scalar(self, db: AsyncSession, stmt) -> int:
        result = await db.execute(stmt)
        return int(result.scalar() or 0)

    async def _top(self, db: AsyncSession, column) -> List[NamedCount]:
        stmt = (
            select(column, func.count(Application.id).label("n"))
            .where(NOT_DELETED, column.is_not(None), column != "")
            .group_by(column)
            .order_by(func.count(Application.id).desc(), column)
            .limit(TOP_N)
        )
        result = await db.execute(stmt)
        return [NamedCount(name=name, count=n) for name, n in result.all()]

    async def get_stats(self, db: AsyncSession, now: Optional[datetime] = None) -> DashboardStats:
        now = now or datetime.now(timezone.utc)

        status_result = await db.execute(
            select(Application.status, func.count(Application.id))
            .where(NOT_DELETED)
            .group_by(Application.status)
        )
        by_status = {status: count for status, count in status_result.all()}
        total = sum(by_status.values())
        completed = by_status.get(ApplicationStatus.COMPLETED.value, 0)

        months = last_months(now)
        first_year, first_month = months[0]
        start = datetime(first_year, first_month, 1, tzinfo=timezone.utc)
        created_result = await db.execute(
            select(Application.created_at).where(NOT_DELETED, Application.created_at >= start)
        )
        buckets = Counter((c.year, c.month) for c in created_result.scalars().all() if c)

        recent_result = await db.execute(
            select(Application).where(NOT_DELETED).order_by(Application.created_at.desc()).limit(RECENT_N)
        )

        live_queries = (
            select(func.count(ApplicationQuery.id))
            .join(Application, Application.id == ApplicationQuery.application_id)
            .where(NOT_DELETED)
        )
        total_queries = await self._scalar(db, live_queries)
        open_queries = await self._scalar(db, live_queries.where(ApplicationQuery.is_resolved.is_(False)))

        summary = DashboardSummary(
            total_applications=total,
            completed=completed,
            pending=total - completed,
            in_query=by_status.get(ApplicationStatus.QUERY.value, 0),
            companies=await self._scalar(db, select(func.count(Company.id))),
            branches=await self._scalar(db, select(func.count(Branch.id))),
            users=await self._scalar(db, select(func.count(User.id))),
        )
        return DashboardStats(
            summary=summary,
            status_breakdown=[
                StatusCount(status=s, count=c, percentage=percentage(c, total))
                for s, c in sorted(by_status.items(), key=lambda kv: (-kv[1], kv[0]))
            ],
            monthly_trend=[
                MonthCount(month=month_label(y, m), count=buckets.get((y, m), 0)) for y, m in months
            ],
            top_companies=await self._top(db, Application.company),
            top_branches=await self._top(db, Application.branch_name),
            recent_applications=[ApplicationResponse.model_validate(a) for a in recent_result.scalars().all()],
            open_queries=open_queries,
            total_queries=total_queries,
            completion_rate=percentage(completed, total),
        )


dashboard_service = DashboardService()
