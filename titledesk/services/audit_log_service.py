"""
TitleDesk Backend — Audit Log Service
=======================================

What:  Records user actions and lists them for the audit screen.
How:   log_action() writes inside a SAVEPOINT (`begin_nested`). If the
       insert fails only the savepoint is rolled back; the caller's
       transaction and response are unaffected.
"""

import logging
import math
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.models.audit_log import AuditLog
from titledesk.schemas.activity import AuditLogListResponse, AuditLogResponse
from titledesk.services.query_builder import FilterSet, ilike_pattern

logger = logging.getLogger(__name__)


class AuditLogService:
    async def log_action(
        self,
        db: AsyncSession,
        user_id: Optional[int],
        user_name: Optional[str],
        action: str,
        module: str,
        details: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """
        Best-effort audit entry. Returns the row, or None if it could not be written.
        """
        try:
            async with db.begin_nested():
                entry = AuditLog(
                    user_id=user_id,
                    user_name=user_name,
                    action=action,
                    module=module,
                    details=details,
                    ip_address=ip_address,
                )
                db.add(entry)
            return entry
        except Exception as e:
            logger.warning("Audit log write failed (%s %s): %s", action, module, e)
            return None

    async def list_logs(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        module: Optional[str] = None,
    ) -> AuditLogListResponse:
        filters = FilterSet()
        filters.add_if(
            search,
            lambda term: or_(
                AuditLog.user_name.ilike(ilike_pattern(term), escape="\\"),
                AuditLog.action.ilike(ilike_pattern(term), escape="\\"),
                AuditLog.details.ilike(ilike_pattern(term), escape="\\"),
            ),
        )
        filters.add_if(module, lambda m: AuditLog.module == m)

        stmt = filters.apply(select(AuditLog)).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        result = await db.execute(stmt.limit(limit).offset((page - 1) * limit))
        logs = result.scalars().all()

        count_result = await db.execute(filters.apply(select(func.count(AuditLog.id))))
        total = count_result.scalar() or 0

        return AuditLogListResponse(
            logs=[AuditLogResponse.model_validate(log) for log in logs],
            total=total,
            page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
        )


audit_log_service = AuditLogService()
