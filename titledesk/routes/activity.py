"""
TitleDesk Backend — Notification, Audit Log, Settings & Dashboard Routes
==========================================================================

What:  The smaller read-mostly resources:
           /api/notifications       the caller's own notifications
           /api/audit-logs          audit trail (view_audit_logs)
           /api/app-settings        typed business settings
           /api/dashboard/stats     landing page aggregates
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.database import get_db_session
from titledesk.dependencies import get_current_user, require_permissions
from titledesk.models.user import User
from titledesk.routes import error_responses
from titledesk.schemas.activity import AuditLogListResponse, NotificationListResponse
from titledesk.schemas.app_settings import AppSettings, AppSettingsUpdate, AppSettingsUpdateResponse
from titledesk.schemas.common import MessageResponse
from titledesk.schemas.dashboard import DashboardStats
from titledesk.services.app_settings_service import app_settings_store
from titledesk.services.audit_log_service import audit_log_service
from titledesk.services.dashboard_service import dashboard_service
from titledesk.services.notification_service import notification_service

router = APIRouter(prefix="/api")


# ── Notifications ─────────────────────────────────────────────────────────

@router.get(
    "/notifications",
    response_model=NotificationListResponse,
    responses=error_responses(401, 403),
    tags=["Notifications"],
)
async def list_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationListResponse:
    return await notification_service.list_for_user(db, user.id)


@router.put(
    "/notifications/read-all",
    response_model=MessageResponse,
    responses=error_responses(401, 403),
    tags=["Notifications"],
)
async def mark_all_notifications_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    count = await notification_service.mark_all_read(db, user.id)
    return MessageResponse(message=f"{count} notifications marked as read")


@router.put(
    "/notifications/{notification_id}/read",
    response_model=MessageResponse,
    responses=error_responses(401, 403, 404),
    tags=["Notifications"],
)
async def mark_notification_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.mark_read(db, user.id, notification_id)
    return MessageResponse(message="Notification marked as read")


@router.delete(
    "/notifications/{notification_id}",
    response_model=MessageResponse,
    responses=error_responses(401, 403, 404),
    tags=["Notifications"],
)
async def delete_notification(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.delete(db, user.id, notification_id)
    return MessageResponse(message="Notification deleted")


# ── Audit logs ────────────────────────────────────────────────────────────

@router.get(
    "/audit-logs",
    response_model=AuditLogListResponse,
    responses=error_responses(401, 403),
    tags=["Audit Logs"],
)
async def list_audit_logs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    search: Optional[str] = Query(default=None, description="User name, action or details"),
    module: Optional[str] = Query(default=None),
    user: User = Depends(require_permissions("view_audit_logs")),
    db: AsyncSession = Depends(get_db_session),
) -> AuditLogListResponse:
    return await audit_log_service.list_logs(db, page=page, limit=limit, search=search, module=module)


# ── App settings ──────────────────────────────────────────────────────────

@router.get("/app-settings", response_model=AppSettings, responses=error_responses(401, 403), tags=["Settings"])
async def get_app_settings(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AppSettings:
    return await app_settings_store.get(db)


@router.put(
    "/app-settings",
    response_model=AppSettingsUpdateResponse,
    responses=error_responses(400, 401, 403),
    tags=["Settings"],
)
async def update_app_settings(
    payload: AppSettingsUpdate,
    user: User = Depends(require_permissions("manage_settings")),
    db: AsyncSession = Depends(get_db_session),
) -> AppSettingsUpdateResponse:
    updated = await app_settings_store.update(db, payload)
    return AppSettingsUpdateResponse(message="Settings updated successfully", settings=updated)


# ── Dashboard ─────────────────────────────────────────────────────────────

@router.get("/dashboard/stats", response_model=DashboardStats, responses=error_responses(401, 403), tags=["Dashboard"])
async def dashboard_stats(
    user: User = Depends(require_permissions("view_dashboard")),
    db: AsyncSession = Depends(get_db_session),
) -> DashboardStats:
    return await dashboard_service.get_stats(db)
