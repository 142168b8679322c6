"""Notification and audit log schemas."""

import datetime as dt
from typing import List, Optional

from titledesk.schemas.common import CamelModel


class NotificationResponse(CamelModel):
    id: int
    title: str
    message: str
    type: str
    link: Optional[str] = None
    is_read: bool
    created_at: dt.datetime


class NotificationListResponse(CamelModel):
    notifications: List[NotificationResponse]
    unread_count: int


class AuditLogResponse(CamelModel):
    id: int
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    action: str
    module: str
    details: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: dt.datetime


class AuditLogListResponse(CamelModel):
    logs: List[AuditLogResponse]
    total: int
    page: int
    total_pages: int
