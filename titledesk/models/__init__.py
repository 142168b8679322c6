"""
ORM models package.

Importing this package registers every table on `Base.metadata`, which
Alembic and relationship string resolution rely on.
"""

from titledesk.models.app_setting import AppSetting
from titledesk.models.application import (
    Application,
    ApplicationDocument,
    ApplicationPdfUpload,
    ApplicationQuery,
    ApplicationStatus,
)
from titledesk.models.audit_log import AuditLog
from titledesk.models.branch import Branch
from titledesk.models.company import Company, CompanyFile
from titledesk.models.document_type import ApplicationDocumentType, CompanyDocumentType
from titledesk.models.notification import Notification
from titledesk.models.user import Permission, Role, User, role_permissions, user_permissions

__all__ = [
    "AppSetting",
    "Application",
    "ApplicationDocument",
    "ApplicationDocumentType",
    "ApplicationPdfUpload",
    "ApplicationQuery",
    "ApplicationStatus",
    "AuditLog",
    "Branch",
    "Company",
    "CompanyDocumentType",
    "CompanyFile",
    "Notification",
    "Permission",
    "Role",
    "User",
    "role_permissions",
    "user_permissions",
]
