"""
TitleDesk Backend — API Routes Package
========================================

What:  HTTP route handlers, one module per resource.
How:   Routes only handle HTTP concerns (parameters, status codes, the
       permission dependency) and call exactly one service method.

Route Inventory:
    - auth.py:            /api/auth/*
    - applications.py:    /api/applications (+ queries)
    - companies.py:       /api/companies
    - branches.py:        /api/branches, /api/files/{path}
    - document_types.py:  /api/application-documents, /api/company-documents
    - users.py:           /api/users
    - roles.py:           /api/roles, /api/permissions
    - activity.py:        /api/notifications, /api/audit-logs,
                          /api/app-settings, /api/dashboard/stats
    - onedrive.py:        /api/onedrive/*
    - health.py:          /health
"""

from typing import Any, Dict, List

from titledesk.exceptions import ValidationError
from titledesk.schemas.common import ErrorResponse, parse_bulk_ids

_ERROR_DESCRIPTIONS = {
    400: "Invalid request",
    401: "Missing or invalid credentials",
    403: "Insufficient permissions",
    404: "Not found",
    409: "Conflicts with current state",
    502: "OneDrive request failed",
}


def error_responses(*codes: int) -> Dict[int, Dict[str, Any]]:
    """OpenAPI `responses` entries for the given error status codes."""
    return {
        code: {"description": _ERROR_DESCRIPTIONS.get(code, "Error"), "model": ErrorResponse}
        for code in codes
    }


def bulk_ids(body: Any) -> List[int]:
    try:
        return parse_bulk_ids(body)
    except ValueError as e:
        raise ValidationError(message="Invalid ids format", field="ids", context={"reason": str(e)})
