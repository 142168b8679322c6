"""
TitleDesk Backend — Shared Schema Building Blocks
===================================================

What:  Base model with camelCase aliasing, pagination envelope, error and
       health responses, and date parsing shared by several resources.
"""

import datetime as dt
import math
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

# Dates arrive from the dashboard as dd-mm-yyyy; ISO is accepted too
DISPLAY_DATE_FORMAT = "%d-%m-%Y"


class CamelModel(BaseModel):
    """Base for every API schema: camelCase on the wire, ORM-readable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def parse_flexible_date(value: Any) -> Any:
    """
    Coerce 'dd-mm-yyyy' strings into `date`; leave anything else to pydantic.

    Empty strings become None so optional form fields can be cleared.
    """
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return dt.datetime.strptime(stripped, DISPLAY_DATE_FORMAT).date()
        except ValueError:
            return stripped
    return value


class Page(CamelModel, Generic[T]):
    """
    Offset pagination envelope: {items, total, totalPages, currentPage}.

    Used by applications and both document type masters.
    """

    items: List[T] = Field(default_factory=list)
    total: int = Field(default=0, description="Rows matching the filters")
    total_pages: int = Field(default=0, description="ceil(total / limit)")
    current_page: int = Field(default=1, description="1-based page number")

    @classmethod
    def build(cls, items: List[Any], total: int, page: int, limit: int) -> "Page[T]":
        return cls(
            items=items,
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
            current_page=page,
        )


class BulkDeleteResponse(CamelModel):
    message: str
    count: int


class MessageResponse(CamelModel):
    message: str = Field(description="Human-readable outcome")


class ErrorResponse(BaseModel):
    """
    Standard error response format for all error responses.

    Example:
        {
            "error": "not_found",
            "message": "application with ID '42' was not found",
            "details": {"resource": "application", "resource_id": "42"},
            "request_id": "a1b2c3d4"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Dict[str, Any]] = Field(default=None)
    request_id: Optional[str] = Field(default=None)


class HealthResponse(CamelModel):
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float


def parse_bulk_ids(body: Any) -> List[int]:
    """
    Validate a bulk-delete body into a non-empty list of ids.

    Raises ValueError for a missing body, a missing/empty `ids` list or
    non-integer entries; routes turn that into a 400.
    """
    if not isinstance(body, dict):
        raise ValueError("body must be an object")
    ids = body.get("ids")
    if not isinstance(ids, list) or not ids:
        raise ValueError("ids must be a non-empty list")
    if any(isinstance(i, bool) or not isinstance(i, int) for i in ids):
        raise ValueError("ids must be integers")
    return list(dict.fromkeys(ids))
