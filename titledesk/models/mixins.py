"""Shared column mixins for ORM models."""

from datetime import datetime, timezone

from sqlalchemy import TIMESTAMP, text
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    Adds `created_at` / `updated_at` columns.

    Both are UTC with time zone; `updated_at` is bumped by SQLAlchemy on
    every ORM UPDATE of the row.
    """

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the row was created (UTC)",
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the row was last modified (UTC)",
    )
