"""Audit log ORM model."""

import datetime as dt
from typing import Optional

from sqlalchemy import TIMESTAMP, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from titledesk.database import Base
from titledesk.models.mixins import utcnow


class AuditLog(Base):
    """
    One recorded user action.

    `user_name` is denormalized so entries stay readable after the user is
    deleted (user_id becomes NULL).
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    user_name: Mapped[Optional[str]] = mapped_column(String(255))
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    module: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[dt.datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_audit_logs_created_at", created_at.desc()),
        Index("idx_audit_logs_module", "module"),
    )
