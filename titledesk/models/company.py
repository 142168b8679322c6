"""
TitleDesk Backend — Company Models
====================================

What:  Client companies (banks, NBFCs) that send title files, and the
       OneDrive documents generated for them.

Notes:
    - emails: notification recipients, stored as a JSON list of strings
    - files: removed with the company (ON DELETE CASCADE + ORM cascade)
"""

import datetime as dt
from typing import List, Optional

from sqlalchemy import JSON, TIMESTAMP, ForeignKey, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from titledesk.database import Base
from titledesk.models.mixins import TimestampMixin, utcnow

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONList = JSON().with_variant(JSONB(), "postgresql")


class Company(TimestampMixin, Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    address: Mapped[Optional[str]] = mapped_column(Text)
    emails: Mapped[List[str]] = mapped_column(
        JSONList,
        nullable=False,
        default=list,
        server_default=text("'[]'"),
        comment="Notification email addresses",
    )

    files: Mapped[List["CompanyFile"]] = relationship(
        back_populates="company",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="CompanyFile.created_date_time",
    )

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name='{self.name}')>"


class CompanyFile(Base):
    """A OneDrive file linked to a company (letterpads, templates)."""

    __tablename__ = "company_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    web_url: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[Optional[str]] = mapped_column(String(255))
    created_by: Mapped[Optional[str]] = mapped_column(String(255))
    created_date_time: Mapped[dt.datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    company: Mapped["Company"] = relationship(back_populates="files")
