"""
TitleDesk Backend — Application Models
========================================

What:  ORM models for title files ("applications") and the rows that hang
       off them: queries, generated documents, uploaded PDFs.
Who:   Used by ApplicationService, OneDriveService and DashboardService.

Table Design:
    - file_number: unique, human-readable (e.g. ULF-1042); produced by
      FileNumberGenerator unless the client supplies one
    - company / branch_name: stored as names, not FKs. Access scoping
      compares these against the names of a user's assigned companies.
    - status: workflow state. 'deleted' is the soft-delete marker; rows
      are never removed through the API.
    - queries: raised issues; never hard-deleted, only resolved/unresolved
"""

import enum
import datetime as dt
from typing import List, Optional

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from titledesk.database import Base
from titledesk.models.mixins import TimestampMixin, utcnow


class ApplicationStatus(str, enum.Enum):
    """Workflow states of an application."""

    LOGIN = "Login"
    QUERY = "Query"
    BLOCKED = "Blocked"
    TSRPDF = "TSRPDF"
    MODIFY = "Modify"
    COMPLETED = "Completed"
    DELETED = "deleted"


class Application(TimestampMixin, Base):
    """
    One property title file moving through the verification workflow.

    Lifecycle:
        1. Created with status 'Login' and a generated file number
        2. Status moves through Query/Blocked/TSRPDF/Modify as work progresses
        3. Ends at 'Completed', or 'deleted' when soft-deleted
    """

    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    file_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Human-readable unique identifier, {prefix}-{padded sequence}",
    )
    date: Mapped[Optional[dt.date]] = mapped_column(
        Date,
        nullable=True,
        comment="Application date as written on the file",
    )

    company: Mapped[Optional[str]] = mapped_column(String(255), comment="Company name")
    company_reference: Mapped[Optional[str]] = mapped_column(String(255))
    applicant_name: Mapped[Optional[str]] = mapped_column(String(255))
    proposed_owner: Mapped[Optional[str]] = mapped_column(String(255))
    current_owner: Mapped[Optional[str]] = mapped_column(String(255))
    branch_name: Mapped[Optional[str]] = mapped_column(String(255), comment="Branch name")
    property_address: Mapped[Optional[str]] = mapped_column(Text)
    city: Mapped[Optional[str]] = mapped_column(String(120))

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=ApplicationStatus.LOGIN.value,
        server_default=text("'Login'"),
        comment="Workflow state: Login, Query, Blocked, TSRPDF, Modify, Completed, deleted",
    )
    send_to_mail: Mapped[Optional[str]] = mapped_column(String(255))

    # Populated best-effort when the OneDrive folder is created
    onedrive_folder_id: Mapped[Optional[str]] = mapped_column(String(255))
    onedrive_folder_url: Mapped[Optional[str]] = mapped_column(Text)

    created_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    queries: Mapped[List["ApplicationQuery"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationQuery.id",
    )
    documents: Mapped[List["ApplicationDocument"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationDocument.created_date_time",
    )
    pdf_uploads: Mapped[List["ApplicationPdfUpload"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationPdfUpload.uploaded_at",
    )

    __table_args__ = (
        Index("idx_applications_status", "status"),
        Index("idx_applications_company", "company"),
        Index("idx_applications_created_at", "created_at"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.status == ApplicationStatus.DELETED.value

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, file_number='{self.file_number}', status='{self.status}')>"


class ApplicationQuery(TimestampMixin, Base):
    """
    An issue raised against an application.

    resolved_by / resolved_date are set together when the query is
    resolved and cleared together when it is reopened.
    """

    __tablename__ = "application_queries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date: Mapped[Optional[dt.date]] = mapped_column(Date)
    query_details: Mapped[str] = mapped_column(Text, nullable=False)
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    raised_by: Mapped[Optional[str]] = mapped_column(String(255))
    is_resolved: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    resolved_by: Mapped[Optional[str]] = mapped_column(String(255))
    resolved_date: Mapped[Optional[dt.date]] = mapped_column(Date)

    application: Mapped["Application"] = relationship(back_populates="queries")


class ApplicationDocument(Base):
    """A document generated into the application's OneDrive folder."""

    __tablename__ = "application_documents"

    # Graph drive item id
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    web_url: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[Optional[str]] = mapped_column(String(255))
    source_file_id: Mapped[Optional[str]] = mapped_column(String(255))
    created_date_time: Mapped[dt.datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    application: Mapped["Application"] = relationship(back_populates="documents")


class ApplicationPdfUpload(Base):
    """
    A PDF uploaded for one document slot (title) of an application.

    One row per (application, title); re-uploading replaces the row unless
    it is locked.
    """

    __tablename__ = "application_pdf_uploads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    pdf_doc_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("application_document_types.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_id: Mapped[Optional[str]] = mapped_column(String(255))
    file_url: Mapped[Optional[str]] = mapped_column(Text)
    path: Mapped[Optional[str]] = mapped_column(Text)
    uploaded_by: Mapped[Optional[str]] = mapped_column(String(255))
    uploaded_at: Mapped[dt.datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    is_locked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    application: Mapped["Application"] = relationship(back_populates="pdf_uploads")

    __table_args__ = (
        UniqueConstraint("application_id", "title", name="uq_pdf_uploads_application_title"),
    )
