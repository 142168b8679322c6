"""
TitleDesk Backend — Document Type Masters
===========================================

What:  Master lists of the document kinds the firm produces, one list for
       application-level documents (default .pdf) and one for
       company-level documents (default .docx).
How:   Both tables share the same columns through DocumentTypeMixin so a
       single DocumentTypeService can serve either model.
"""

from sqlalchemy import Boolean, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from titledesk.database import Base
from titledesk.models.mixins import TimestampMixin


class DocumentTypeMixin(TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    is_uploaded: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
        comment="Document is uploaded as a finished file",
    )
    is_generate: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
        comment="Document is generated from a template",
    )


class ApplicationDocumentType(DocumentTypeMixin, Base):
    __tablename__ = "application_document_types"

    document_format: Mapped[str] = mapped_column(
        String(20), nullable=False, default=".pdf", server_default=text("'.pdf'")
    )


class CompanyDocumentType(DocumentTypeMixin, Base):
    __tablename__ = "company_document_types"

    document_format: Mapped[str] = mapped_column(
        String(20), nullable=False, default=".docx", server_default=text("'.docx'")
    )
