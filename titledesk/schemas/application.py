"""
TitleDesk Backend — Application Schemas
=========================================

What:  API contracts for applications, their queries, generated documents
       and PDF uploads.

Notes:
    - `fileNumber` on create is optional; when omitted the server
      generates one. On update it is ignored (immutable).
    - Dates accept dd-mm-yyyy (dashboard format) or ISO yyyy-mm-dd and are
      returned as ISO.
"""

import datetime as dt
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from titledesk.schemas.common import CamelModel, Page, parse_flexible_date

WorkflowStatus = Literal["Login", "Query", "Blocked", "TSRPDF", "Modify", "Completed"]


class ApplicationFields(CamelModel):
    """Editable application fields, all optional."""

    date: Optional[dt.date] = Field(default=None, description="Application date")
    company: Optional[str] = Field(default=None, max_length=255)
    company_reference: Optional[str] = Field(default=None, max_length=255)
    applicant_name: Optional[str] = Field(default=None, max_length=255)
    proposed_owner: Optional[str] = Field(default=None, max_length=255)
    current_owner: Optional[str] = Field(default=None, max_length=255)
    branch_name: Optional[str] = Field(default=None, max_length=255)
    property_address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=120)
    status: Optional[WorkflowStatus] = None
    send_to_mail: Optional[str] = Field(default=None, max_length=255)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return parse_flexible_date(v)


class ApplicationCreate(ApplicationFields):
    file_number: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Leave empty to generate the next file number",
    )

    @field_validator("file_number")
    @classmethod
    def blank_file_number_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class ApplicationUpdate(ApplicationFields):
    """Partial update. Unknown keys (including fileNumber) are ignored."""


class QueryResponse(CamelModel):
    id: int
    application_id: int
    date: Optional[dt.date] = None
    query_details: str
    remarks: Optional[str] = None
    raised_by: Optional[str] = None
    is_resolved: bool = False
    resolved_by: Optional[str] = None
    resolved_date: Optional[dt.date] = None
    created_at: Optional[dt.datetime] = None


class QueryCreate(CamelModel):
    date: Optional[dt.date] = None
    query_details: str = Field(min_length=1, description="What needs to be resolved")
    remarks: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return parse_flexible_date(v)


class QueryUpdate(CamelModel):
    """
    Partial query update.

    isResolved=true stamps resolvedBy/resolvedDate with the caller and
    today; isResolved=false clears both.
    """

    date: Optional[dt.date] = None
    query_details: Optional[str] = Field(default=None, min_length=1)
    remarks: Optional[str] = None
    is_resolved: Optional[bool] = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return parse_flexible_date(v)


class GeneratedDocumentResponse(CamelModel):
    id: str = Field(description="OneDrive item id")
    name: str
    web_url: Optional[str] = None
    type: Optional[str] = None
    source_file_id: Optional[str] = None
    created_date_time: Optional[dt.datetime] = None


class PdfUploadResponse(CamelModel):
    id: int
    application_id: int
    pdf_doc_id: Optional[int] = None
    title: str
    file_name: str
    file_id: Optional[str] = None
    file_url: Optional[str] = None
    path: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[dt.datetime] = None
    is_locked: bool = False


class ApplicationResponse(CamelModel):
    """Application row as shown in the list view."""

    id: int
    file_number: str
    date: Optional[dt.date] = None
    company: Optional[str] = None
    company_reference: Optional[str] = None
    applicant_name: Optional[str] = None
    proposed_owner: Optional[str] = None
    current_owner: Optional[str] = None
    branch_name: Optional[str] = None
    property_address: Optional[str] = None
    city: Optional[str] = None
    status: str
    send_to_mail: Optional[str] = None
    onedrive_folder_id: Optional[str] = None
    onedrive_folder_url: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class ApplicationDetailResponse(ApplicationResponse):
    """Full application with queries, generated documents and PDF uploads."""

    queries: List[QueryResponse] = Field(default_factory=list)
    documents: List[GeneratedDocumentResponse] = Field(default_factory=list)
    pdf_uploads: List[PdfUploadResponse] = Field(default_factory=list)


ApplicationPage = Page[ApplicationResponse]
