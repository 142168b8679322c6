"""Schemas shared by the application and company document type masters."""

import datetime as dt
from typing import Optional

from pydantic import Field

from titledesk.schemas.common import CamelModel, Page


class DocumentTypeCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    document_format: Optional[str] = Field(
        default=None,
        max_length=20,
        description="File extension such as .pdf or .docx; defaults per master",
    )
    is_uploaded: bool = False
    is_generate: bool = False


class DocumentTypeUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    document_format: Optional[str] = Field(default=None, max_length=20)
    is_uploaded: Optional[bool] = None
    is_generate: Optional[bool] = None


class DocumentTypeResponse(CamelModel):
    id: int
    title: str
    document_format: str
    is_uploaded: bool
    is_generate: bool
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


DocumentTypePage = Page[DocumentTypeResponse]
