"""Company and branch schemas."""

import datetime as dt
from typing import List, Optional

from pydantic import EmailStr, Field

from titledesk.schemas.common import CamelModel


class CompanyCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    address: Optional[str] = None
    emails: List[EmailStr] = Field(default_factory=list, description="Notification recipients")


class CompanyUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address: Optional[str] = None
    emails: Optional[List[EmailStr]] = None


class CompanyDocumentResponse(CamelModel):
    """
    A linked OneDrive file.

    `id` is the OneDrive item id (what the dashboard opens); `dbId` is the
    company_files row id.
    """

    id: str
    db_id: int
    name: str
    web_url: Optional[str] = None
    type: Optional[str] = None
    created_by: Optional[str] = None
    created_date_time: Optional[dt.datetime] = None

    @classmethod
    def from_file(cls, company_file) -> "CompanyDocumentResponse":
        return cls(
            id=company_file.file_id,
            db_id=company_file.id,
            name=company_file.name,
            web_url=company_file.web_url,
            type=company_file.type,
            created_by=company_file.created_by,
            created_date_time=company_file.created_date_time,
        )


class CompanyResponse(CamelModel):
    id: int
    name: str
    address: Optional[str] = None
    emails: List[str] = Field(default_factory=list)
    documents: List[CompanyDocumentResponse] = Field(default_factory=list)
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_company(cls, company) -> "CompanyResponse":
        return cls(
            id=company.id,
            name=company.name,
            address=company.address,
            emails=list(company.emails or []),
            documents=[CompanyDocumentResponse.from_file(f) for f in company.files],
            created_at=company.created_at,
            updated_at=company.updated_at,
        )


class BranchResponse(CamelModel):
    id: int
    name: str
    contact_person: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    image: Optional[str] = Field(default=None, description="Stored image path")
    image_url: Optional[str] = Field(default=None, description="URL serving the image")
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_branch(cls, branch) -> "BranchResponse":
        return cls(
            id=branch.id,
            name=branch.name,
            contact_person=branch.contact_person,
            contact_number=branch.contact_number,
            address=branch.address,
            image=branch.image,
            image_url=f"/api/files/{branch.image}" if branch.image else None,
            created_at=branch.created_at,
            updated_at=branch.updated_at,
        )
