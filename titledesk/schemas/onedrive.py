"""OneDrive proxy schemas."""

import datetime as dt
from typing import List, Optional

from pydantic import Field, field_validator

from titledesk.schemas.common import CamelModel, parse_flexible_date


class DriveItem(CamelModel):
    """A file or folder as reported by Microsoft Graph."""

    id: str
    name: str
    web_url: Optional[str] = None
    size: Optional[int] = None
    is_folder: bool = False
    mime_type: Optional[str] = None
    created_date_time: Optional[dt.datetime] = None
    last_modified_date_time: Optional[dt.datetime] = None

    @classmethod
    def from_graph(cls, item: dict) -> "DriveItem":
        return cls(
            id=item["id"],
            name=item.get("name", ""),
            web_url=item.get("webUrl"),
            size=item.get("size"),
            is_folder="folder" in item,
            mime_type=(item.get("file") or {}).get("mimeType"),
            created_date_time=item.get("createdDateTime"),
            last_modified_date_time=item.get("lastModifiedDateTime"),
        )


class DriveItemList(CamelModel):
    items: List[DriveItem]


class CreateFolderRequest(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    parent_id: Optional[str] = Field(default=None, description="Parent folder id; drive root if omitted")


class CompanyDocumentRequest(CamelModel):
    company_name: str = Field(min_length=1)
    doc_type: str = Field(min_length=1, description="Used in the file name, e.g. Letterpad")


class CopyDocumentRequest(CamelModel):
    file_id: str = Field(min_length=1, description="Source item id")
    file_name: str = Field(min_length=1)
    file_no: str = Field(min_length=1)
    application_date: dt.date
    application_id: int
    company_name: Optional[str] = None

    @field_validator("application_date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return parse_flexible_date(v)


class PdfActionRequest(CamelModel):
    application_id: int
    title: str = Field(min_length=1)
