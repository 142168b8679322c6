"""
TitleDesk Backend — Typed Application Settings
================================================

What:  The business settings editable from the dashboard, as one typed
       object instead of loose key/value pairs.
How:   Each field maps to one row of the `app_settings` table (key = field
       name, value = JSON). Missing rows fall back to the defaults below.
"""

from typing import Optional

from pydantic import Field

from titledesk.schemas.common import CamelModel


class AppSettings(CamelModel):
    business_name: str = ""
    business_email: str = ""
    default_cc: str = ""
    reply_to: str = ""
    maintenance_mode: bool = False
    file_number_prefix: str = Field(default="ULF", min_length=1, max_length=20)
    file_number_sequence: int = Field(default=1000, ge=0)
    padding: int = Field(default=4, ge=1, le=12)


class AppSettingsUpdate(CamelModel):
    """Partial update; only the fields sent are written."""

    business_name: Optional[str] = None
    business_email: Optional[str] = None
    default_cc: Optional[str] = None
    reply_to: Optional[str] = None
    maintenance_mode: Optional[bool] = None
    file_number_prefix: Optional[str] = Field(default=None, min_length=1, max_length=20)
    file_number_sequence: Optional[int] = Field(default=None, ge=0)
    padding: Optional[int] = Field(default=None, ge=1, le=12)


class AppSettingsUpdateResponse(CamelModel):
    message: str
    settings: AppSettings
