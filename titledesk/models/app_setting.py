"""Key/value rows behind the typed AppSettings object."""

import datetime as dt
from typing import Any

from sqlalchemy import JSON, TIMESTAMP, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from titledesk.database import Base
from titledesk.models.mixins import utcnow


class AppSetting(Base):
    """
    One persisted setting.

    Keys are the snake_case field names of
    `titledesk.services.app_settings_service.AppSettings`; values are JSON.
    """

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    updated_at: Mapped[dt.datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<AppSetting(key='{self.key}', value={self.value!r})>"
