"""Branch ORM model."""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from titledesk.database import Base
from titledesk.models.mixins import TimestampMixin


class Branch(TimestampMixin, Base):
    """
    An office of the firm. Applications reference branches by name.

    `image` holds a path relative to STORAGE_ROOT, served by /api/files.
    """

    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    contact_person: Mapped[Optional[str]] = mapped_column(String(255))
    contact_number: Mapped[Optional[str]] = mapped_column(String(50))
    address: Mapped[Optional[str]] = mapped_column(Text)
    image: Mapped[Optional[str]] = mapped_column(
        String(255),
        comment="Relative path from storage root to the branch image",
    )

    def __repr__(self) -> str:
        return f"<Branch(id={self.id}, name='{self.name}')>"
