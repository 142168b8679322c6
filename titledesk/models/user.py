"""
TitleDesk Backend — Users, Roles and Permissions
==================================================

What:  ORM models for role-based access control.
How:   Permissions are capability slugs (e.g. `view_applications`) grouped
       by module. A role holds a set of permissions through
       `role_permissions`; a user may additionally hold per-user overrides
       through `user_permissions`.

Effective permissions:
    role permissions ∪ user overrides, resolved per request by
    `titledesk.services.auth_service.AuthService.get_effective_permissions`.

Forced logout:
    `last_forced_logout_at` is a cutoff; tokens whose `iat` is earlier are
    rejected. No revocation list is kept.
"""

import datetime as dt
from typing import List, Optional

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    Column,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from titledesk.database import Base
from titledesk.models.mixins import TimestampMixin, utcnow

role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)

user_permissions = Table(
    "user_permissions",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Permission(Base):
    """One capability slug. Seeded by migration 002; read-only through the API."""

    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    module: Mapped[str] = mapped_column(String(100), nullable=False, comment="Grouping, e.g. Applications")
    action: Mapped[str] = mapped_column(String(50), nullable=False, comment="view, add, edit, delete")

    def __repr__(self) -> str:
        return f"<Permission(slug='{self.slug}')>"


class Role(TimestampMixin, Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text)

    permissions: Mapped[List["Permission"]] = relationship(
        secondary=role_permissions,
        lazy="selectin",
        order_by="Permission.slug",
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name='{self.name}')>"


class User(TimestampMixin, Base):
    """
    A staff member who signs in to the dashboard.

    Query patterns:
        - Login / register: WHERE email = :email (unique index)
        - Auth dependency: WHERE id = :sub on every protected request
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    middle_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("roles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
        server_default=text("'active'"),
        comment="active or inactive; inactive users are rejected at login and per request",
    )
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    avatar: Mapped[Optional[str]] = mapped_column(Text)
    address: Mapped[Optional[str]] = mapped_column(Text)
    branch_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("branches.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_companies: Mapped[List[int]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=list,
        server_default=text("'[]'"),
        comment="Company IDs this user may see (ignored for administrators)",
    )
    last_forced_logout_at: Mapped[Optional[dt.datetime]] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
        comment="Tokens issued before this instant are rejected",
    )
    date_joined: Mapped[dt.datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    role: Mapped[Optional["Role"]] = relationship(lazy="selectin")
    permission_overrides: Mapped[List["Permission"]] = relationship(
        secondary=user_permissions,
        lazy="selectin",
        order_by="Permission.slug",
    )

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        name = " ".join(p for p in parts if p)
        return name or self.username

    @property
    def role_name(self) -> Optional[str]:
        return self.role.name if self.role else None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', status='{self.status}')>"
