"""User, role and permission schemas."""

import datetime as dt
from typing import List, Literal, Optional

from pydantic import EmailStr, Field

from titledesk.schemas.common import CamelModel

UserStatus = Literal["active", "inactive"]


class UserCreate(CamelModel):
    """
    Admin-side user creation.

    The role may be given as `roleId` or by name in `role`; `permissions`
    lists per-user override slugs on top of the role.
    """

    first_name: Optional[str] = Field(default=None, max_length=100)
    middle_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    email: EmailStr
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=8)
    role_id: Optional[int] = None
    role: Optional[str] = None
    status: UserStatus = "active"
    phone: Optional[str] = Field(default=None, max_length=50)
    avatar: Optional[str] = None
    address: Optional[str] = None
    branch_id: Optional[int] = None
    assigned_companies: List[int] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)


class UserUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    middle_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(default=None, min_length=1, max_length=100)
    password: Optional[str] = Field(default=None, min_length=8)
    role_id: Optional[int] = None
    role: Optional[str] = None
    status: Optional[UserStatus] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    avatar: Optional[str] = None
    address: Optional[str] = None
    branch_id: Optional[int] = None
    assigned_companies: Optional[List[int]] = None
    permissions: Optional[List[str]] = None


class UserResponse(CamelModel):
    """A user without the password hash. `permissions` are the overrides."""

    id: int
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str
    email: str
    username: str
    role_id: Optional[int] = None
    role: Optional[str] = Field(default=None, description="Role name")
    status: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    address: Optional[str] = None
    branch_id: Optional[int] = None
    assigned_companies: List[int] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)
    last_forced_logout_at: Optional[dt.datetime] = None
    date_joined: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_user(cls, user, permissions: Optional[List[str]] = None):
        return cls(
            id=user.id,
            first_name=user.first_name,
            middle_name=user.middle_name,
            last_name=user.last_name,
            full_name=user.full_name,
            email=user.email,
            username=user.username,
            role_id=user.role_id,
            role=user.role_name,
            status=user.status,
            phone=user.phone,
            avatar=user.avatar,
            address=user.address,
            branch_id=user.branch_id,
            assigned_companies=list(user.assigned_companies or []),
            permissions=(
                permissions
                if permissions is not None
                else [p.slug for p in user.permission_overrides]
            ),
            last_forced_logout_at=user.last_forced_logout_at,
            date_joined=user.date_joined,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserListResponse(CamelModel):
    users: List[UserResponse]


class RoleCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    permissions: List[str] = Field(default_factory=list, description="Permission slugs")


class RoleUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    permissions: Optional[List[str]] = Field(
        default=None,
        description="Replaces the full permission set when given",
    )


class RoleResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    user_count: int = 0
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_role(cls, role, user_count: int) -> "RoleResponse":
        return cls(
            id=role.id,
            name=role.name,
            description=role.description,
            permissions=[p.slug for p in role.permissions],
            user_count=user_count,
            created_at=role.created_at,
            updated_at=role.updated_at,
        )


class RoleListResponse(CamelModel):
    roles: List[RoleResponse]


class PermissionResponse(CamelModel):
    id: str = Field(description="The permission slug")
    slug: str
    name: str
    description: Optional[str] = None
    module: str
    action: str


class PermissionListResponse(CamelModel):
    permissions: List[PermissionResponse]
