"""
TitleDesk Backend — Auth Schemas
==================================

What:  Request/response models for register, login, password reset,
       profile and change-password.

Password policy (register, reset, change):
    at least 8 characters, one uppercase letter, one digit and one of
    the special characters !@#$%^&*
"""

import re
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from titledesk.schemas.common import CamelModel
from titledesk.schemas.user import UserResponse

SPECIAL_CHARACTERS = "!@#$%^&*"


def check_password_strength(password: str) -> str:
    problems = []
    if len(password) < 8:
        problems.append("be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        problems.append("contain an uppercase letter")
    if not re.search(r"\d", password):
        problems.append("contain a number")
    if not any(ch in SPECIAL_CHARACTERS for ch in password):
        problems.append(f"contain one of {SPECIAL_CHARACTERS}")
    if problems:
        raise ValueError("Password must " + ", ".join(problems))
    return password


class RegisterRequest(CamelModel):
    email: EmailStr
    username: str = Field(min_length=1, max_length=100)
    password: str
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return check_password_strength(v)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class CurrentUserResponse(UserResponse):
    """
    The signed-in user.

    Unlike UserResponse, `permissions` here is the effective set (role
    permissions plus overrides), which the dashboard uses to show or hide
    features.
    """

    permissions: List[str] = Field(default_factory=list)


class LoginResponse(CamelModel):
    token: str = Field(description="Bearer token for the Authorization header")
    user: CurrentUserResponse


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ForgotPasswordResponse(CamelModel):
    message: str
    reset_token: Optional[str] = Field(
        default=None,
        description="Only returned when EXPOSE_RESET_TOKEN is enabled",
    )


class ResetPasswordRequest(CamelModel):
    token: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return check_password_strength(v)


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    middle_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    avatar: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return check_password_strength(v)
