"""
TitleDesk Backend — Request Dependencies
==========================================

What:  FastAPI dependencies for authentication and permission checks.
How:   get_current_user resolves the bearer token to an active User;
       require_permissions(*slugs) builds a dependency that additionally
       checks the user's effective permissions.

Usage:
    @router.get("/applications")
    async def list_applications(
        user: User = Depends(require_permissions("view_applications")),
        db: AsyncSession = Depends(get_db_session),
    ): ...

Several slugs mean "any of" (logical OR):
    require_permissions("view_companies", "view_applications")
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.database import get_db_session
from titledesk.exceptions import AuthenticationError, PermissionDeniedError
from titledesk.models.user import User
from titledesk.services.auth_service import auth_service


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError(message="Access denied. No token provided.")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError(message="Access denied. No token provided.")
    return token.strip()


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    token = extract_bearer_token(authorization)
    user = await auth_service.authenticate_token(db, token)
    request.state.user_id = user.id
    return user


def require_permissions(*slugs: str):
    """
    Dependency factory: the caller must hold at least one of `slugs`.

    Permissions are looked up from the database on every request.
    """
    if not slugs:
        raise ValueError("require_permissions() needs at least one slug")
    required = set(slugs)

    async def dependency(
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_session),
    ) -> User:
        granted = await auth_service.get_effective_permissions(db, user.id)
        if required.isdisjoint(granted):
            raise PermissionDeniedError(
                message=f"Access Forbidden: Requires one of {sorted(required)}",
                context={"required": sorted(required)},
            )
        return user

    return dependency


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def graph_token(x_graph_token: Optional[str] = Header(default=None)) -> str:
    """Delegated Microsoft Graph token supplied by the dashboard."""
    if not x_graph_token or not x_graph_token.strip():
        raise AuthenticationError(message="No access token provided")
    token = x_graph_token.strip()
    if token.lower().startswith("bearer "):
        token = token[7:].strip()
    return token


def optional_graph_token(x_graph_token: Optional[str] = Header(default=None)) -> Optional[str]:
    if not x_graph_token or not x_graph_token.strip():
        return None
    return graph_token(x_graph_token)
