"""
TitleDesk Backend — Administrator Bootstrap
=============================================

What:  Creates (or repairs) the first administrator account.
Why:   Registration always hands out the default role, so a fresh
       deployment has no one who can reach users, roles or settings.
How:   Run after `alembic upgrade head` (the Admin role is seeded there):

           ADMIN_EMAIL=ops@example.com ADMIN_PASSWORD='S3cure!pass' titledesk-seed-admin

       An existing account with that email gets the new password, the
       Admin role and active status; otherwise a new one is created.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from titledesk.config import settings
from titledesk.database import async_session_factory, dispose_engine
from titledesk.exceptions import NotFoundError, ValidationError
from titledesk.models.user import Role, User
from titledesk.schemas.auth import check_password_strength
from titledesk.security import hash_password

logger = logging.getLogger(__name__)


async def seed_admin(
    db: AsyncSession,
    email: str,
    password: str,
    username: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Tuple[User, bool]:
    """Upsert the administrator; returns (user, created)."""
    email = email.strip().lower()
    if not email or "@" not in email:
        raise ValidationError(message="A valid admin email is required", field="email")
    try:
        check_password_strength(password)
    except ValueError as e:
        raise ValidationError(message=str(e), field="password")

    result = await db.execute(select(Role).where(Role.name == settings.admin_role_name))
    role = result.scalar_one_or_none()
    if role is None:
        raise NotFoundError(resource="role", resource_id=settings.admin_role_name)

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    created = user is None
    if created:
        user = User(
            email=email,
            username=username or settings.admin_username,
            first_name=first_name,
            last_name=last_name,
            assigned_companies=[],
        )
        db.add(user)
    user.password_hash = hash_password(password)
    user.role = role
    user.status = "active"
    await db.flush()

    logger.info("%s administrator %s (id=%s)", "Created" if created else "Updated", email, user.id)
    return user, created


async def _run(args: argparse.Namespace) -> None:
    try:
        async with async_session_factory() as session:
            await seed_admin(
                session,
                args.email,
                args.password,
                username=args.username,
                first_name=args.first_name,
                last_name=args.last_name,
            )
            await session.commit()
    finally:
        await dispose_engine()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or update the TitleDesk administrator")
    parser.add_argument("--email", default=settings.admin_email, help="Defaults to ADMIN_EMAIL")
    parser.add_argument("--password", default=settings.admin_password, help="Defaults to ADMIN_PASSWORD")
    parser.add_argument("--username", default=settings.admin_username)
    parser.add_argument("--first-name", default=None)
    parser.add_argument("--last-name", default=None)
    args = parser.parse_args()

    if not args.email or not args.password:
        parser.error("set ADMIN_EMAIL and ADMIN_PASSWORD or pass --email and --password")

    logging.basicConfig(level=settings.log_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    try:
        asyncio.run(_run(args))
    except (ValidationError, NotFoundError) as e:
        logger.error("Administrator not seeded: %s", e.message)
        sys.exit(1)


if __name__ == "__main__":
    main()
