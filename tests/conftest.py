"""
TitleDesk Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the whole suite.
How:   The environment is pointed at SQLite and a temporary storage root
       before anything from `titledesk` is imported, so no test touches a
       real database, OneDrive or the developer's storage directory.

Fixtures:
    mock_db_session   AsyncMock session (execute/get/flush, SAVEPOINTs)
    make_user         builds detached User objects with a role
    temp_storage      per-test storage directory
    sample_png_bytes / sample_pdf_bytes
    test_client       httpx AsyncClient bound to the ASGI app
    sqlite_session    real AsyncSession on in-memory SQLite
"""

import os
import tempfile

# Must run before any titledesk import reads settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="titledesk_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ONEDRIVE_UPLOAD_ROOT"] = "TitleDesk"

from typing import List, Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from titledesk.models.user import Role, User  # noqa: E402


def _fake_result(scalars: Optional[List] = None, scalar=None, one=None, first=None, rowcount=None):
    result = MagicMock()
    result.first.return_value = first
    result.scalars.return_value.all.return_value = scalars or []
    result.scalar.return_value = scalar
    result.scalar_one_or_none.return_value = one
    result.all.return_value = scalars or []
    result.rowcount = rowcount
    return result


@pytest.fixture
def mock_db_session():
    """
    Mock AsyncSession.

    `begin_nested()` is a MagicMock so `async with db.begin_nested():`
    works for the best-effort audit and notification writes.

    Usage:
        mock_db_session.execute.return_value = make_result(one=application)
    """
    session = AsyncMock()
    session.execute = AsyncMock(return_value=_fake_result())
    session.get = AsyncMock(return_value=None)
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.begin_nested = MagicMock()
    return session


@pytest.fixture
def make_result():
    """Builds fake `Result` objects for `session.execute(...)` return values."""
    return _fake_result


@pytest.fixture
def make_user():
    """Factory for detached User rows (no session involved)."""

    def _make(
        user_id: int = 1,
        role: Optional[str] = "User",
        assigned_companies: Optional[List[int]] = None,
        status: str = "active",
        **fields,
    ) -> User:
        user = User(
            id=user_id,
            email=fields.pop("email", f"user{user_id}@example.com"),
            username=fields.pop("username", f"user{user_id}"),
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", f"User{user_id}"),
            password_hash=fields.pop("password_hash", "not-a-hash"),
            status=status,
            assigned_companies=assigned_companies or [],
            **fields,
        )
        if role is not None:
            user.role = Role(id=1 if role == "Admin" else 2, name=role)
        return user

    return _make


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_png_bytes():
    """PNG signature + IHDR chunk header; enough for content sniffing."""
    return (
        b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
        b"\x08\x02\x00\x00\x00\x90wS\xde"
    )


@pytest.fixture
def sample_pdf_bytes():
    return b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


@pytest_asyncio.fixture
async def test_client():
    """
    HTTPX AsyncClient wired to the FastAPI app through ASGITransport.

    Dependency overrides set by a test are cleared afterwards.
    """
    from titledesk.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def sqlite_session():
    """
    AsyncSession on a private in-memory SQLite database with every table.

    For behaviour that depends on real SQL: cascades, UNION queries,
    ordering and aggregate counts.
    """
    import titledesk.models  # noqa: F401
    from titledesk.database import Base

    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()
