"""
LittleNest Backend: Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixtures:
    ├── mock_db_session: Mock AsyncSession (no real DB needed)
    ├── make_result: Builds mock Result objects for session.execute()
    ├── make_name / make_blog: ORM rows built in memory
    ├── temp_storage: Temporary directory for file operations
    ├── sample_image_bytes: Minimal JPEG for upload tests
    ├── admin_headers / user_headers: Gateway principal headers
    └── test_client: HTTPX AsyncClient wired to the app with the mock session
"""

import os
import tempfile

# Settings are read at import time, so the environment is set first
os.environ["GATEWAY_API_KEY"] = "test-gateway-key"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="littlenest_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from littlenest.models.blog import Blog, estimate_read_time
from littlenest.models.name import Name
from littlenest.services.derivation import derive_name_fields

GATEWAY_KEY = "test-gateway-key"

SAMPLE_CONTENT = (
    "Choosing a name is one of the first decisions new parents make together. "
    "This guide walks through origins, meanings and sound so the choice feels easy."
)


# ══════════════════════════════════════════════════════════════════════════
# Database Mocks
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_name(mock_db_session, make_result, make_name):
            mock_db_session.execute.return_value = make_result(one=make_name("Ava"))
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    session.info = {}
    return session


@pytest.fixture
def make_result():
    """
    Factory for the object returned by `await session.execute(...)`.

    items   → result.scalars().all() / .first()
    one     → result.scalar_one_or_none()
    scalar  → result.scalar()
    rows    → result.all()
    """
    def _make(items=None, one=None, scalar=None, rows=None, rowcount=0):
        items = list(items or [])
        result = MagicMock()
        result.scalars.return_value.all.return_value = items
        result.scalars.return_value.first.return_value = items[0] if items else None
        result.scalar_one_or_none.return_value = one
        result.scalar.return_value = scalar
        result.all.return_value = list(rows or [])
        result.rowcount = rowcount
        return result
    return _make


# ══════════════════════════════════════════════════════════════════════════
# Row Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_name():
    """Builds a fully derived Name row without touching a database."""
    def _make(
        name="Ava",
        gender="girl",
        origin="latin",
        meaning="Life",
        views=0,
        search_appearances=0,
        trend=0.0,
        score=0.0,
        **extra,
    ):
        record = Name(
            id=uuid4(),
            meaning=meaning,
            gender=gender,
            origin=origin,
            religion=extra.pop("religion", []),
            regions=extra.pop("regions", []),
            zodiac_qualities=[],
            views=views,
            search_appearances=search_appearances,
            trend=trend,
            score=score,
            created_at=datetime.now(timezone.utc),
            updated_at=datetime.now(timezone.utc),
        )
        record.apply_derivation(derive_name_fields(name))
        for key, value in extra.items():
            setattr(record, key, value)
        return record
    return _make


@pytest.fixture
def make_blog():
    def _make(title="Choosing The Perfect Name", author_id="author-1", **extra):
        blog = Blog(
            id=uuid4(),
            title=title,
            slug=extra.pop("slug", "choosing-the-perfect-name"),
            content=extra.pop("content", SAMPLE_CONTENT),
            excerpt="How to pick a name",
            category=extra.pop("category", "baby-names"),
            tags=extra.pop("tags", ["names", "tips"]),
            author_id=author_id,
            image_url="/media/blogs/2026/10/19/old.jpg",
            image_alt="A baby",
            image_public_id="blogs/2026/10/19/old.jpg",
            status=extra.pop("status", "published"),
            read_time=estimate_read_time(SAMPLE_CONTENT),
            meta_description="Tips for choosing a baby name",
            views=0,
            likes=0,
            created_at=datetime.now(timezone.utc),
            updated_at=datetime.now(timezone.utc),
        )
        for key, value in extra.items():
            setattr(blog, key, value)
        return blog
    return _make


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    """A fresh storage directory per test (pytest cleans it up)."""
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG: Start of Image (FFD8) + JFIF marker + End of Image (FFD9).

    Not a viewable picture, but libmagic identifies it as image/jpeg.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def admin_headers():
    return {"X-API-Key": GATEWAY_KEY, "X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture
def user_headers():
    return {"X-API-Key": GATEWAY_KEY, "X-User-Id": "author-1", "X-User-Role": "user"}


@pytest_asyncio.fixture
async def test_client(mock_db_session):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    get_db_session is overridden to yield mock_db_session, so route tests
    never open a database connection.
    """
    from littlenest.database import get_db_session
    from littlenest.main import app

    async def _override_session():
        yield mock_db_session

    app.dependency_overrides[get_db_session] = _override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
