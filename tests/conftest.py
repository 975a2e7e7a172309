"""
StoreHub Backend: Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the whole suite.
How:   Settings are pointed at a scratch SQLite file and a temporary upload
       directory before any storehub module is imported. Each test gets its
       own database file (tables created from the ORM metadata), so tests
       never see each other's rows.

Fixture Hierarchy:
    session_factory      fresh SQLite database per test
    ├── store_repository / user_repository
    ├── author / visitor      two users already in the database
    └── app → test_client     create_app() bound to that database

    upload_dir           temporary directory for resized photos
    make_image           Pillow-generated image bytes of any size/format

Note: the database is a file, not :memory:. list_by_tag runs two sessions
concurrently and each needs its own connection.
"""

import io
import os
import tempfile
import uuid

# Must happen before storehub.config is imported anywhere
_scratch = tempfile.mkdtemp(prefix="storehub_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_scratch, 'scratch.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_scratch, "uploads")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from storehub.database import Base, build_engine, build_session_factory
from storehub.models import User
from storehub.services.store_repository import StoreRepository
from storehub.services.upload_service import ImageResizer, UploadFilter
from storehub.services.user_repository import UserRepository


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'storehub.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def store_repository(session_factory):
    return StoreRepository(session_factory)


@pytest.fixture
def user_repository(session_factory):
    return UserRepository(session_factory)


async def _add_user(session_factory, email: str, name: str) -> User:
    async with session_factory() as session:
        async with session.begin():
            user = User(id=uuid.uuid4(), email=email, name=name)
            session.add(user)
    return user


@pytest_asyncio.fixture
async def author(session_factory):
    """The user who creates stores in most tests."""
    return await _add_user(session_factory, "wes@example.com", "Wes")


@pytest_asyncio.fixture
async def visitor(session_factory):
    """A second signed-in user who owns nothing."""
    return await _add_user(session_factory, "ada@example.com", "Ada")


# ══════════════════════════════════════════════════════════════════════════
# Uploads
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def upload_filter():
    return UploadFilter(max_file_size=1_048_576)


@pytest.fixture
def image_resizer(upload_dir):
    return ImageResizer(upload_dir=str(upload_dir), width=800)


@pytest.fixture
def make_image():
    """
    Build real encoded image bytes.

    Usage:
        png = make_image(1600, 1200)
        jpeg = make_image(400, 100, "JPEG")
    """
    def _make(width: int, height: int, image_format: str = "PNG") -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", (width, height), color=(200, 80, 40)).save(buffer, format=image_format)
        return buffer.getvalue()

    return _make


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(session_factory, upload_dir):
    from storehub.main import create_app

    return create_app(session_factory=session_factory, upload_dir=str(upload_dir))


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to the app in-process.

    Redirects are not followed so tests can inspect the 303 and its flash
    cookie.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def as_user():
    """Headers the authenticating proxy would add for a user."""
    def _headers(user: User) -> dict:
        return {"X-User-ID": str(user.id)}

    return _headers
