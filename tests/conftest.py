"""
User Service — Test Configuration (conftest.py)
================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── settings: Settings built from init kwargs (no config.json needed)
    ├── user_store: UserStore on a temporary SQLite file with the users table
    ├── empty_store: UserStore on a temporary SQLite file with no tables
    ├── fake_uploader / fake_publisher: in-memory collaborators with call counts
    ├── app: FastAPI app wired with the fixtures above
    ├── test_client: HTTPX AsyncClient for API endpoint testing
    └── sample_image_bytes: Fake image content for upload tests
"""

from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from user_service.config import Settings
from user_service.database import Base, UserStore
from user_service.exceptions import PublishError, UploadError
from user_service.main import create_app
from user_service.models.user import User  # noqa: F401  (registers the table)
from user_service.schemas.user import UserRecord

ALLOWED_ORIGIN = "http://localhost:3000"


# ══════════════════════════════════════════════════════════════════════════
# In-memory collaborators
# ══════════════════════════════════════════════════════════════════════════

class FakeBlobUploader:
    """Keeps uploaded blobs in a dict; fails with UploadError when told to."""

    def __init__(self, container: str = "profile-pictures"):
        self.container = container
        self.objects: Dict[str, bytes] = {}
        self.calls = 0
        self.error: Optional[Exception] = None

    async def upload(self, data, filename: str) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        content = data if isinstance(data, bytes) else data.read()
        reference = f"{self.container}/{filename}"
        self.objects[reference] = content
        return reference


class FakeQueuePublisher:
    """Collects published users; fails with PublishError when told to."""

    def __init__(self):
        self.messages: List[UserRecord] = []
        self.calls = 0
        self.error: Optional[Exception] = None

    async def publish(self, user: UserRecord) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error
        self.messages.append(user)


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def database_url(tmp_path):
    """SQLite file URL inside pytest's per-test temporary directory."""
    return f"sqlite+aiosqlite:///{tmp_path / 'users.db'}"


@pytest.fixture
def settings(database_url):
    return Settings(
        database={"connection_string": database_url},
        azure={
            "blob_connection_string": "UseDevelopmentStorage=true",
            "service_bus_connection_string": "Endpoint=sb://test/;SharedAccessKeyName=k;SharedAccessKey=v",
        },
        server={"cors_origin": ALLOWED_ORIGIN, "log_level": "WARNING"},
    )


@pytest_asyncio.fixture
async def user_store(database_url):
    """UserStore with an empty users table."""
    store = UserStore(database_url)
    async with store.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield store
    await store.dispose()


@pytest_asyncio.fixture
async def empty_store(database_url):
    """UserStore whose database has no users table (every query fails)."""
    store = UserStore(database_url)
    yield store
    await store.dispose()


@pytest.fixture
def fake_uploader():
    return FakeBlobUploader()


@pytest.fixture
def fake_publisher():
    return FakeQueuePublisher()


@pytest.fixture
def app(settings, user_store, fake_uploader, fake_publisher):
    return create_app(
        settings,
        store=user_store,
        uploader=fake_uploader,
        publisher=fake_publisher,
    )


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient routed straight into the ASGI app.

    The lifespan does not run under ASGITransport, so the store is never
    pinged here; lifespan behaviour has its own tests.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: SOI marker + JFIF header + EOI marker."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def upload_failure():
    return UploadError(context={"stage": "upload", "cause": "connection reset"})


@pytest.fixture
def publish_failure():
    return PublishError(context={"stage": "send", "cause": "queue not found"})
