"""
CatTrack Backend: Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set before anything from `cattrack` is
       imported, so the settings singleton, the engine and the file
       service all point at throwaway locations.

Fixture Hierarchy:
    Function-scoped:
    ├── mock_db_session:   AsyncMock standing in for AsyncSession
    ├── temp_storage:      fresh directory for file operations
    ├── png_bytes:         small real PNG (no EXIF)
    ├── auth_service:      AuthService with a fast hash method
    ├── database:          tables created on the temporary SQLite file,
    │                      dropped afterwards
    ├── test_client:       httpx AsyncClient over a fresh app (needs database)
    └── register_and_login: helper returning (user_json, auth headers)
"""

import io
import os
import tempfile

# Override settings for testing BEFORE any cattrack imports
_TEST_DIR = tempfile.mkdtemp(prefix="cattrack_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/cattrack_test.db"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_DIR, "uploads")
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["PASSWORD_HASH_METHOD"] = "pbkdf2:sha256:1000"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from PIL import Image  # noqa: E402

from cattrack.database import create_all_tables, drop_all_tables  # noqa: E402
from cattrack.services.auth_service import AuthService  # noqa: E402

TEST_SECRET = os.environ["JWT_SECRET"]


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_cat(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = cat
            result = await cat_service.get_cat(mock_db_session, cat_id)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.delete = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def png_bytes():
    """A real 8x8 PNG, so Pillow's content check passes."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def auth_service():
    return AuthService(secret_key=TEST_SECRET, hash_method="pbkdf2:sha256:1000")


@pytest_asyncio.fixture
async def database():
    """Create the schema on the temporary SQLite database for one test."""
    await create_all_tables()
    yield
    await drop_all_tables()


@pytest_asyncio.fixture
async def test_client(database):
    """
    HTTPX AsyncClient talking to a freshly built app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from cattrack.main import create_app

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register_and_login(test_client):
    """
    Returns an async helper that registers an account and logs it in.

    Usage:
        user, headers = await register_and_login("alice")
    """

    async def _register_and_login(user_name: str, password: str = "secret"):
        email = f"{user_name}@example.com"
        response = await test_client.post(
            "/api/v1/users",
            json={"user_name": user_name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        user = response.json()["data"]

        response = await test_client.post(
            "/api/v1/auth/login",
            json={"username": email, "password": password},
        )
        assert response.status_code == 200, response.text
        token = response.json()["token"]
        return user, {"Authorization": f"Bearer {token}"}

    return _register_and_login
