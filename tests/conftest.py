# tests/conftest.py
"""Shared fixtures for baluflix tests."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from baluflix.auth import AuthGate
from baluflix.config import Settings
from baluflix.models import VideoRecord
from baluflix.storage.jsonfile import JSONFileVideoRepository
from baluflix.storage.media import LocalMediaStore
from baluflix.storage.sqlite import SQLiteVideoRepository

ADMIN_USER = "admin"
ADMIN_PASS = "s3cret-pass"
JWT_SECRET = "test-signing-secret-0123456789abcdef"


@pytest.fixture
def sample_record():
    """Pre-built reference VideoRecord."""
    return VideoRecord(
        video_id="dQw4w9WgXcQ",
        title="Intro to Machine Learning",
        url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        thumbnail="https://img.youtube.com/vi/dQw4w9WgXcQ/hqdefault.jpg",
        created_at=datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def sqlite_repo():
    """SQLiteVideoRepository backed by in-memory database."""
    return SQLiteVideoRepository(":memory:")


@pytest.fixture
def json_repo(tmp_path):
    """JSONFileVideoRepository backed by a temp file."""
    return JSONFileVideoRepository(tmp_path / "videos.json")


@pytest.fixture(params=["sqlite", "json"])
def any_repo(request, tmp_path):
    """Each repository implementation in turn."""
    if request.param == "sqlite":
        return SQLiteVideoRepository(":memory:")
    return JSONFileVideoRepository(tmp_path / "videos.json")


@pytest.fixture
def media_store(tmp_path):
    """LocalMediaStore rooted in a temp directory with a small upload limit."""
    return LocalMediaStore(tmp_path / "uploads", max_bytes=10_000)


@pytest.fixture
def media_bytes():
    """1000 bytes of distinguishable content."""
    return bytes(i % 251 for i in range(1000))


@pytest.fixture
def media_file(media_store, media_bytes):
    """A 1000-byte file stored in the media store; yields its reference."""
    (media_store.root / "clip.mp4").write_bytes(media_bytes)
    return "clip.mp4"


@pytest.fixture
def service(sqlite_repo):
    """CatalogService over in-memory SQLite with unpublished default."""
    from baluflix.service import CatalogService

    return CatalogService(repository=sqlite_repo)


@pytest.fixture
def auth():
    """AuthGate with test credentials."""
    return AuthGate(admin_username=ADMIN_USER, admin_password=ADMIN_PASS, secret=JWT_SECRET)


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at a temp data directory."""
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def client(test_settings, service, auth, media_store):
    """TestClient for an app wired with the in-memory fixtures."""
    from baluflix.server import create_app

    app = create_app(test_settings, service=service, auth=auth, media=media_store)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers(auth):
    """Authorization header carrying a fresh admin token."""
    token = auth.login(ADMIN_USER, ADMIN_PASS).access_token
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def credentials():
    """Admin username and password accepted by the ``auth`` fixture."""
    return ADMIN_USER, ADMIN_PASS


@pytest.fixture
def jwt_secret():
    return JWT_SECRET
