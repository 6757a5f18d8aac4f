"""
Pytest configuration and shared fixtures for test suite.

This module provides:
- Test client fixtures for FastAPI
- Mock API key fixtures
- Mock environment variables
- Key pool, settings and fake media fixtures shared by unit tests
"""

import os
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from unittest.mock import patch, MagicMock


@pytest.fixture(scope="session", autouse=True)
def mock_env_vars():
    """Mock environment variables for testing."""
    with patch.dict(os.environ, {
        "API_KEY": "test-api-key",
        "ALLOWED_ORIGIN": "*",
        "CACHE_DIR": "./test_cache",
        "CACHE_TTL_HOURS": "3",
        "KEYS_FILE": "./test_data/api_keys.json",
        "SUPABASE_URL": "",
        "SUPABASE_SERVICE_KEY": "",
        "RETRY_BACKOFF_SEC": "0",
        "MAX_CONCURRENT_TRANSCRIPTIONS": "2",
    }):
        from metagrabber.config import get_settings
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()


@pytest.fixture
def api_key():
    """Return test API key."""
    return "test-api-key"


@pytest.fixture
def api_headers(api_key):
    """Return headers with API key."""
    return {"X-API-Key": api_key}


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every writable path at a temp directory."""
    from metagrabber.config import get_settings
    return get_settings().model_copy(update={
        "cache_dir": str(tmp_path / "cache"),
        "keys_file": str(tmp_path / "api_keys.json"),
        "retry_backoff_sec": 0.0,
    })


@pytest.fixture
def key_pool():
    """In-memory key pool with two keys."""
    from metagrabber.services.key_pool import KeyPool
    pool = KeyPool()
    pool.add_key("sk-test-key-aaaa")
    pool.add_key("sk-test-key-bbbb")
    return pool


@pytest.fixture
def mock_orchestrator():
    """Orchestrator stand-in whose run_job is configured per test."""
    return MagicMock()


@pytest_asyncio.fixture
async def client(key_pool, mock_orchestrator):
    """
    Create async test client for FastAPI app.

    Uses httpx AsyncClient with ASGITransport to test the FastAPI app
    without needing to run a server. ASGITransport does not run startup
    events, so app state is bound here.
    """
    # Import app after env vars are mocked
    from main import app, init_app_state

    init_app_state(app, key_pool)
    app.state.orchestrator = mock_orchestrator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def audio_file(tmp_path):
    """A small fake MP3 file."""
    path = tmp_path / "audio.mp3"
    path.write_bytes(b"\xff\xfb" * 1000)
    return str(path)


@pytest.fixture
def youtube_url():
    """Sample YouTube URL for testing."""
    return "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def instagram_url():
    """Sample Instagram URL for testing."""
    return "https://www.instagram.com/p/ABC123/"


@pytest.fixture
def video_url():
    """Sample direct media URL for testing."""
    return "https://video.xx.fbcdn.net/v/t42/video.mp4?oh=abc"


@pytest.fixture
def hls_url():
    """Sample live playlist URL for testing."""
    return "https://manifest.googlevideo.com/api/manifest/hls_playlist/index.m3u8"


# Mark all tests as asyncio
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test"
    )
