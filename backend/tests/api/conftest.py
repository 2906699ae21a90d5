"""API-specific test fixtures."""

import time

import jwt as pyjwt
import pytest
from httpx import ASGITransport, AsyncClient

from design2code.core.config import get_settings


@pytest.fixture
async def engine(tmp_path):
    """Initialize the global database on a throwaway SQLite file.

    Sets the global session factory in the pytest-asyncio event loop, which
    is also the loop the ASGITransport client runs route handlers in.
    """
    import design2code.core.auth as auth_mod
    from design2code.db import close_db, init_db

    await close_db()
    auth_mod._provisioned_cache.clear()

    engine = await init_db(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    yield engine
    await close_db()
    auth_mod._provisioned_cache.clear()


@pytest.fixture
def app():
    from design2code.main import create_app

    return create_app()


@pytest.fixture
async def client(app, engine):
    """Create test HTTP client. Depends on engine to ensure DB is initialized."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_token():
    """Sign a session token the way the web frontend does."""

    def _make(user_id: str = "user-1", expires_in: int = 3600, **claims) -> str:
        settings = get_settings()
        payload = {"sub": user_id, "exp": int(time.time()) + expires_in, **claims}
        return pyjwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)

    return _make


@pytest.fixture
def auth_headers(make_token):
    def _headers(user_id: str = "user-1") -> dict:
        return {"Authorization": f"Bearer {make_token(user_id)}"}

    return _headers
