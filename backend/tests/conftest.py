from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from polarad_admin.core.config import settings
from polarad_admin.core.deps import get_db
from polarad_admin.core.security import AdminSession, create_admin_token
from polarad_admin.main import app


@pytest.fixture(autouse=True)
def fake_redis():
    """Stand-in for Redis: every cache lookup misses and writes are accepted."""
    redis = AsyncMock()
    redis.get.return_value = None
    with patch("polarad_admin.core.cache._get_redis", new_callable=AsyncMock, return_value=redis):
        yield redis


@pytest.fixture(autouse=True)
def notification_log_session():
    """Session stub behind ``notification_logs`` writes made outside a request."""
    session = AsyncMock()
    session.add = MagicMock()
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    with patch("polarad_admin.services.notification.async_session_factory", factory):
        yield session


@pytest.fixture
def db() -> MagicMock:
    """Request-scoped session stub injected through ``get_db``."""
    session = AsyncMock()
    session.add = MagicMock()
    app.dependency_overrides[get_db] = lambda: session
    yield session
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client wired to the FastAPI app (no real server)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


def login_as(client: AsyncClient, role: str = "SUPER", admin_id: int = 1) -> AdminSession:
    """Put a signed admin session cookie on ``client``."""
    name = f"{role.lower()}-admin"
    email = f"{name}@polarad.kr"
    client.cookies.set(
        settings.auth_cookie_name, create_admin_token(admin_id, role, name, email)
    )
    return AdminSession(admin_id=admin_id, role=role, name=name, email=email)


def make_admin(role: str = "SUPER", admin_id: int = 1) -> AdminSession:
    return AdminSession(
        admin_id=admin_id, role=role, name="Kim", email="kim@polarad.kr"
    )


def mock_result(scalar=None, items=None, scalar_one=None, rows=None) -> MagicMock:
    """Build a stand-in for what ``AsyncSession.execute`` returns."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar_one.return_value = scalar_one
    scalars = MagicMock()
    scalars.all.return_value = items or []
    result.scalars.return_value = scalars
    result.all.return_value = rows or []
    return result


def mock_db(*results) -> AsyncMock:
    """Session stub whose ``execute`` returns ``results`` in order."""
    db = AsyncMock()
    db.add = MagicMock()
    if results:
        db.execute = AsyncMock(side_effect=list(results))
    else:
        db.execute = AsyncMock(return_value=mock_result())
    return db
