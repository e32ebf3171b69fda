from datetime import datetime, timedelta, timezone

import jwt
import pytest
from httpx import ASGITransport, AsyncClient

from app.config import settings
from app.database import make_engine, make_session_factory
from app.infrastructure.db_schema import metadata
from app.infrastructure.unit_of_work import UnitOfWork
from app.main import app
from app.presentation.api import get_unit_of_work
from tests.shop import Shop

JWT_TEST_SECRET = "test-secret"


@pytest.fixture
async def engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def uow(session_factory):
    return UnitOfWork(session_factory)


@pytest.fixture
def shop(session_factory):
    return Shop(session_factory)


@pytest.fixture
def make_token(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", JWT_TEST_SECRET)
    monkeypatch.setattr(settings, "JWT_ALGORITHM", "HS256")

    def _make(user_id: str, role: str = "customer", username: str = None, expires_in: int = 3600) -> str:
        payload = {
            "sub": user_id,
            "role": role,
            "username": username,
            "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        }
        return jwt.encode(payload, JWT_TEST_SECRET, algorithm="HS256")

    return _make


@pytest.fixture
async def client(uow):
    app.dependency_overrides[get_unit_of_work] = lambda: uow
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
