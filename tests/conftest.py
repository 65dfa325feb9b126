import os
# Settings é carregado no import de app.core.config; o ambiente de teste vem antes
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./auth-test.db")
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SESSION_SWEEP_INTERVAL_MINUTES"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

from app.db.base import Base
from app.db.session import create_engine_for_url, get_db, make_session_factory
from app.models import user, refresh_session  # noqa: F401
from app.schemas.user import UserProfile
from app.services.session_manager import SessionManager
from main import app
from tests.helpers import FakeClock


def create_schema(db_path) -> None:
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "auth.db"
    create_schema(path)
    return path


@pytest.fixture
async def engine(db_path):
    # NullPool: cada AsyncSession abre a própria conexão (necessário para testes concorrentes)
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(db, clock):
    return SessionManager(db, clock=clock)


@pytest.fixture
def profile():
    return UserProfile(login="alice", first_name="Alice", last_name="Liddell")


@pytest.fixture
def client(db_path):
    async_engine = create_engine_for_url(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    factory = make_session_factory(async_engine)

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
