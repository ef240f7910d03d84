import os
import uuid
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# Optional overrides for running the suite against another database
env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest-orders.db")
os.environ.setdefault("TIMEZONE", "Asia/Jakarta")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("XENDIT_CALLBACK_TOKEN", "test-callback-token")

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with the test env vars
get_settings.cache_clear()

from libs.auth.dependencies import get_current_user, require_admin  # noqa: E402
from libs.auth.models import AuthUser  # noqa: E402
from libs.db.base import Base  # noqa: E402
from libs.db.config import build_engine, build_session_factory  # noqa: E402
from libs.db.session import get_async_db  # noqa: E402
from services.orders_service import models as _order_models  # noqa: E402,F401
from services.orders_service.app.main import app  # noqa: E402
from tests.factories import (  # noqa: E402
    BuyerFactory,
    CategoryFactory,
    ProductFactory,
)


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Fresh SQLite database per test, with the same locking hooks as the app
    engine so row-lock semantics hold under concurrency.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    """Factory for extra sessions (each one is an independent connection)."""
    return build_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture
async def buyer(db_session):
    buyer = BuyerFactory.create()
    db_session.add(buyer)
    await db_session.commit()
    return buyer


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient against the app with the DB dependency bound to ``db_session``.
    Auth is not overridden; use ``buyer_client`` or ``admin_client`` for that.
    """
    app.dependency_overrides[get_async_db] = lambda: db_session

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def buyer_client(client, buyer) -> AsyncClient:
    """Client authenticated as ``buyer``."""
    user = AuthUser(sub=str(buyer.id), email=buyer.email, role="authenticated")
    app.dependency_overrides[get_current_user] = lambda: user
    return client


@pytest.fixture
def admin_user() -> AuthUser:
    return AuthUser(sub=str(uuid.uuid4()), role="admin")


@pytest_asyncio.fixture
async def admin_client(client, admin_user) -> AsyncClient:
    """Client authenticated as an admin."""
    app.dependency_overrides[get_current_user] = lambda: admin_user
    app.dependency_overrides[require_admin] = lambda: admin_user
    return client


@pytest_asyncio.fixture
async def catalog(db_session) -> SimpleNamespace:
    """Two categories with one product each (100.000 and 50.000)."""
    sembako = CategoryFactory.create(nama="Sembako")
    minuman = CategoryFactory.create(nama="Minuman")
    beras = ProductFactory.create(
        nama="Beras Premium 25kg", kategori_id=sembako.id, price="100000.00"
    )
    teh = ProductFactory.create(
        nama="Teh Botol 1 Dus", kategori_id=minuman.id, price="50000.00"
    )
    db_session.add_all([sembako, minuman])
    await db_session.flush()
    db_session.add_all([beras, teh])
    await db_session.commit()
    return SimpleNamespace(sembako=sembako, minuman=minuman, beras=beras, teh=teh)
