"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.jwt import create_user_token
from backend.app.core.security import get_password_hash
import backend.app.core.redis_client as redis_client_module

# Registers every table on Base.metadata
from backend.app.models.audit_log import AuditLog  # noqa: F401
from backend.app.models.enums import UserRole, UserStatus
from backend.app.models.truck import Truck  # noqa: F401
from backend.app.models.user import User
from backend.app.models.warehouse import Warehouse

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store = {}

    async def aclose(self):
        self.store = {}


@pytest.fixture(scope="session")
def mock_redis():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(mock_redis):
    """Swap the database and Redis client for the whole session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = mock_redis

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(mock_redis):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await mock_redis.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


async def make_user(db, username, role, entrepot_id=None, password="secret123",
                    status=UserStatus.ACTIF, email=None):
    user = User(
        nom=username.title(),
        email=email,
        username=username,
        hashed_password=get_password_hash(password),
        role=role,
        status=status,
        entrepot_id=entrepot_id,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_user_token(user)}"}


@pytest.fixture
async def warehouse(db_session):
    wh = Warehouse(name="Entrepôt Nord", location="Abidjan")
    db_session.add(wh)
    await db_session.commit()
    await db_session.refresh(wh)
    return wh


@pytest.fixture
async def other_warehouse(db_session):
    wh = Warehouse(name="Entrepôt Sud", location="San Pedro")
    db_session.add(wh)
    await db_session.commit()
    await db_session.refresh(wh)
    return wh


@pytest.fixture
async def admin_user(db_session):
    return await make_user(db_session, "admin", UserRole.ADMIN, email="admin@test.com")


@pytest.fixture
async def gerant_user(db_session, warehouse):
    return await make_user(db_session, "gerant", UserRole.OPERATOR, entrepot_id=warehouse.id)


@pytest.fixture
async def security_user(db_session, warehouse):
    return await make_user(db_session, "gate", UserRole.SECURITY, entrepot_id=warehouse.id)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def gerant_headers(gerant_user):
    return auth_headers(gerant_user)


@pytest.fixture
def security_headers(security_user):
    return auth_headers(security_user)


@pytest.fixture
def user_factory(db_session):
    """Create extra users inside a test: ``await user_factory("name", UserRole.X, ...)``."""
    async def factory(username, role, **kwargs):
        return await make_user(db_session, username, role, **kwargs)
    return factory


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def session_factory():
    """Opens independent sessions on the test database."""
    return TestingSessionLocal
