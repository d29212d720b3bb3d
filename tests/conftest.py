"""Shared test fixtures for the async database, seeded users and pets, limiters, and the HTTP client."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pet_adoption_api.core import rate_limits
from pet_adoption_api.core.config import Settings, get_settings
from pet_adoption_api.core.dependencies import get_async_session, get_limiter_registry
from pet_adoption_api.core.rate_limits import build_limiters
from pet_adoption_api.core.security import hash_password
from pet_adoption_api.lib.guard.limiter import LimiterRegistry
from pet_adoption_api.models.base import Base
from pet_adoption_api.models.pet import Pet
from pet_adoption_api.models.user import User
from pet_adoption_api.services.auth_service import generate_tokens

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-not-for-production",
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
        jwt_refresh_token_expire_days=7,
        environment="test",
        trusted_proxy_headers="X-Forwarded-For",
    )


def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory SQLite engine; every session shares the one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt is slow; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def make_user(async_session: AsyncSession, password_hash: str) -> Callable[..., Awaitable[User]]:
    """Factory persisting a user with ``TEST_PASSWORD``."""

    async def _make(username: str, role: str = "user", **overrides: Any) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            hashed_password=password_hash,
            role=role,
            **overrides,
        )
        async_session.add(user)
        await async_session.commit()
        return user

    return _make


@pytest.fixture
async def applicant(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("alice")


@pytest.fixture
async def other_applicant(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("bob")


@pytest.fixture
async def staff_user(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("sam", role="staff")


@pytest.fixture
async def admin_user(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("ada", role="admin")


@pytest.fixture
async def super_admin_user(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("root", role="super_admin")


@pytest.fixture
def make_pet(async_session: AsyncSession) -> Callable[..., Awaitable[Pet]]:
    async def _make(name: str = "Biscuit", **overrides: Any) -> Pet:
        pet = Pet(name=name, species=overrides.pop("species", "dog"), **overrides)
        async_session.add(pet)
        await async_session.commit()
        return pet

    return _make


@pytest.fixture
async def pet(make_pet: Callable[..., Awaitable[Pet]]) -> Pet:
    """An available dog."""
    return await make_pet()


@pytest.fixture
def application_fields() -> dict[str, Any]:
    """A complete, valid set of applicant fields."""
    return {
        "first_name": "Alice",
        "last_name": "Walker",
        "email": "alice@example.com",
        "phone": "+1 555 010 2030",
        "street": "12 Elm Street",
        "city": "Springfield",
        "region": "IL",
        "postal_code": "62701",
        "message": "We have a fenced yard and lots of time for walks.",
        "preferred_date": datetime.now(UTC) + timedelta(days=7),
        "housing_type": "house",
        "has_yard": True,
    }


@pytest.fixture
def limiters(settings: Settings) -> LimiterRegistry:
    return build_limiters(settings)


@pytest.fixture
def auth_headers(settings: Settings) -> Callable[[User], dict[str, str]]:
    """Build an Authorization header carrying a fresh access token for a user."""

    def _headers(user: User) -> dict[str, str]:
        tokens = generate_tokens(user, settings)
        return {"Authorization": f"Bearer {tokens.access_token}"}

    return _headers


@pytest.fixture
def app(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    limiters: LimiterRegistry,
    monkeypatch: pytest.MonkeyPatch,
) -> Any:
    """The full application wired to the test database and limiters."""
    from pet_adoption_api.main import create_app

    monkeypatch.setattr("pet_adoption_api.main.get_settings", lambda: settings)
    monkeypatch.setattr(rate_limits, "_registry", limiters)
    application = create_app()

    async def _session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_async_session] = _session
    application.dependency_overrides[get_settings] = lambda: settings
    application.dependency_overrides[get_limiter_registry] = lambda: limiters
    return application


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="https://test") as ac:
        yield ac
