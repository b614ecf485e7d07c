"""Shared fixtures for ChoreHub tests.

Uses SQLite (aiosqlite) by default, no PostgreSQL required.
Set TEST_DATABASE_URL to override (e.g. for CI with real PostgreSQL).
"""

import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")

# Ensure settings can be loaded without .env
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")
os.environ.setdefault("REDIS_URL", "redis://localhost:1/0")

from chorehub.database import Base  # noqa: E402

# ---------------------------------------------------------------------------
# Engine: SQLite in-memory with StaticPool (shared across connections)
# ---------------------------------------------------------------------------

_engine_kwargs = {}
if TEST_DATABASE_URL.startswith("sqlite"):
    _engine_kwargs = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }

_engine = create_async_engine(TEST_DATABASE_URL, echo=False, **_engine_kwargs)
_TestSession = async_sessionmaker(
    bind=_engine, class_=AsyncSession, expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Session-scoped: create / drop tables
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(scope="session", autouse=True)
async def _setup_tables():
    import chorehub.models  # noqa: F401 (populate Base.metadata)

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await _engine.dispose()


# ---------------------------------------------------------------------------
# Reset rate-limiter counters before every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Clear in-memory rate-limit counters so tests never block each other."""
    from chorehub.core.rate_limit import limiter

    storage = getattr(limiter, "_storage", None)
    if storage is not None and hasattr(storage, "reset"):
        storage.reset()


# ---------------------------------------------------------------------------
# Per-test session with rollback
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def db_session():
    async with _TestSession() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# HTTP test client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def client(db_session: AsyncSession):
    from chorehub.database import get_db
    from chorehub.main import app

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience: registered parent with tokens + family_id
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def registered_parent(client: AsyncClient, db_session: AsyncSession):
    """Register a parent and return context dict.

    Keys: headers, user_id, family_id, family_name, invite_code, email, tokens
    """
    from chorehub.core.security import decode_token
    from chorehub.models.family import Family
    from chorehub.models.user import User

    suffix = uuid.uuid4().hex[:8]
    email = f"parent-{suffix}@test.com"
    family_name = f"Test Family {suffix}"
    resp = await client.post("/api/v1/auth/register", json={
        "email": email,
        "password": "testpassword123",
        "name": "Test Parent",
        "family_name": family_name,
    })
    assert resp.status_code == 200, resp.text
    tokens = resp.json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    payload = decode_token(tokens["access_token"])
    user_id = uuid.UUID(payload["sub"])

    result = await db_session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one()
    result = await db_session.execute(
        select(Family.invite_code).where(Family.id == user.family_id)
    )
    invite_code = result.scalar_one()

    return {
        "headers": headers,
        "user_id": str(user.id),
        "family_id": str(user.family_id),
        "family_name": family_name,
        "invite_code": invite_code,
        "email": email,
        "tokens": tokens,
    }


async def create_child(
    client: AsyncClient,
    parent: dict,
    name: str = "Emma",
    pin: str = "1234",
) -> dict:
    """Create a child via the API, log in with PIN, and return its context."""
    family_id = parent["family_id"]
    resp = await client.post(
        f"/api/v1/families/{family_id}/children/",
        json={"name": name, "pin": pin},
        headers=parent["headers"],
    )
    assert resp.status_code == 201, resp.text
    child = resp.json()

    login = await client.post("/api/v1/auth/login-pin", json={
        "invite_code": parent["invite_code"],
        "child_name": name,
        "pin": pin,
    })
    assert login.status_code == 200, login.text
    token = login.json()["access_token"]

    return {
        "id": child["id"],
        "name": name,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest_asyncio.fixture()
async def child(client: AsyncClient, registered_parent: dict):
    return await create_child(client, registered_parent, "Emma")


# ---------------------------------------------------------------------------
# Service-level fixtures (no HTTP)
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def family_members(db_session: AsyncSession):
    """A family with one parent and two children, created directly in the DB.

    Keys: family, parent, child, other_child
    """
    from chorehub.models.enums import UserRole
    from chorehub.models.family import Family
    from chorehub.models.user import User

    family = Family(name="Service Family", invite_code=uuid.uuid4().hex[:6].upper())
    db_session.add(family)
    await db_session.flush()

    parent = User(
        family_id=family.id, name="Pat", role=UserRole.PARENT,
        email=f"pat-{uuid.uuid4().hex[:8]}@test.com",
    )
    child = User(family_id=family.id, name="Ava", role=UserRole.CHILD)
    other_child = User(family_id=family.id, name="Ben", role=UserRole.CHILD)
    db_session.add_all([parent, child, other_child])
    await db_session.flush()
    for user in (parent, child, other_child):
        await db_session.refresh(user)

    return {
        "family": family,
        "parent": parent,
        "child": child,
        "other_child": other_child,
    }
