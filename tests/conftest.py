"""Shared test fixtures: async SQLite in-memory DB + test client."""

import json
import os
from collections.abc import AsyncGenerator

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

# Import all models so metadata is populated
import app.models  # noqa: F401, E402
from app.core import cache, ratelimit  # noqa: E402
from app.core.database import get_session  # noqa: E402
from app.core.security import create_jwt, hash_password  # noqa: E402
from app.main import app  # noqa: E402
from app.models.directory_settings import DirectorySettingsUpdate  # noqa: E402
from app.models.listing import BusinessListing  # noqa: E402
from app.models.subscription import Subscription, SubscriptionStatus  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.services.allow_lists import update_directory_settings  # noqa: E402

PLAN_ID = "directory-pro"


@pytest.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def test_session_factory(engine):
    """Session factory bound to the test SQLite engine."""
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(test_session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as sess:
        yield sess
        await sess.rollback()


@pytest.fixture(autouse=True)
def _reset_process_state():
    cache.clear()
    ratelimit.reset()
    yield
    cache.clear()
    ratelimit.reset()


@pytest.fixture
async def client(test_session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client; every request gets its own DB session."""

    async def _override_session():
        async with test_session_factory() as sess:
            yield sess

    app.dependency_overrides[get_session] = _override_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Data helpers ─────────────────────────────────────────────

@pytest.fixture
def plan_id() -> str:
    return PLAN_ID


@pytest.fixture
def headers_for():
    """Bearer headers carrying a fresh JWT for the given user."""

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_jwt(subject=str(user.id), role=user.role)}"}

    return _headers


@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    async def _make(role: UserRole = UserRole.MEMBER, username: str | None = None) -> User:
        counter["n"] += 1
        name = username or f"user{counter['n']}"
        user = User(
            username=name,
            email=f"{name}@example.com",
            password_hash=hash_password("password123"),
            role=role,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_listing(session):
    counter = {"n": 0}

    async def _make(user: User, **overrides) -> BusinessListing:
        counter["n"] += 1
        fields = {
            "business_name": f"Studio {counter['n']}",
            "description": "Natural light photography with a relaxed approach.",
            "city": "London",
            "category": "Wedding",
            "slug": f"studio-{counter['n']}",
            "is_active": True,
            "approved": True,
        }
        fields.update(overrides)
        for key in ("images", "packages"):
            if key in fields and not isinstance(fields[key], str):
                fields[key] = json.dumps(fields[key])
        listing = BusinessListing(user_id=user.id, **fields)
        session.add(listing)
        await session.commit()
        await session.refresh(listing)
        return listing

    return _make


@pytest.fixture
def subscribe(session):
    async def _subscribe(
        user: User, status: SubscriptionStatus = SubscriptionStatus.ACTIVE, plan_id: str = PLAN_ID,
    ) -> Subscription:
        sub = Subscription(user_id=user.id, plan_id=plan_id, status=status)
        session.add(sub)
        await session.commit()
        await session.refresh(sub)
        return sub

    return _subscribe


@pytest.fixture
def configure(session):
    """Apply directory settings changes, e.g. ``await configure(subscription_plan_id=...)``."""

    async def _configure(**changes):
        return await update_directory_settings(session, DirectorySettingsUpdate(**changes))

    return _configure
