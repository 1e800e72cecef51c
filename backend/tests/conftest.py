"""Shared fixtures: in-memory database, the app wired to it, and seed helpers."""

from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from crm.database import Base, get_db
from crm.main import app
from crm.middleware.auth import create_access_token
from crm.models import Campaign, Interaction, Lead, Session, User

ALICE = "alice"
BOB = "bob"
ALICE_SESSION_TOKEN = "alice-session-token"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def users(session_factory):
    async with session_factory() as s:
        s.add_all([
            User(id=ALICE, name="Alice Admin", email="alice@example.com", email_verified=True),
            User(id=BOB, name="Bob Builder", email="bob@example.com"),
        ])
        s.add(
            Session(
                id="session-1",
                token=ALICE_SESSION_TOKEN,
                user_id=ALICE,
                expires_at=datetime.utcnow() + timedelta(days=1),
            )
        )
        await s.commit()
    return {ALICE: ALICE, BOB: BOB}


@pytest.fixture
async def client(session_factory, users):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def alice_headers():
    return {"Authorization": f"Bearer {create_access_token(ALICE)}"}


@pytest.fixture
def bob_headers():
    return {"Authorization": f"Bearer {create_access_token(BOB)}"}


@pytest.fixture
def make_campaign(session_factory, users):
    async def _make(tenant_id: str = ALICE, name: str = "Campaign", **fields) -> Campaign:
        async with session_factory() as s:
            campaign = Campaign(tenant_id=tenant_id, name=name, **fields)
            s.add(campaign)
            await s.commit()
            return campaign

    return _make


@pytest.fixture
def make_lead(session_factory, users):
    counter = {"n": 0}

    async def _make(tenant_id: str = ALICE, email: str | None = None, **fields) -> Lead:
        counter["n"] += 1
        async with session_factory() as s:
            lead = Lead(tenant_id=tenant_id, email=email or f"lead{counter['n']}@example.com", **fields)
            s.add(lead)
            await s.commit()
            return lead

    return _make


@pytest.fixture
def make_interaction(session_factory, users):
    async def _make(lead: Lead, type: str = "email", **fields) -> Interaction:
        async with session_factory() as s:
            interaction = Interaction(tenant_id=lead.tenant_id, lead_id=lead.id, type=type, **fields)
            s.add(interaction)
            await s.commit()
            return interaction

    return _make
