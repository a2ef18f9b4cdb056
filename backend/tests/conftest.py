"""Pytest configuration and fixtures for CargoFlow tests.

Provides reusable test fixtures for database, authentication, Redis, etc.
Every test gets a fresh in-memory SQLite database and a fakeredis server.
"""

import base64
import re
import zlib
from datetime import date
from typing import AsyncGenerator

from fakeredis import aioredis as fake_aioredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.password import hash_password
from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models.client import Client
from app.models.container import Container
from app.models.role import Role
from app.models.shipment import Shipment
from app.models.user import User
from app.services.accounts import build_token_response
from app.services.seed import seed_lookups, seed_roles, seed_settings
from app.utils.cache import set_redis
from app.utils.numbering import generate_code

TEST_PASSWORD = "password123"


# ── Settings / Redis ─────────────────────────────────────────────

@pytest.fixture(autouse=True)
def test_settings(monkeypatch, tmp_path):
    """No rate limiting, no SMTP, reports written to a temp dir."""
    monkeypatch.setattr(settings, "rate_limit_enabled", False)
    monkeypatch.setattr(settings, "smtp_host", "")
    monkeypatch.setattr(settings, "twilio_account_sid", "")
    monkeypatch.setattr(settings, "reports_dir", str(tmp_path / "reports"))
    return settings


@pytest_asyncio.fixture(autouse=True)
async def redis_client():
    """fakeredis in place of the shared Redis client."""
    client = fake_aioredis.FakeRedis(decode_responses=True)
    set_redis(client)
    yield client
    await client.flushall()
    set_redis(None)


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Test client sharing the test session; commits like get_db does."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Reference data ───────────────────────────────────────────────

@pytest_asyncio.fixture
async def roles(db_session: AsyncSession) -> dict[str, Role]:
    seeded = await seed_roles(db_session)
    await seed_lookups(db_session)
    await seed_settings(db_session)
    await db_session.commit()
    return seeded


# ── Factories ────────────────────────────────────────────────────

@pytest.fixture
def make_user(db_session: AsyncSession, roles):
    async def _make(
        role_name: str = "super_admin",
        email: str | None = None,
        client: Client | None = None,
        **fields,
    ) -> User:
        role = roles[role_name]
        user = User(
            email=email or f"{role_name}@example.com",
            hashed_password=hash_password(fields.pop("password", TEST_PASSWORD)),
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", role.display_name),
            role_id=role.id,
            user_type=role.user_type,
            client_id=client.id if client else None,
            **fields,
        )
        user.role = role
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_client(db_session: AsyncSession):
    async def _make(company_name: str = "Acme Imports", email: str | None = None, **fields) -> Client:
        record = Client(
            client_code=fields.pop("client_code", None) or await generate_code(db_session, "client"),
            company_name=company_name,
            contact_first_name="Jane",
            contact_last_name="Doe",
            contact_email=email or f"{company_name.lower().replace(' ', '.')}@example.com",
            contact_phone="+1 555 0100",
            address_city="Rotterdam",
            address_country="Netherlands",
            **fields,
        )
        db_session.add(record)
        await db_session.commit()
        return record

    return _make


@pytest.fixture
def make_container(db_session: AsyncSession):
    async def _make(container_number: str = "MSCU1234567", **fields) -> Container:
        record = Container(
            container_code=await generate_code(db_session, "container"),
            container_number=container_number,
            type=fields.pop("type", "40ft_standard"),
            **fields,
        )
        db_session.add(record)
        await db_session.commit()
        return record

    return _make


@pytest.fixture
def make_shipment(db_session: AsyncSession):
    async def _make(client: Client, **fields) -> Shipment:
        record = Shipment(
            shipment_code=await generate_code(db_session, "shipment"),
            tracking_number=await generate_code(db_session, "tracking"),
            client_id=client.id,
            origin_port="Shanghai",
            origin_country="China",
            destination_port="Rotterdam",
            destination_country="Netherlands",
            cargo_description=fields.pop("cargo_description", "Machine parts"),
            booking_date=fields.pop("booking_date", date.today()),
            **fields,
        )
        record.client = client
        db_session.add(record)
        await db_session.commit()
        return record

    return _make


def headers_for(user: User) -> dict:
    token = build_token_response(user).access_token
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token_headers():
    """Bearer headers for any user: `token_headers(user)`."""
    return headers_for


def extract_pdf_text(data: bytes) -> str:
    """Decoded content streams of a generated PDF, for text assertions."""
    chunks = []
    for raw in re.findall(rb"stream\r?\n(.*?)\r?\nendstream", data, re.S):
        raw = raw.strip()
        if raw.endswith(b"~>"):
            raw = base64.a85decode(raw, adobe=True)
        try:
            raw = zlib.decompress(raw)
        except zlib.error:
            pass
        chunks.append(raw.decode("latin-1"))
    return "\n".join(chunks)


@pytest.fixture
def pdf_text():
    """Text drawn in a PDF: `pdf_text(response.content)`."""
    return extract_pdf_text


# ── Users & tokens ───────────────────────────────────────────────

@pytest_asyncio.fixture
async def admin_user(make_user) -> User:
    return await make_user("super_admin", email="root@example.com")


@pytest.fixture
def auth_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest_asyncio.fixture
async def ops_headers(make_user) -> dict:
    return headers_for(await make_user("operations_manager", email="ops@example.com"))


@pytest_asyncio.fixture
async def staff_headers(make_user) -> dict:
    return headers_for(await make_user("admin", email="staff@example.com"))


@pytest_asyncio.fixture
async def acme(make_client) -> Client:
    return await make_client("Acme Imports")


@pytest_asyncio.fixture
async def globex(make_client) -> Client:
    return await make_client("Globex Trading")


@pytest_asyncio.fixture
async def portal_user(make_user, acme) -> User:
    return await make_user("client_user", email="buyer@acme.example.com", client=acme)


@pytest.fixture
def portal_headers(portal_user: User) -> dict:
    return headers_for(portal_user)


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "auth: Authentication and permission tests")
