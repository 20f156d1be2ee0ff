"""Test fixtures — a fresh in-memory database and upload dir per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. DOCSHELF_* env vars are set before anything imports docshelf, because
   config.settings is read once at import time (in-memory SQLite, cheap
   bcrypt rounds, no schema creation on startup).
2. Each test gets its own aiosqlite engine with a StaticPool, so every
   session of that test shares one in-memory database, and the tables are
   created from the ORM metadata.
3. get_db and get_storage are overridden on the app: each request gets its
   own session from the test engine, and uploads land under tmp_path.

Tests that want to look at the database directly open their own short-lived
session from the `sessions` factory.
"""

import base64
import json
import os

os.environ["DOCSHELF_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DOCSHELF_BCRYPT_ROUNDS"] = "4"
os.environ["DOCSHELF_AUTO_CREATE_SCHEMA"] = "false"
os.environ.setdefault("DOCSHELF_ENVIRONMENT", "test")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from docshelf.db.engine import get_db  # noqa: E402
from docshelf.db.models import Base  # noqa: E402
from docshelf.main import app  # noqa: E402
from docshelf.storage.local import LocalFileStorage, get_storage  # noqa: E402


@pytest_asyncio.fixture()
async def db_engine():
    """Per-test in-memory SQLite database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def sessions(db_engine):
    """Session factory bound to the test database."""
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(sessions):
    """A session for service-level tests (no HTTP)."""
    async with sessions() as session:
        yield session


@pytest_asyncio.fixture()
async def storage(tmp_path):
    return LocalFileStorage(tmp_path / "public", "uploads")


@pytest_asyncio.fixture()
async def client(sessions, storage):
    """HTTP client with the app's get_db and get_storage overridden.

    Learn: Auth is NOT mocked — tests register and log in through the real
    endpoints and send real bearer tokens, because the auth pipeline is
    exactly what most of these tests are about.
    """
    async def override_get_db():
        async with sessions() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ─── Helpers ────────────────────────────────────────────


def basic_auth(email: str, password: str) -> dict:
    raw = base64.b64encode(f"{email}:{password}".encode()).decode()
    return {"Authorization": f"Basic {raw}"}


def bearer(token: dict | str) -> dict:
    value = token["value"] if isinstance(token, dict) else token
    return {"Authorization": f"Bearer {value}"}


async def register(client, username="u1", email="a@x.com", password="p1") -> dict:
    r = await client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert r.status_code == 200, r.text
    return r.json()


def document_metadata(**overrides) -> dict:
    data = {
        "fileType": "pdf",
        "createTime": "2024-01-01T12:00:00",
        "artistName": "Artist",
        "artistNickname": "Nick",
        "compositionName": "Composition",
        "price": "9.99",
    }
    data.update(overrides)
    return data


async def upload(
    client,
    token,
    filename="score.pdf",
    content=b"%PDF-1.4 test",
    **metadata,
) -> dict:
    r = await client.post(
        "/api/v1/documents",
        headers=bearer(token),
        files={"file": (filename, content, "application/pdf")},
        data={"data": json.dumps(document_metadata(**metadata))},
    )
    assert r.status_code == 200, r.text
    return r.json()
