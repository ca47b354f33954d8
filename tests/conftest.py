import asyncio
import os
import tempfile

# Settings are read at import time, so the environment goes first.
_DB_PATH = os.path.join(tempfile.mkdtemp(prefix="monopoly-admin-tests-"), "test.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["ENV"] = "test"
os.environ["SESSION_HTTPS_ONLY"] = "false"
os.environ["COOKIE_SECURE"] = "false"
os.environ["REDIS_URL"] = "redis://127.0.0.1:1/0"
os.environ["GOOGLE_MAPS_API_KEY"] = "test-key"
os.environ["GEMINI_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete

from src.backend.crud.users import create_admin
from src.backend.models.document import Document
from src.backend.models.user import AdminUser
from src.backend.services import geocoding
from src.backend.utils.database import AsyncSessionLocal, Base
from src.backend.utils.triggers import triggers

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "correct horse battery staple"


class StubGeocoder:
    """Records every address asked for and answers from ``results``."""

    def __init__(self, results=None, error=None):
        self.results = list(results or [])
        self.error = error
        self.calls = []

    async def geocode(self, address):
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        return list(self.results)


class FakeModel:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    async def generate_json(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


# Plain sqlite3 engine on the same file so cleanup needs no event loop.
_sync_engine = create_engine(f"sqlite:///{_DB_PATH}")


@pytest.fixture(autouse=True)
def clean_db():
    Base.metadata.create_all(_sync_engine)
    with _sync_engine.begin() as conn:
        conn.execute(delete(Document))
        conn.execute(delete(AdminUser))
    yield


@pytest.fixture(autouse=True)
def geocoder(monkeypatch):
    stub = StubGeocoder()
    monkeypatch.setattr(geocoding, "get_geocoder", lambda: stub)
    return stub


@pytest.fixture
async def db():
    async with AsyncSessionLocal() as session:
        yield session
    await triggers.drain()


@pytest.fixture
def client():
    from src.backend.app import app

    with TestClient(app) as c:
        yield c


def csrf_from(client):
    """Seed the XSRF cookie with an HTML GET and return its value."""
    if not client.cookies.get("XSRF-TOKEN"):
        client.get("/login")
    return client.cookies.get("XSRF-TOKEN")


@pytest.fixture
def admin_client(client):
    async def _make():
        async with AsyncSessionLocal() as session:
            await create_admin(session, ADMIN_EMAIL, ADMIN_PASSWORD, "Test Admin")

    asyncio.run(_make())
    token = csrf_from(client)
    resp = client.post(
        "/auth/login",
        data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD, "csrf_token": token},
        follow_redirects=False,
    )
    assert resp.status_code == 303, resp.text
    assert resp.headers["location"] == "/admin/dashboard"
    client.headers["X-CSRF-Token"] = token
    return client


def settle(client):
    """Wait for trigger tasks spawned by requests on the client's event loop."""
    client.portal.call(triggers.drain)
