import os
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ------------------------------------------------------------------
# FORCE TESTING MODE
# Must happen BEFORE importing aishe_portal so settings and the engine
# pick up SQLite with NullPool and no outbound mail.
# ------------------------------------------------------------------
os.environ["TESTING"] = "true"
os.environ["ENV"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_portal.db"
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EMAIL_USER"] = ""
os.environ["EMAIL_PASS"] = ""
os.environ["DB_RETRY_DELAY_SECONDS"] = "0"

from sqlmodel import SQLModel

from aishe_portal.main import app
from aishe_portal.core.database import AsyncSessionLocal, engine, init_db
from aishe_portal.core.security import create_access_token
from aishe_portal.models.user import UserRole
from aishe_portal.schemas.user import UserCreate
from aishe_portal.services.email_service import get_email_dispatcher
from aishe_portal.services.user_service import create_user


class RecordingDispatcher:
    """Stands in for EmailDispatcher; keeps every send in memory."""

    def __init__(self, configured: bool = True):
        self.is_configured = configured
        self.sent = []

    def send(self, template, recipient, payload):
        self.sent.append({"template": template, "recipient": recipient, "payload": payload})
        return True

    def last(self, template):
        matches = [m for m in self.sent if m["template"] == template]
        return matches[-1] if matches else None


@pytest_asyncio.fixture
async def database():
    await init_db()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)


@pytest_asyncio.fixture
async def session(database):
    async with AsyncSessionLocal() as s:
        yield s


@pytest.fixture
def outbox():
    return RecordingDispatcher(configured=True)


@pytest_asyncio.fixture
async def client(database, outbox):
    app.dependency_overrides[get_email_dispatcher] = lambda: outbox
    app.state.maintenance_gate.invalidate()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


def user_payload(username: str, email: str, password: str = "password123", **extra) -> UserCreate:
    return UserCreate(
        username=username,
        email=email,
        name=extra.pop("name", username.title()),
        mobile=extra.pop("mobile", "9876543210"),
        role=extra.pop("role", "HOD"),
        academic_year=extra.pop("academic_year", "2024-25"),
        password=password,
        **extra,
    )


@pytest_asyncio.fixture
async def make_user(session):
    async def _make(user_role: UserRole, username: str, email: str, password: str = "password123", **extra):
        return await create_user(session, user_role, user_payload(username, email, password, **extra))

    return _make


@pytest_asyncio.fixture
async def admin_headers(make_user):
    admin = await make_user(UserRole.Admin, "nodal", "nodal@example.com", role="Nodal Officer")
    token = create_access_token({"id": admin.id, "username": admin.username, "role": "admin"})
    return {"Authorization": f"Bearer {token}"}
