"""Shared fixtures: an isolated SQLite database per test plus in-memory
stand-ins for Redis and outgoing mail."""

import asyncio
import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_ASYNC_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("GOOGLE_CLIENT_ID", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.redis import get_redis
from app.core.security import SecurityService
from app.db.models.database import Base, User
from app.db.session import get_session
from app.main import app
from app.services.shares.mailer import MailerService

PASSWORD = "secret123"


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.available = True

    def is_available(self) -> bool:
        return self.available

    async def ping(self) -> bool:
        return self.available

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        self.store[key] = value
        self.ttls[key] = ttl_seconds

    async def get(self, key: str):
        return self.store.get(key)

    async def delete(self, key: str) -> None:
        self.store.pop(key, None)
        self.ttls.pop(key, None)


class FakeMailer:
    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []

    @staticmethod
    def verification_link(token: str) -> str:
        return MailerService.verification_link(token)

    async def send_verification_email(self, email: str, token: str):
        self.sent.append(("verify", email, token))

    async def send_password_reset_email(self, email: str, token: str):
        self.sent.append(("reset", email, token))

    def last(self, kind: str):
        return next(item for item in reversed(self.sent) if item[0] == kind)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create())
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(session_factory, fake_redis, mailer):
    async def _get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[MailerService] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def run_db(session_factory):
    """Run `fn(session)` against the test database and return its result."""

    def _run(fn):
        async def _inner():
            async with session_factory() as session:
                result = await fn(session)
                await session.commit()
                return result

        return asyncio.run(_inner())

    return _run


@pytest.fixture
def make_user(run_db):
    counter = {"n": 0}

    def _make(role: str = "learner", **fields) -> User:
        counter["n"] += 1
        n = counter["n"]
        values = {
            "name": f"{role.title()} {n}",
            "email": f"{role}{n}@example.com",
            "role": role,
            "department": "General",
            "is_email_verified": True,
            "password_hash": SecurityService.hash_password(fields.pop("password", PASSWORD)),
        }
        values.update(fields)

        async def _add(session):
            user = User(**values)
            session.add(user)
            await session.flush()
            return user

        return run_db(_add)

    return _make


@pytest.fixture
def auth_headers():
    security = SecurityService()

    def _headers(user: User) -> dict[str, str]:
        token = security.create_access_token(user.id, user.email, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def learner(make_user):
    return make_user("learner")


@pytest.fixture
def manager(make_user):
    return make_user("manager")


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def password():
    return PASSWORD
