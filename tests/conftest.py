"""
tests/conftest.py
Shared fixtures: a throwaway SQLite database per test, in-memory Redis,
a recording audit sink, and one admin per role.
"""

import os

# Settings are read at import time, so the environment goes first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest_backoffice.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key")
os.environ.setdefault("AUDIT_LOG_ENABLED", "true")

import pytest
import pytest_asyncio
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import AsyncSessionLocal, Base, engine, get_db
from config.redis_client import get_redis
from main import app
from shared.models.models import Admin, Role, RoleName
from shared.utils.audit import AuditLogger, get_audit_logger
from shared.utils.security import create_access_token, hash_password

ADMIN_PASSWORD = "Str0ngPassw0rd!"


# ── Test doubles ──────────────────────────────────────────────

class FakeRedis:
    """The subset of redis.asyncio.Redis the API touches."""

    def __init__(self):
        self.store = {}

    async def setex(self, key, ttl, value):
        self.store[key] = value

    async def get(self, key):
        return self.store.get(key)

    async def exists(self, *keys):
        return sum(1 for k in keys if k in self.store)

    async def delete(self, *keys):
        return sum(1 for k in keys if self.store.pop(k, None) is not None)

    async def ping(self):
        return True


class RecordingSink:
    """Audit sink that keeps every dispatched event in memory."""

    def __init__(self):
        self.events = []

    def __call__(self, event: dict) -> None:
        self.events.append(event)

    def actions(self, outcome: str = None):
        return [
            e["action"] for e in self.events
            if outcome is None or e["outcome"] == outcome
        ]


def auth_headers(admin: Admin) -> dict:
    token, _ = create_access_token(str(admin.id), admin.role.name, admin.email)
    return {"Authorization": f"Bearer {token}"}


# ── Database ──────────────────────────────────────────────────

@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


# ── App ───────────────────────────────────────────────────────

@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def audit_sink() -> RecordingSink:
    return RecordingSink()


@pytest_asyncio.fixture
async def client(fake_redis: FakeRedis, audit_sink: RecordingSink) -> AsyncClient:
    async def _audit_logger(session: AsyncSession = Depends(get_db)) -> AuditLogger:
        return AuditLogger(session, sink=audit_sink)

    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_audit_logger] = _audit_logger

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Roles & Admins ────────────────────────────────────────────

@pytest_asyncio.fixture
async def roles(db: AsyncSession) -> dict:
    created = {name: Role(name=name.value, description=f"{name.value} role") for name in RoleName}
    db.add_all(created.values())
    await db.commit()
    return created


async def _make_admin(db: AsyncSession, role: Role, email: str, phone_no: str) -> Admin:
    admin = Admin(
        name=email.split("@")[0].title(),
        email=email,
        phone_no=phone_no,
        password_hash=hash_password(ADMIN_PASSWORD),
        role=role,
    )
    db.add(admin)
    await db.commit()
    return admin


@pytest_asyncio.fixture
async def super_admin(db: AsyncSession, roles: dict) -> Admin:
    return await _make_admin(db, roles[RoleName.SUPER_ADMIN], "root@astro-backoffice.com", "9000000001")


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession, roles: dict) -> Admin:
    return await _make_admin(db, roles[RoleName.ADMIN], "ops@astro-backoffice.com", "9000000002")


@pytest_asyncio.fixture
async def manager(db: AsyncSession, roles: dict) -> Admin:
    return await _make_admin(db, roles[RoleName.MANAGER], "manager@astro-backoffice.com", "9000000003")
