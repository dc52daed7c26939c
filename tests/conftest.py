"""Shared fixtures: a throwaway SQLite database per test and a fake dispatcher."""

import asyncio
import os

# Must be set before planning.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("EMAIL_DRY_RUN", "true")

import logfire
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from planning.config import Settings
from planning.database import Base
from planning import models  # noqa: F401
from planning.models.user import UserRole
from planning.repository import PlanningRepository
from planning.services.email_service import DispatchResult

logfire.configure(send_to_logfire=False, console=False)


class FakeDispatcher:
    """Records every send; recipients in `fail_for` get a failed result."""

    def __init__(self, fail_for=(), raise_for=(), delay: float = 0):
        self.sent: list[tuple[str, str, str]] = []
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.delay = delay

    async def send(self, recipient: str, subject: str, body: str) -> DispatchResult:
        if self.delay:
            await asyncio.sleep(self.delay)
        if recipient in self.raise_for:
            raise RuntimeError("provider exploded")
        if recipient in self.fail_for:
            return DispatchResult(success=False, error="Mailbox unavailable")
        self.sent.append((recipient, subject, body))
        return DispatchResult(success=True, message_id=f"msg-{len(self.sent)}")

    def recipients(self) -> list[str]:
        return [recipient for recipient, _, _ in self.sent]


@pytest.fixture
def config():
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        email_dry_run=True,
        dispatch_timeout_seconds=0.5,
        reminder_lead_minutes=60,
        reminder_batch_size=50,
        reminder_max_attempts=3,
        reminder_claim_seconds=300,
        scheduler_enabled=False,
    )


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite so separate sessions see each other's commits."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'planning.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def make_user(db):
    """Factory creating a user with a unique email unless told otherwise."""
    counter = {"n": 0}

    async def _make_user(email: str | None = "", role: UserRole = UserRole.PATIENT, name: str | None = None):
        counter["n"] += 1
        if email == "":
            email = f"user{counter['n']}@example.com"
        return await PlanningRepository(db).create_user(
            email=email,
            name=name or f"User {counter['n']}",
            role=role.value,
        )

    return _make_user


@pytest_asyncio.fixture
async def psychologist(make_user):
    return await make_user(email="dr.martin@example.com", role=UserRole.PSYCHOLOGIST)


@pytest_asyncio.fixture
async def patient(make_user):
    return await make_user(email="alice@example.com")
