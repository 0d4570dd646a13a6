"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Optional

import httpx
import pytest

from soulseer.database import close_db, get_async_session_context, init_db
from soulseer.models.session import ReadingSession, SessionStatus
from soulseer.models.user import ReaderProfile, ReaderStatus, User, UserRole
from soulseer.utils.datetime import utc_now_naive
from soulseer.utils.security import create_access_token


@pytest.fixture
async def db():
    """Create an in-memory SQLite DB for each test."""
    await init_db("sqlite+aiosqlite://")
    yield
    await close_db()


@pytest.fixture
async def api_client(db):
    """httpx.AsyncClient wired to the FastAPI app (lifespan is not run)."""
    from soulseer.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.email, UserRole(user.role).value)
    return {"Authorization": f"Bearer {token}"}


async def create_user(
    name: str,
    role: UserRole = UserRole.CLIENT,
    *,
    tz: str = "UTC",
    coins: int = 0,
    password: Optional[str] = None,
) -> SimpleNamespace:
    async with get_async_session_context() as s:
        user = User(
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            password_hash=User.hash_password(password) if password else None,
            role=role,
            timezone=tz,
            coin_balance=coins,
        )
        s.add(user)
        await s.commit()
        await s.refresh(user)
    return SimpleNamespace(user=user, id=user.user_id, headers=auth_headers(user))


async def create_reader(
    name: str,
    *,
    tz: str = "UTC",
    status: ReaderStatus = ReaderStatus.ONLINE,
    rates: Optional[dict] = None,
    **profile_fields,
) -> SimpleNamespace:
    reader = await create_user(name, UserRole.READER, tz=tz)
    rates = rates if rates is not None else {"CHAT": 2.5, "CALL": 3.0}
    first, _, last = name.partition(" ")
    async with get_async_session_context() as s:
        profile = ReaderProfile(
            user_id=reader.id,
            first_name=first,
            last_name=last or "Reader",
            bio=profile_fields.pop("bio", "Intuitive reader"),
            session_types=list(rates),
            rates=rates,
            status=status,
            **profile_fields,
        )
        s.add(profile)
        await s.commit()
        await s.refresh(profile)
    reader.profile = profile
    return reader


async def create_session(client, reader, *, status=SessionStatus.COMPLETED, rate="2.50", minutes=30, **fields):
    """Insert a reading session directly, skipping the booking rules"""
    scheduled_at = fields.pop("scheduled_at", utc_now_naive() - timedelta(hours=2))
    rate = Decimal(rate)
    async with get_async_session_context() as s:
        session = ReadingSession(
            client_id=client.id,
            reader_id=reader.id,
            status=status,
            scheduled_at=scheduled_at,
            duration_minutes=minutes,
            rate_per_minute=rate,
            estimated_cost=rate * minutes,
            **fields,
        )
        s.add(session)
        await s.commit()
        await s.refresh(session)
    return session


@pytest.fixture
def make_user():
    return create_user


@pytest.fixture
def make_reader():
    return create_reader


@pytest.fixture
def make_session():
    return create_session


@pytest.fixture
async def client_account(db):
    return await create_user("Luna Client")


@pytest.fixture
async def reader_account(db):
    return await create_reader("Ada Moon")


@pytest.fixture
async def admin_account(db):
    return await create_user("Root Admin", UserRole.ADMIN)


def tomorrow_at(hour: int, minute: int = 0) -> datetime:
    """A UTC instant on tomorrow's date"""
    day = datetime.now(timezone.utc).date() + timedelta(days=1)
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def tomorrow():
    return tomorrow_at
