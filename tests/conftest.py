from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_PER_MINUTE"] = "0"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_db, get_session_factory
from app.main import app
from app.models import Booking, User


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Enforce foreign keys and let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside the outer transaction.
    @event.listens_for(eng.sync_engine, "connect")
    def _configure_sqlite(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(eng.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def make_user(
    factory: async_sessionmaker[AsyncSession],
    *,
    email: str,
    role: str = "student",
    status: str = "active",
    first_name: str = "Test",
    last_name: str = "User",
    password_hash: str = "not-a-real-hash",
    balance_cents: int = 0,
    language: str | None = None,
    hourly_rate: int | None = None,
    default_meeting_link: str | None = None,
    created_at: datetime | None = None,
    **extra,
) -> User:
    user = User(
        email=email,
        role=role,
        status=status,
        first_name=first_name,
        last_name=last_name,
        password_hash=password_hash,
        balance_cents=balance_cents,
        language=language,
        hourly_rate=hourly_rate,
        default_meeting_link=default_meeting_link,
        **extra,
    )
    if created_at is not None:
        user.created_at = created_at
    async with factory() as session:
        session.add(user)
        await session.commit()
        await session.refresh(user)
    return user


async def make_booking(factory: async_sessionmaker[AsyncSession], **fields) -> Booking:
    values = {
        "lesson_type": "standard",
        "lesson_duration_minutes": 60,
        "amount_cents": 2500,
        "currency": "USD",
        "status": "confirmed",
    }
    values.update(fields)
    booking = Booking(**values)
    async with factory() as session:
        session.add(booking)
        await session.commit()
        await session.refresh(booking)
    return booking


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role, name=user.full_name)
    return {"Authorization": f"Bearer {token}"}
