import os
import tempfile
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Load environment variables from .env file
load_dotenv()

# Throwaway SQLite file outside the working tree
TEST_DB_PATH = Path(tempfile.gettempdir()) / "doctor_appointment_test.db"
DEFAULT_TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"

# Settings are read on import; make sure the app can start without a .env
os.environ.setdefault("DATABASE_URL", DEFAULT_TEST_DATABASE_URL)
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from app.database import get_async_database_url, get_db  # noqa: E402
from app.dependencies import get_cache_manager  # noqa: E402
from app.main import app  # noqa: E402
from app.models import metadata  # noqa: E402
from app.services.auth_service import AuthService  # noqa: E402
from app.services.slot_ledger import SlotLedger  # noqa: E402
from app.services.user_service import UserService  # noqa: E402

# Tests never touch DATABASE_URL; they use their own throwaway database
TEST_DATABASE_URL = get_async_database_url(
    os.getenv("TEST_DATABASE_URL", DEFAULT_TEST_DATABASE_URL)
)

# Use NullPool to avoid event loop issues between tests
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

SLOT_DATE = "2024-06-01"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on freshly created tables."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client bound to the test session, without Redis."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _create_account(
    db_session: AsyncSession,
    name: str,
    email: str,
    role: str,
    specialization: str | None = None,
) -> dict:
    user = await UserService().create_user(
        db_session,
        name=name,
        email=email,
        password="secret123",
        role=role,
        specialization=specialization,
    )
    tokens = AuthService().create_tokens(str(user["id"]), user["role"])
    return {
        **user,
        "token": tokens.access_token,
        "refresh_token": tokens.refresh_token,
        "headers": {"Authorization": f"Bearer {tokens.access_token}"},
    }


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession) -> dict:
    """Regular user account with tokens."""
    return await _create_account(db_session, "Pat Patient", "pat@example.com", "user")


@pytest_asyncio.fixture
async def other_patient(db_session: AsyncSession) -> dict:
    """Second regular user account."""
    return await _create_account(db_session, "Quinn Patient", "quinn@example.com", "user")


@pytest_asyncio.fixture
async def doctor(db_session: AsyncSession) -> dict:
    """Doctor account with tokens."""
    return await _create_account(
        db_session, "Dr. Dana House", "dana@example.com", "doctor", "Cardiology"
    )


@pytest_asyncio.fixture
async def other_doctor(db_session: AsyncSession) -> dict:
    """Second doctor account."""
    return await _create_account(
        db_session, "Dr. Eli Grey", "eli@example.com", "doctor", "Dermatology"
    )


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> dict:
    """Admin account with tokens."""
    return await _create_account(db_session, "Ada Admin", "ada@example.com", "admin")


@pytest_asyncio.fixture
async def published_doctor(db_session: AsyncSession, doctor: dict) -> dict:
    """Doctor with 09:00 and 10:00 published on SLOT_DATE."""
    await SlotLedger(db_session).upsert_date(doctor["id"], SLOT_DATE, ["09:00", "10:00"])
    return doctor


@pytest.fixture
def booking_payload(published_doctor: dict) -> dict:
    """Request body booking the 09:00 slot."""
    return {
        "doctorId": str(published_doctor["id"]),
        "date": SLOT_DATE,
        "time": "09:00",
        "reason": "Chest pain follow-up",
    }
