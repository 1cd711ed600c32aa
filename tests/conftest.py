"""Shared test fixtures — SQLite store, recording gateway, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test config before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("AUTH_MODE", "LOCAL")

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, AsyncGenerator, Optional

import bcrypt
import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leave_portal.common.constants import LeaveStatus, LeaveType, TimeSlot, UserRole
from leave_portal.config import settings
from leave_portal.database import Base, Gateway, get_gateway
from leave_portal.main import create_app

# Import ALL model modules so metadata.create_all sees every table
import leave_portal.common.models  # noqa: F401
import leave_portal.leave.models  # noqa: F401
import leave_portal.manager.models  # noqa: F401
import leave_portal.users.models  # noqa: F401
import leave_portal.working_saturdays.models  # noqa: F401


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


class RecordingGateway(Gateway):
    """Gateway that remembers every statement it was asked to run."""

    def __init__(self, engine) -> None:
        super().__init__(engine)
        self.calls: list[tuple[str, Any]] = []

    async def query(self, statement, params=None):
        self.calls.append(("query", statement))
        return await super().query(statement, params)

    async def execute(self, statement, params=None):
        self.calls.append(("execute", statement))
        return await super().execute(statement, params)

    def transaction(self):
        self.calls.append(("transaction", None))
        return super().transaction()


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Clear slowapi's in-memory counters so login limits don't leak across tests."""
    from leave_portal.common.rate_limit import limiter

    limiter.reset()
    yield


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway(engine)


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app(gateway):
    """Create a fresh app instance with the gateway dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_gateway] = lambda: gateway
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app.

    App exceptions are not re-raised so the 500 envelope can be asserted.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for seeding rows directly) ────────────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

_employee_seq = iter(range(1000, 100000))


def _hash(plain: str) -> str:
    # Low cost keeps the suite fast; verification reads the cost from the hash
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


def _make_user(
    *,
    employee_id: Optional[str] = None,
    first_name: str = "Test",
    last_name: str = "User",
    role: UserRole = UserRole.EMPLOYEE,
    department: Optional[str] = "Engineering",
    company: Optional[str] = "ACME",
    password: Optional[str] = None,
    is_active: bool = True,
    department_head_id: Optional[int] = None,
    start_date: Optional[date] = date(2022, 4, 1),
) -> dict:
    return dict(
        employee_id=employee_id or f"E{next(_employee_seq)}",
        email=f"{first_name.lower()}.{last_name.lower()}@example.com",
        password=_hash(password) if password else None,
        first_name=first_name,
        last_name=last_name,
        role=role,
        company=company,
        department=department,
        gender="F",
        start_date=start_date,
        department_head_id=department_head_id,
        is_active=is_active,
    )


async def create_user(db: AsyncSession, **overrides) -> dict:
    """Insert a user, commit, and return its data dict including ``id``."""
    from leave_portal.users.models import User

    data = _make_user(**overrides)
    user = User(**data)
    db.add(user)
    await db.commit()
    data["id"] = user.id
    return data


async def create_setting(db: AsyncSession, key: str, value: Optional[str]) -> None:
    from leave_portal.common.models import SystemSetting

    db.add(SystemSetting(setting_key=key, setting_value=value))
    await db.commit()


async def create_working_saturday(
    db: AsyncSession,
    work_date: date,
    *,
    start_time: time = time(9, 0),
    end_time: time = time(12, 0),
    created_by: Optional[int] = None,
) -> int:
    from leave_portal.working_saturdays.models import WorkingSaturday

    row = WorkingSaturday(
        work_date=work_date,
        start_time=start_time,
        end_time=end_time,
        work_hours=(end_time.hour * 60 + end_time.minute - start_time.hour * 60 - start_time.minute) / 60,
        created_by=created_by,
    )
    db.add(row)
    await db.commit()
    return row.id


async def create_delegation(
    db: AsyncSession,
    manager_id: int,
    delegate_user_id: int,
    start_date: date,
    end_date: date,
    *,
    is_active: bool = True,
) -> int:
    from leave_portal.manager.models import DelegateApprover

    row = DelegateApprover(
        manager_id=manager_id,
        delegate_user_id=delegate_user_id,
        start_date=start_date,
        end_date=end_date,
        is_active=is_active,
    )
    db.add(row)
    await db.commit()
    return row.id


async def create_leave_quota(db: AsyncSession, leave_type: LeaveType, days: float) -> None:
    from leave_portal.leave.models import LeaveQuota

    db.add(LeaveQuota(leave_type=leave_type, default_days=days))
    await db.commit()


async def create_leave_balance(
    db: AsyncSession,
    user_id: int,
    leave_type: LeaveType,
    *,
    year: int,
    entitlement: float,
    used: float = 0,
) -> int:
    from leave_portal.leave.models import LeaveBalance

    row = LeaveBalance(
        user_id=user_id,
        leave_type=leave_type,
        year=year,
        entitlement=entitlement,
        used=used,
        remaining=entitlement - used,
    )
    db.add(row)
    await db.commit()
    return row.id


async def create_leave_request(
    db: AsyncSession,
    user_id: int,
    start_date: date,
    end_date: Optional[date] = None,
    *,
    leave_type: LeaveType = LeaveType.VACATION,
    usage_amount: float = 1.0,
    status: LeaveStatus = LeaveStatus.PENDING,
    time_slot: TimeSlot = TimeSlot.FULL_DAY,
    reason: str = "Family trip",
    splits: Optional[dict[int, float]] = None,
) -> int:
    """Insert a request and its year splits (default: all in the start year)."""
    from leave_portal.leave.models import LeaveRequest, LeaveRequestYearSplit

    row = LeaveRequest(
        user_id=user_id,
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date or start_date,
        time_slot=time_slot,
        usage_amount=usage_amount,
        reason=reason,
        status=status,
    )
    db.add(row)
    await db.flush()
    for year, amount in (splits or {start_date.year: usage_amount}).items():
        db.add(LeaveRequestYearSplit(leave_request_id=row.id, year=year, usage_amount=amount))
    await db.commit()
    return row.id


# ── Auth helpers ────────────────────────────────────────────────────

def make_access_token(
    user_id: int,
    role: UserRole | str = UserRole.EMPLOYEE,
    employee_id: str = "E0001",
    expired: bool = False,
    token_type: str = "access",
) -> str:
    """Generate a session token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(minutes=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    payload = {
        "sub": str(user_id),
        "role": role.value if isinstance(role, UserRole) else role,
        "employee_id": employee_id,
        "type": token_type,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers_for(user: dict) -> dict[str, str]:
    token = make_access_token(user["id"], user["role"], user["employee_id"])
    return {"Authorization": f"Bearer {token}"}


def role_headers(role: UserRole, user_id: int = 999) -> dict[str, str]:
    """Headers for a principal that has no row in the store."""
    return {"Authorization": f"Bearer {make_access_token(user_id, role)}"}


@pytest.fixture
async def employee(db) -> dict:
    return await create_user(db, first_name="Somchai", last_name="Dee", password="secret123")


@pytest.fixture
async def manager(db) -> dict:
    return await create_user(
        db, first_name="Malee", last_name="Boss", role=UserRole.MANAGER, password="secret123",
    )


@pytest.fixture
async def hr_user(db) -> dict:
    return await create_user(db, first_name="Hana", last_name="People", role=UserRole.HR, department="HR")


@pytest.fixture
async def admin_user(db) -> dict:
    return await create_user(db, first_name="Adisak", last_name="Root", role=UserRole.ADMIN, department="IT")
