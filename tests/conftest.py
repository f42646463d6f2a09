"""Shared fixtures: an in-memory SQLite schema per test and a seeded school.

Seeded records are exposed as plain ids; a service rollback expires every
ORM instance in the session, and ids stay usable after that.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["CACHE_ENABLED"] = "false"

from datetime import date, time
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from eduschedule.models import (
    Base, Tenant, AcademicYear, ClassModel, Subject, Room, Teacher, DayOfWeek, TimeSlot
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def seed_school(db: AsyncSession, code: str) -> SimpleNamespace:
    """One tenant with a current year, two classes, two rooms, two subjects and three teachers."""
    tenant = Tenant(school_code=code, school_name=f"School {code}")
    db.add(tenant)
    await db.flush()

    records = dict(
        year=AcademicYear(
            tenant_id=tenant.id, name="2024-25",
            start_date=date(2024, 4, 1), end_date=date(2025, 3, 31), is_current=True
        ),
        class_a=ClassModel(tenant_id=tenant.id, class_name="Grade 5", section="A", grade_level=5),
        class_b=ClassModel(tenant_id=tenant.id, class_name="Grade 5", section="B", grade_level=5),
        room_1=Room(tenant_id=tenant.id, room_name="Room 101", building="Main", capacity=40),
        room_2=Room(tenant_id=tenant.id, room_name="Lab 1", building="Science", capacity=30),
        maths=Subject(tenant_id=tenant.id, subject_name="Mathematics", subject_code="MATH"),
        science=Subject(tenant_id=tenant.id, subject_name="Science", subject_code="SCI"),
        smith=Teacher(tenant_id=tenant.id, first_name="Anita", last_name="Smith", email="smith@example.com"),
        khan=Teacher(tenant_id=tenant.id, first_name="Ravi", last_name="Khan", email="khan@example.com"),
        brown=Teacher(tenant_id=tenant.id, first_name="Lena", last_name="Brown", email="brown@example.com"),
    )
    db.add_all(records.values())
    await db.flush()

    school = SimpleNamespace(tenant_id=tenant.id, actor_id=uuid4())
    for name, record in records.items():
        setattr(school, name, record.id)
    await db.commit()
    return school


async def add_slot(db: AsyncSession, tenant_id, day: DayOfWeek, start: time, end: time, label: str = None):
    """Insert a slot directly, bypassing the overlap rules. Returns its id."""
    slot = TimeSlot(tenant_id=tenant_id, day_of_week=day, start_time=start, end_time=end, label=label, version=1)
    db.add(slot)
    await db.flush()
    slot_id = slot.id
    await db.commit()
    return slot_id


@pytest.fixture
async def school(db):
    school = await seed_school(db, "GRN001")
    school.slot_1 = await add_slot(db, school.tenant_id, DayOfWeek.MONDAY, time(8, 0), time(9, 0), "Period 1")
    school.slot_2 = await add_slot(db, school.tenant_id, DayOfWeek.MONDAY, time(9, 0), time(10, 0), "Period 2")
    school.slot_3 = await add_slot(db, school.tenant_id, DayOfWeek.TUESDAY, time(8, 0), time(9, 0), "Period 1")
    return school


@pytest.fixture
async def other_school(db):
    school = await seed_school(db, "BLU002")
    school.slot_1 = await add_slot(db, school.tenant_id, DayOfWeek.MONDAY, time(8, 0), time(9, 0), "Period 1")
    return school


def entry_for(school, slot_id, class_id, teacher_id=None, room_id=None, subject_id=None) -> dict:
    return {
        "time_slot_id": slot_id,
        "class_id": class_id,
        "teacher_id": teacher_id,
        "room_id": room_id,
        "subject_id": subject_id,
        "academic_year_id": school.year,
    }
