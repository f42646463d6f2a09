"""AvailabilityService: replacing a teacher's set and finding free teachers."""
from uuid import uuid4

import pytest

from eduschedule.core.exceptions import NotFoundError, ValidationError
from eduschedule.services.availability_service import AvailabilityService
from eduschedule.services.timetable_entry_service import TimetableEntryService
from tests.conftest import entry_for

pytestmark = pytest.mark.anyio


async def test_set_and_get(db, school):
    service = AvailabilityService(db)
    await service.set(school.tenant_id, school.actor_id, school.smith, [
        {"time_slot_id": school.slot_3, "is_available": False},
        {"time_slot_id": school.slot_1, "is_available": True},
    ])

    records = await service.get_for_teacher(school.tenant_id, school.smith)

    assert [(r.time_slot_id, r.is_available) for r in records] == [
        (school.slot_1, True),
        (school.slot_3, False),
    ]
    assert records[1].day_of_week == "tuesday"


async def test_set_replaces_previous(db, school):
    service = AvailabilityService(db)
    await service.set(school.tenant_id, school.actor_id, school.smith, [
        {"time_slot_id": school.slot_1, "is_available": False},
        {"time_slot_id": school.slot_2, "is_available": False},
    ])
    await service.set(school.tenant_id, school.actor_id, school.smith, [
        {"time_slot_id": school.slot_2, "is_available": True},
    ])

    records = await service.get_for_teacher(school.tenant_id, school.smith)
    assert [(r.time_slot_id, r.is_available) for r in records] == [(school.slot_2, True)]

    await service.set(school.tenant_id, school.actor_id, school.smith, [])
    assert await service.get_for_teacher(school.tenant_id, school.smith) == []


async def test_set_rejects_duplicates(db, school):
    with pytest.raises(ValidationError):
        await AvailabilityService(db).set(school.tenant_id, school.actor_id, school.smith, [
            {"time_slot_id": school.slot_1, "is_available": True},
            {"time_slot_id": school.slot_1, "is_available": False},
        ])


async def test_set_rejects_unknown_slot_and_teacher(db, school, other_school):
    service = AvailabilityService(db)
    with pytest.raises(NotFoundError):
        await service.set(school.tenant_id, school.actor_id, school.smith, [
            {"time_slot_id": other_school.slot_1, "is_available": True},
        ])
    with pytest.raises(NotFoundError):
        await service.set(school.tenant_id, school.actor_id, uuid4(), [])


async def test_available_teachers(db, school):
    await TimetableEntryService(db).create(
        school.tenant_id, school.actor_id, entry_for(school, school.slot_1, school.class_a, school.smith)
    )
    await AvailabilityService(db).set(school.tenant_id, school.actor_id, school.brown, [
        {"time_slot_id": school.slot_1, "is_available": False},
    ])

    service = AvailabilityService(db)
    busy_slot = await service.get_available_teachers(school.tenant_id, school.slot_1, school.year)
    assert [t.id for t in busy_slot] == [school.khan]

    # No records means available; booked elsewhere does not matter
    free_slot = await service.get_available_teachers(school.tenant_id, school.slot_2, school.year)
    assert [t.last_name for t in free_slot] == ["Brown", "Khan", "Smith"]


async def test_available_teachers_unknown_slot(db, school):
    with pytest.raises(NotFoundError):
        await AvailabilityService(db).get_available_teachers(school.tenant_id, uuid4(), school.year)
