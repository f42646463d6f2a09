"""TimetableEntryService: creation, versioned updates, retirement and weekly views."""
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from eduschedule.core.exceptions import NotFoundError, SchedulingConflict, ValidationError, VersionMismatch
from eduschedule.models import TimetableAuditLog, TimetableEntry
from eduschedule.schemas.timetable_schemas import ConflictType
from eduschedule.services.timetable_entry_service import TimetableEntryService
from tests.conftest import entry_for

pytestmark = pytest.mark.anyio


async def test_create_entry(db, school):
    service = TimetableEntryService(db)
    entry = await service.create(
        school.tenant_id, school.actor_id,
        entry_for(school, school.slot_1, school.class_a, school.smith, school.room_1, school.maths)
    )

    assert entry.is_active is True
    assert entry.version == 1
    assert entry.created_by == school.actor_id

    audit_count = (await db.execute(
        select(func.count(TimetableAuditLog.id)).where(TimetableAuditLog.entity_id == entry.id)
    )).scalar()
    assert audit_count == 1


async def test_create_with_conflicts_writes_nothing(db, school):
    service = TimetableEntryService(db)
    first = await service.create(
        school.tenant_id, school.actor_id,
        entry_for(school, school.slot_1, school.class_a, school.smith, school.room_1)
    )

    with pytest.raises(SchedulingConflict) as exc:
        await service.create(
            school.tenant_id, school.actor_id,
            entry_for(school, school.slot_1, school.class_a, school.smith, school.room_1)
        )

    assert [c.type for c in exc.value.conflicts] == [ConflictType.ROOM, ConflictType.TEACHER, ConflictType.CLASS]
    assert all(c.conflicting_entry_id == first.id for c in exc.value.conflicts)
    total = (await db.execute(select(func.count(TimetableEntry.id)))).scalar()
    assert total == 1


async def test_create_rejects_foreign_references(db, school, other_school):
    payload = entry_for(school, school.slot_1, school.class_a)
    payload["teacher_id"] = other_school.smith
    with pytest.raises(NotFoundError):
        await TimetableEntryService(db).create(school.tenant_id, school.actor_id, payload)


async def test_create_with_unknown_slot(db, school):
    payload = entry_for(school, school.slot_1, school.class_a)
    payload["time_slot_id"] = uuid4()
    with pytest.raises(NotFoundError):
        await TimetableEntryService(db).create(school.tenant_id, school.actor_id, payload)


async def test_unique_index_catches_lost_race(db, school, monkeypatch):
    """When the pre-check misses a concurrent booking the index still refuses it."""
    service = TimetableEntryService(db)
    winner_id = (await service.create(
        school.tenant_id, school.actor_id,
        entry_for(school, school.slot_1, school.class_a, school.smith)
    )).id

    real_check = service.checker.check
    calls = []

    async def stale_check(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return []
        return await real_check(*args, **kwargs)

    monkeypatch.setattr(service.checker, "check", stale_check)

    with pytest.raises(SchedulingConflict) as exc:
        await service.create(
            school.tenant_id, school.actor_id,
            entry_for(school, school.slot_1, school.class_a, school.khan)
        )
    assert [c.type for c in exc.value.conflicts] == [ConflictType.CLASS]
    assert exc.value.conflicts[0].conflicting_entry_id == winner_id


def active_row(school, **overrides):
    values = dict(
        tenant_id=school.tenant_id,
        time_slot_id=school.slot_1,
        class_id=school.class_a,
        academic_year_id=school.year,
        version=1,
    )
    values.update(overrides)
    return TimetableEntry(**values)


async def test_partial_index_only_counts_active_rows(db, school):
    db.add(active_row(school, is_active=False, is_deleted=True))
    db.add(active_row(school, is_active=True))
    await db.commit()

    db.add(active_row(school, is_active=True))
    with pytest.raises(IntegrityError):
        await db.flush()
    await db.rollback()


async def test_partial_index_ignores_empty_room_and_teacher(db, school):
    # Neither row has a room or teacher, so only the class index applies
    db.add(active_row(school, class_id=school.class_a))
    db.add(active_row(school, class_id=school.class_b))
    await db.commit()

    count = await db.scalar(
        select(func.count()).select_from(TimetableEntry)
        .where(TimetableEntry.time_slot_id == school.slot_1)
    )
    assert count == 2


@pytest.mark.parametrize("field", ["room_id", "teacher_id"])
async def test_partial_index_blocks_shared_room_or_teacher(db, school, field):
    resource = school.room_1 if field == "room_id" else school.smith
    db.add(active_row(school, class_id=school.class_a, **{field: resource}))
    await db.commit()

    db.add(active_row(school, class_id=school.class_b, **{field: resource}))
    with pytest.raises(IntegrityError):
        await db.flush()
    await db.rollback()


async def test_update_entry(db, school):
    service = TimetableEntryService(db)
    entry = await service.create(
        school.tenant_id, school.actor_id,
        entry_for(school, school.slot_1, school.class_a, school.smith, school.room_1)
    )

    updated = await service.update(
        school.tenant_id, school.actor_id, entry.id, 1,
        {"teacher_id": school.khan, "room_id": None}
    )

    assert updated.version == 2
    assert updated.teacher_id == school.khan
    assert updated.room_id is None
    assert updated.updated_by == school.actor_id


async def test_update_does_not_collide_with_itself(db, school):
    service = TimetableEntryService(db)
    entry = await service.create(
        school.tenant_id, school.actor_id,
        entry_for(school, school.slot_1, school.class_a, school.smith, school.room_1)
    )
    updated = await service.update(school.tenant_id, school.actor_id, entry.id, 1, {"subject_id": school.science})
    assert updated.subject_id == school.science


async def test_update_into_conflict(db, school):
    service = TimetableEntryService(db)
    await service.create(
        school.tenant_id, school.actor_id,
        entry_for(school, school.slot_1, school.class_a, school.smith)
    )
    other = await service.create(
        school.tenant_id, school.actor_id,
        entry_for(school, school.slot_2, school.class_b, school.khan)
    )

    with pytest.raises(SchedulingConflict) as exc:
        await service.update(
            school.tenant_id, school.actor_id, other.id, 1,
            {"time_slot_id": school.slot_1, "teacher_id": school.smith}
        )
    assert [c.type for c in exc.value.conflicts] == [ConflictType.TEACHER]


async def test_concurrent_update_loses_on_version(db, school):
    service = TimetableEntryService(db)
    entry_id = (await service.create(
        school.tenant_id, school.actor_id,
        entry_for(school, school.slot_1, school.class_a, school.smith)
    )).id

    await service.update(school.tenant_id, school.actor_id, entry_id, 1, {"teacher_id": school.khan})
    with pytest.raises(VersionMismatch):
        await service.update(school.tenant_id, school.actor_id, entry_id, 1, {"teacher_id": school.brown})

    current = await service.get(school.tenant_id, entry_id)
    assert current.teacher_id == school.khan
    assert current.version == 2


async def test_update_cannot_clear_slot(db, school):
    service = TimetableEntryService(db)
    entry = await service.create(school.tenant_id, school.actor_id, entry_for(school, school.slot_1, school.class_a))
    with pytest.raises(ValidationError):
        await service.update(school.tenant_id, school.actor_id, entry.id, 1, {"time_slot_id": None})


async def test_update_unknown_entry(db, school):
    with pytest.raises(NotFoundError):
        await TimetableEntryService(db).update(school.tenant_id, school.actor_id, uuid4(), 1, {})


async def test_delete_retires_entry(db, school):
    service = TimetableEntryService(db)
    entry = await service.create(
        school.tenant_id, school.actor_id,
        entry_for(school, school.slot_1, school.class_a, school.smith)
    )

    await service.delete(school.tenant_id, school.actor_id, entry.id)

    row = (await db.execute(select(TimetableEntry).where(TimetableEntry.id == entry.id))).scalar_one()
    assert row.is_active is False
    assert row.is_deleted is True
    assert row.version == 2

    # The slot is free again
    again = await service.create(
        school.tenant_id, school.actor_id,
        entry_for(school, school.slot_1, school.class_a, school.smith)
    )
    assert again.id != entry.id


async def test_delete_twice_is_a_no_op(db, school):
    service = TimetableEntryService(db)
    entry_id = (await service.create(
        school.tenant_id, school.actor_id, entry_for(school, school.slot_1, school.class_a)
    )).id

    await service.delete(school.tenant_id, school.actor_id, entry_id)
    await service.delete(school.tenant_id, school.actor_id, entry_id)

    row = (await db.execute(select(TimetableEntry).where(TimetableEntry.id == entry_id))).scalar_one()
    assert row.version == 2
    audit_count = (await db.execute(
        select(func.count(TimetableAuditLog.id)).where(
            TimetableAuditLog.entity_id == entry_id, TimetableAuditLog.action_type == "delete"
        )
    )).scalar()
    assert audit_count == 1


async def test_delete_unknown_entry(db, school, other_school):
    service = TimetableEntryService(db)
    entry_id = (await service.create(
        school.tenant_id, school.actor_id, entry_for(school, school.slot_1, school.class_a)
    )).id

    with pytest.raises(NotFoundError):
        await service.delete(school.tenant_id, school.actor_id, uuid4())
    with pytest.raises(NotFoundError):
        await service.delete(other_school.tenant_id, other_school.actor_id, entry_id)


async def test_get_view(db, school):
    service = TimetableEntryService(db)
    entry = await service.create(
        school.tenant_id, school.actor_id,
        entry_for(school, school.slot_1, school.class_a, school.smith, school.room_1, school.maths)
    )

    view = await service.get_view(school.tenant_id, entry.id)

    assert view.day_of_week == "monday"
    assert view.slot_label == "Period 1"
    assert view.class_name == "Grade 5"
    assert view.section == "A"
    assert view.subject_code == "MATH"
    assert view.teacher_name == "Anita Smith"
    assert view.room_name == "Room 101"

    with pytest.raises(NotFoundError):
        await service.get_view(school.tenant_id, uuid4())


async def test_weekly_views(db, school):
    service = TimetableEntryService(db)
    create = lambda payload: service.create(school.tenant_id, school.actor_id, payload)
    await create(entry_for(school, school.slot_2, school.class_a, school.smith, school.room_1))
    await create(entry_for(school, school.slot_1, school.class_a, school.khan, school.room_2))
    await create(entry_for(school, school.slot_3, school.class_a, school.smith, school.room_2))
    await create(entry_for(school, school.slot_1, school.class_b, school.smith, school.room_1))

    by_class = await service.get_by_class(school.tenant_id, school.class_a, school.year)
    assert list(by_class) == ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
    assert [v.slot_label for v in by_class["monday"]] == ["Period 1", "Period 2"]
    assert len(by_class["tuesday"]) == 1
    assert by_class["sunday"] == []

    by_teacher = await service.get_by_teacher(school.tenant_id, school.smith, school.year)
    assert [v.section for v in by_teacher["monday"]] == ["B", "A"]
    assert len(by_teacher["tuesday"]) == 1

    by_room = await service.get_by_room(school.tenant_id, school.room_2, school.year)
    assert sum(len(day) for day in by_room.values()) == 2

    other_year = await service.get_by_class(school.tenant_id, school.class_a, uuid4())
    assert all(day == [] for day in other_year.values())


async def test_weekly_view_is_tenant_scoped(db, school, other_school):
    service = TimetableEntryService(db)
    await service.create(school.tenant_id, school.actor_id, entry_for(school, school.slot_1, school.class_a))

    schedule = await service.get_by_class(other_school.tenant_id, school.class_a, school.year)
    assert all(day == [] for day in schedule.values())
