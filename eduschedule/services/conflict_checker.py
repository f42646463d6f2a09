# eduschedule/services/conflict_checker.py
"""Read-only double-booking detection for proposed timetable entries.

The checker is a fast, descriptive pre-check. The partial unique indexes on
``timetable_entries`` are what actually keep two concurrent writers from
booking the same room, teacher or class into one slot.
"""
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, exists

from ..core.exceptions import NotFoundError, ValidationError
from ..models.tenant_specific.academic import ClassModel, Subject, Room
from ..models.tenant_specific.teacher import Teacher
from ..models.tenant_specific.timetable import TimeSlot, TimetableEntry
from ..schemas.timetable_schemas import ConflictType, SchedulingConflictDetail


def _describe_class(row) -> str:
    if row.section:
        return f"{row.class_name} {row.section}"
    return row.class_name


def _describe_teacher(row) -> str:
    name = " ".join(part for part in (row.first_name, row.last_name) if part)
    return name or "an unassigned teacher"


class ConflictChecker:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def check(
        self,
        tenant_id: UUID,
        candidate: Dict[str, Any],
        exclude_entry_id: Optional[UUID] = None
    ) -> List[SchedulingConflictDetail]:
        """Return every room, teacher and class collision for ``candidate``.

        ``candidate`` holds ``time_slot_id``, ``class_id``, ``academic_year_id``
        and optionally ``room_id`` and ``teacher_id``. ``exclude_entry_id``
        keeps an entry being updated from colliding with itself.
        """
        for field in ("time_slot_id", "class_id", "academic_year_id"):
            if not candidate.get(field):
                raise ValidationError(f"{field} is required", field=field)

        await self._ensure_slot(tenant_id, candidate["time_slot_id"])

        conflicts: List[SchedulingConflictDetail] = []

        # 1. Room conflict (only when a room is given)
        room_id = candidate.get("room_id")
        if room_id:
            row = await self._first_active(tenant_id, candidate, TimetableEntry.room_id == room_id, exclude_entry_id)
            if row:
                conflicts.append(SchedulingConflictDetail(
                    type=ConflictType.ROOM,
                    message=f"Room already occupied by {_describe_class(row)} "
                            f"({row.subject_name or 'no subject'}) at this time",
                    conflicting_entry_id=row.id,
                ))

        # 2. Teacher conflict (only when a teacher is given)
        teacher_id = candidate.get("teacher_id")
        if teacher_id:
            row = await self._first_active(tenant_id, candidate, TimetableEntry.teacher_id == teacher_id, exclude_entry_id)
            if row:
                conflicts.append(SchedulingConflictDetail(
                    type=ConflictType.TEACHER,
                    message=f"Teacher already assigned to {_describe_class(row)} "
                            f"({row.subject_name or 'no subject'}) in {row.room_name or 'no room'}",
                    conflicting_entry_id=row.id,
                ))

        # 3. Class conflict (always)
        row = await self._first_active(tenant_id, candidate, TimetableEntry.class_id == candidate["class_id"], exclude_entry_id)
        if row:
            conflicts.append(SchedulingConflictDetail(
                type=ConflictType.CLASS,
                message=f"Class already has {row.subject_name or 'a lesson'} with {_describe_teacher(row)}",
                conflicting_entry_id=row.id,
            ))

        return conflicts

    async def _ensure_slot(self, tenant_id: UUID, time_slot_id: UUID):
        stmt = select(exists().where(
            TimeSlot.id == time_slot_id,
            TimeSlot.tenant_id == tenant_id,
            TimeSlot.is_deleted == False
        ))
        if not (await self.db.execute(stmt)).scalar():
            raise NotFoundError("Time slot", time_slot_id)

    async def _first_active(self, tenant_id: UUID, candidate: Dict[str, Any], criterion, exclude_entry_id: Optional[UUID]):
        stmt = (
            select(
                TimetableEntry.id,
                ClassModel.class_name,
                ClassModel.section,
                Subject.subject_name,
                Room.room_name,
                Teacher.first_name,
                Teacher.last_name,
            )
            .join(ClassModel, ClassModel.id == TimetableEntry.class_id)
            .outerjoin(Subject, Subject.id == TimetableEntry.subject_id)
            .outerjoin(Room, Room.id == TimetableEntry.room_id)
            .outerjoin(Teacher, Teacher.id == TimetableEntry.teacher_id)
            .where(
                TimetableEntry.tenant_id == tenant_id,
                TimetableEntry.time_slot_id == candidate["time_slot_id"],
                TimetableEntry.academic_year_id == candidate["academic_year_id"],
                TimetableEntry.is_active == True,
                TimetableEntry.is_deleted == False,
                criterion
            )
            .order_by(TimetableEntry.created_at)
            .limit(1)
        )
        if exclude_entry_id is not None:
            stmt = stmt.where(TimetableEntry.id != exclude_entry_id)
        result = await self.db.execute(stmt)
        return result.first()
