# eduschedule/services/timetable_entry_service.py
from typing import List, Optional, Dict, Any
from uuid import UUID
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .base_service import BaseService
from .audit_service import TimetableAuditService
from .conflict_checker import ConflictChecker
from ..core.exceptions import NotFoundError, SchedulingConflict, ValidationError, VersionMismatch
from ..models.tenant_specific.academic import AcademicYear, ClassModel, Subject, Room
from ..models.tenant_specific.teacher import Teacher
from ..models.tenant_specific.timetable import DayOfWeek, TimeSlot, TimetableEntry
from ..schemas.timetable_schemas import SchedulingConflictDetail, TimetableEntryView

logger = logging.getLogger(__name__)

# Class and academic year are fixed for the life of an entry
UPDATABLE_FIELDS = ("time_slot_id", "room_id", "teacher_id", "subject_id")

REFERENCES = (
    ("class_id", ClassModel, "Class"),
    ("academic_year_id", AcademicYear, "Academic year"),
    ("room_id", Room, "Room"),
    ("subject_id", Subject, "Subject"),
    ("teacher_id", Teacher, "Teacher"),
)


class TimetableEntryService(BaseService[TimetableEntry]):
    resource_name = "Timetable entry"

    def __init__(self, db: AsyncSession):
        super().__init__(TimetableEntry, db)
        self.checker = ConflictChecker(db)
        self.audit = TimetableAuditService(db)

    # CONFLICT PRE-CHECK

    async def check_conflicts(
        self,
        tenant_id: UUID,
        entry_data: Dict[str, Any],
        exclude_entry_id: Optional[UUID] = None
    ) -> List[SchedulingConflictDetail]:
        return await self.checker.check(tenant_id, entry_data, exclude_entry_id)

    # MUTATIONS

    async def create(self, tenant_id: UUID, actor_id: UUID, entry_data: Dict[str, Any]) -> TimetableEntry:
        """Create an active entry, rejecting it when any room/teacher/class collision exists"""
        await self._ensure_references(tenant_id, entry_data)

        conflicts = await self.checker.check(tenant_id, entry_data)
        if conflicts:
            logger.info(f"Rejected entry for class {entry_data.get('class_id')}: {len(conflicts)} conflict(s)")
            raise SchedulingConflict(conflicts)

        entry = TimetableEntry(
            tenant_id=tenant_id,
            time_slot_id=entry_data["time_slot_id"],
            room_id=entry_data.get("room_id"),
            class_id=entry_data["class_id"],
            subject_id=entry_data.get("subject_id"),
            teacher_id=entry_data.get("teacher_id"),
            academic_year_id=entry_data["academic_year_id"],
            is_active=True,
            version=1,
            created_by=actor_id,
        )
        try:
            self.db.add(entry)
            await self.db.flush()
            self.audit.log_action(
                tenant_id=tenant_id,
                action_type="create",
                entity_type="timetable_entry",
                entity_id=entry.id,
                performed_by=actor_id,
                change_description="Created timetable entry",
                new_values=self._snapshot(entry),
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            await self._raise_lost_race(tenant_id, entry_data, None, e)
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        await self.db.refresh(entry)

        logger.info(f"Timetable entry {entry.id} created for tenant {tenant_id}")
        return entry

    async def update(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        entry_id: UUID,
        version: int,
        fields: Dict[str, Any]
    ) -> TimetableEntry:
        """Merge ``fields`` over the current row and swap it in if ``version`` is still current"""
        current = await self._get_active(tenant_id, entry_id)
        changes = {key: fields[key] for key in UPDATABLE_FIELDS if key in fields}
        if "time_slot_id" in changes and changes["time_slot_id"] is None:
            raise ValidationError("time_slot_id cannot be cleared", field="time_slot_id")

        await self._ensure_references(tenant_id, changes)

        merged = {
            "time_slot_id": changes.get("time_slot_id", current.time_slot_id),
            "room_id": changes.get("room_id", current.room_id),
            "teacher_id": changes.get("teacher_id", current.teacher_id),
            "subject_id": changes.get("subject_id", current.subject_id),
            "class_id": current.class_id,
            "academic_year_id": current.academic_year_id,
        }
        conflicts = await self.checker.check(tenant_id, merged, exclude_entry_id=entry_id)
        if conflicts:
            raise SchedulingConflict(conflicts)

        old_values = self._snapshot(current)
        stmt = (
            update(TimetableEntry)
            .where(
                TimetableEntry.id == entry_id,
                TimetableEntry.tenant_id == tenant_id,
                TimetableEntry.version == version,
                TimetableEntry.is_active == True,
                TimetableEntry.is_deleted == False
            )
            .values(**changes, version=TimetableEntry.version + 1, updated_by=actor_id)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            if result.rowcount == 0:
                await self.db.rollback()
                raise VersionMismatch(self.resource_name, entry_id)

            self.audit.log_action(
                tenant_id=tenant_id,
                action_type="update",
                entity_type="timetable_entry",
                entity_id=entry_id,
                performed_by=actor_id,
                change_description=f"Updated timetable entry to version {version + 1}",
                old_values=old_values,
                new_values=changes,
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            await self._raise_lost_race(tenant_id, merged, entry_id, e)
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        await self.db.refresh(current)
        return current

    async def delete(self, tenant_id: UUID, actor_id: UUID, entry_id: UUID) -> None:
        """Retire an entry. Rows are never physically removed.

        Retiring an entry that is already retired is a no-op.
        """
        stmt = select(TimetableEntry).where(
            TimetableEntry.id == entry_id,
            TimetableEntry.tenant_id == tenant_id
        )
        entry = (await self.db.execute(stmt)).scalar_one_or_none()
        if entry is None:
            raise NotFoundError(self.resource_name, entry_id)
        if not entry.is_active or entry.is_deleted:
            logger.info(f"Timetable entry {entry_id} already retired for tenant {tenant_id}")
            return

        old_values = self._snapshot(entry)
        try:
            entry.is_active = False
            entry.is_deleted = True
            entry.version = entry.version + 1
            entry.updated_by = actor_id
            self.audit.log_action(
                tenant_id=tenant_id,
                action_type="delete",
                entity_type="timetable_entry",
                entity_id=entry_id,
                performed_by=actor_id,
                change_description="Retired timetable entry",
                old_values=old_values,
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        logger.info(f"Timetable entry {entry_id} retired for tenant {tenant_id}")

    # SCHEDULE RETRIEVAL

    async def get_view(self, tenant_id: UUID, entry_id: UUID) -> TimetableEntryView:
        stmt = self._view_query(tenant_id).where(TimetableEntry.id == entry_id)
        row = (await self.db.execute(stmt)).first()
        if row is None:
            raise NotFoundError(self.resource_name, entry_id)
        return self._to_view(row)

    async def get_by_class(self, tenant_id: UUID, class_id: UUID, academic_year_id: UUID) -> Dict[str, List[TimetableEntryView]]:
        return await self._weekly_schedule(tenant_id, academic_year_id, TimetableEntry.class_id == class_id)

    async def get_by_teacher(self, tenant_id: UUID, teacher_id: UUID, academic_year_id: UUID) -> Dict[str, List[TimetableEntryView]]:
        return await self._weekly_schedule(tenant_id, academic_year_id, TimetableEntry.teacher_id == teacher_id)

    async def get_by_room(self, tenant_id: UUID, room_id: UUID, academic_year_id: UUID) -> Dict[str, List[TimetableEntryView]]:
        return await self._weekly_schedule(tenant_id, academic_year_id, TimetableEntry.room_id == room_id)

    async def _weekly_schedule(self, tenant_id: UUID, academic_year_id: UUID, criterion) -> Dict[str, List[TimetableEntryView]]:
        stmt = (
            self._view_query(tenant_id)
            .where(TimetableEntry.academic_year_id == academic_year_id, criterion)
            .order_by(TimeSlot.start_time)
        )
        result = await self.db.execute(stmt)

        # Organize by day, Monday first
        weekly_schedule = {day.key: [] for day in DayOfWeek}
        for row in result.all():
            weekly_schedule[row.day_of_week.key].append(self._to_view(row))
        return weekly_schedule

    def _view_query(self, tenant_id: UUID):
        return (
            select(
                TimetableEntry.id,
                TimetableEntry.version,
                TimetableEntry.academic_year_id,
                TimetableEntry.time_slot_id,
                TimeSlot.day_of_week,
                TimeSlot.start_time,
                TimeSlot.end_time,
                TimeSlot.label.label("slot_label"),
                TimetableEntry.class_id,
                ClassModel.class_name,
                ClassModel.section,
                TimetableEntry.subject_id,
                Subject.subject_name,
                Subject.subject_code,
                TimetableEntry.teacher_id,
                Teacher.first_name,
                Teacher.last_name,
                TimetableEntry.room_id,
                Room.room_name,
                Room.building,
            )
            .join(TimeSlot, TimeSlot.id == TimetableEntry.time_slot_id)
            .join(ClassModel, ClassModel.id == TimetableEntry.class_id)
            .outerjoin(Subject, Subject.id == TimetableEntry.subject_id)
            .outerjoin(Teacher, Teacher.id == TimetableEntry.teacher_id)
            .outerjoin(Room, Room.id == TimetableEntry.room_id)
            .where(
                TimetableEntry.tenant_id == tenant_id,
                TimetableEntry.is_active == True,
                TimetableEntry.is_deleted == False
            )
        )

    @staticmethod
    def _to_view(row) -> TimetableEntryView:
        teacher_name = " ".join(part for part in (row.first_name, row.last_name) if part)
        return TimetableEntryView(
            id=row.id,
            version=row.version,
            academic_year_id=row.academic_year_id,
            time_slot_id=row.time_slot_id,
            day_of_week=row.day_of_week.key,
            start_time=row.start_time,
            end_time=row.end_time,
            slot_label=row.slot_label,
            class_id=row.class_id,
            class_name=row.class_name,
            section=row.section,
            subject_id=row.subject_id,
            subject_name=row.subject_name,
            subject_code=row.subject_code,
            teacher_id=row.teacher_id,
            teacher_name=teacher_name or None,
            room_id=row.room_id,
            room_name=row.room_name,
            building=row.building,
        )

    # HELPERS

    async def _get_active(self, tenant_id: UUID, entry_id: UUID) -> TimetableEntry:
        stmt = select(TimetableEntry).where(
            TimetableEntry.id == entry_id,
            TimetableEntry.tenant_id == tenant_id,
            TimetableEntry.is_active == True,
            TimetableEntry.is_deleted == False
        )
        entry = (await self.db.execute(stmt)).scalar_one_or_none()
        if entry is None:
            raise NotFoundError(self.resource_name, entry_id)
        return entry

    async def _ensure_references(self, tenant_id: UUID, entry_data: Dict[str, Any]):
        for field, model, resource in REFERENCES:
            value = entry_data.get(field)
            if value is not None:
                await self.ensure_exists(model, tenant_id, value, resource)

    async def _raise_lost_race(
        self,
        tenant_id: UUID,
        candidate: Dict[str, Any],
        exclude_entry_id: Optional[UUID],
        error: IntegrityError
    ):
        """A concurrent writer got past the pre-check first; report what it now holds."""
        conflicts = await self.checker.check(tenant_id, candidate, exclude_entry_id)
        if conflicts:
            logger.warning(f"Unique index rejected entry for tenant {tenant_id}: {error.orig}")
            raise SchedulingConflict(conflicts) from error
        raise error

    @staticmethod
    def _snapshot(entry: TimetableEntry) -> Dict[str, Any]:
        return {
            "time_slot_id": entry.time_slot_id,
            "room_id": entry.room_id,
            "class_id": entry.class_id,
            "subject_id": entry.subject_id,
            "teacher_id": entry.teacher_id,
            "academic_year_id": entry.academic_year_id,
            "version": entry.version,
        }
