# eduschedule/services/availability_service.py
from typing import Any, Dict, List
from uuid import UUID
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, or_, and_
from sqlalchemy.exc import SQLAlchemyError

from .base_service import BaseService
from .audit_service import TimetableAuditService
from ..core.exceptions import NotFoundError, ValidationError
from ..models.tenant_specific.teacher import Teacher
from ..models.tenant_specific.timetable import TeacherAvailability, TimeSlot, TimetableEntry
from ..schemas.availability_schemas import AvailabilityRecord

logger = logging.getLogger(__name__)


class AvailabilityService(BaseService[TeacherAvailability]):
    """Per-teacher allow/deny preferences per time slot.

    A teacher without a record for a slot counts as available.
    """
    resource_name = "Teacher availability"

    def __init__(self, db: AsyncSession):
        super().__init__(TeacherAvailability, db)
        self.audit = TimetableAuditService(db)

    async def set(self, tenant_id: UUID, actor_id: UUID, teacher_id: UUID, slots: List[Dict[str, Any]]) -> None:
        """Replace the teacher's whole availability set in one transaction"""
        await self.ensure_exists(Teacher, tenant_id, teacher_id, "Teacher")

        slot_ids = [slot["time_slot_id"] for slot in slots]
        if len(set(slot_ids)) != len(slot_ids):
            raise ValidationError("Each time slot may appear only once", field="slots")

        if slot_ids:
            stmt = select(TimeSlot.id).where(
                TimeSlot.id.in_(slot_ids),
                TimeSlot.tenant_id == tenant_id,
                TimeSlot.is_deleted == False
            )
            known = set((await self.db.execute(stmt)).scalars().all())
            missing = [slot_id for slot_id in slot_ids if slot_id not in known]
            if missing:
                raise NotFoundError("Time slot", missing[0])

        try:
            await self.db.execute(
                delete(TeacherAvailability).where(
                    TeacherAvailability.tenant_id == tenant_id,
                    TeacherAvailability.teacher_id == teacher_id
                )
            )
            self.db.add_all([
                TeacherAvailability(
                    tenant_id=tenant_id,
                    teacher_id=teacher_id,
                    time_slot_id=slot["time_slot_id"],
                    is_available=slot.get("is_available", True),
                )
                for slot in slots
            ])
            self.audit.log_action(
                tenant_id=tenant_id,
                action_type="update",
                entity_type="teacher_availability",
                entity_id=teacher_id,
                performed_by=actor_id,
                change_description=f"Replaced availability with {len(slots)} slot(s)",
                new_values={"slots": slots},
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        logger.info(f"Availability of teacher {teacher_id} replaced ({len(slots)} slots)")

    async def get_for_teacher(self, tenant_id: UUID, teacher_id: UUID) -> List[AvailabilityRecord]:
        await self.ensure_exists(Teacher, tenant_id, teacher_id, "Teacher")

        stmt = (
            select(
                TeacherAvailability.time_slot_id,
                TeacherAvailability.is_available,
                TimeSlot.day_of_week,
                TimeSlot.start_time,
                TimeSlot.end_time,
                TimeSlot.label,
            )
            .join(TimeSlot, TimeSlot.id == TeacherAvailability.time_slot_id)
            .where(
                TeacherAvailability.tenant_id == tenant_id,
                TeacherAvailability.teacher_id == teacher_id,
                TimeSlot.is_deleted == False
            )
            .order_by(TimeSlot.day_of_week, TimeSlot.start_time)
        )
        rows = (await self.db.execute(stmt)).all()
        return [
            AvailabilityRecord(
                time_slot_id=row.time_slot_id,
                is_available=row.is_available,
                day_of_week=row.day_of_week.key,
                start_time=row.start_time,
                end_time=row.end_time,
                label=row.label,
            )
            for row in rows
        ]

    async def get_available_teachers(self, tenant_id: UUID, time_slot_id: UUID, academic_year_id: UUID) -> List[Teacher]:
        """Active teachers free at the slot: not opted out and not already booked"""
        await self.ensure_exists(TimeSlot, tenant_id, time_slot_id, "Time slot")

        booked = select(TimetableEntry.teacher_id).where(
            TimetableEntry.tenant_id == tenant_id,
            TimetableEntry.time_slot_id == time_slot_id,
            TimetableEntry.academic_year_id == academic_year_id,
            TimetableEntry.is_active == True,
            TimetableEntry.is_deleted == False,
            TimetableEntry.teacher_id.is_not(None)
        )
        stmt = (
            select(Teacher)
            .outerjoin(
                TeacherAvailability,
                and_(
                    TeacherAvailability.teacher_id == Teacher.id,
                    TeacherAvailability.time_slot_id == time_slot_id,
                    TeacherAvailability.tenant_id == tenant_id
                )
            )
            .where(
                Teacher.tenant_id == tenant_id,
                Teacher.is_deleted == False,
                Teacher.status == "active",
                or_(TeacherAvailability.is_available == True, TeacherAvailability.id.is_(None)),
                Teacher.id.not_in(booked)
            )
            .order_by(Teacher.last_name, Teacher.first_name)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()
