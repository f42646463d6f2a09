# eduschedule/services/time_slot_service.py
from typing import List, Optional, Dict, Any, Tuple
from uuid import UUID
from datetime import time
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, exists
from sqlalchemy.exc import SQLAlchemyError

from .base_service import BaseService
from .audit_service import TimetableAuditService
from ..core.cache import CacheManager, cache_manager
from ..core.exceptions import ValidationError, OverlapError, VersionMismatch, InUseError
from ..models.tenant_specific.timetable import DayOfWeek, TimeSlot, TimetableEntry
from ..schemas.timetable_schemas import TimeSlotResponse

logger = logging.getLogger(__name__)

BOUND_FIELDS = ("day_of_week", "start_time", "end_time")


def _parse_time(value: Any, field: str) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        try:
            return time.fromisoformat(value)
        except ValueError:
            pass
    raise ValidationError(f"{field} must be a time in HH:MM format", field=field)


def validate_slot_bounds(day: Any, start_time: Any, end_time: Any) -> Tuple[DayOfWeek, time, time]:
    """Parse and check a slot's day and bounds without touching the store."""
    try:
        parsed_day = DayOfWeek.parse(day)
    except ValueError as e:
        raise ValidationError(str(e), field="day")

    start = _parse_time(start_time, "start_time")
    end = _parse_time(end_time, "end_time")
    if start >= end:
        raise ValidationError("Start time must be before end time", field="start_time")
    return parsed_day, start, end


class TimeSlotService(BaseService[TimeSlot]):
    resource_name = "Time slot"

    def __init__(self, db: AsyncSession, cache: CacheManager = cache_manager):
        super().__init__(TimeSlot, db)
        self.cache = cache
        self.audit = TimetableAuditService(db)

    # QUERIES

    async def list(self, tenant_id: UUID) -> List[TimeSlotResponse]:
        """Active slots ordered by day ordinal, then start time"""
        cache_key = self._cache_key(tenant_id)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return [TimeSlotResponse.model_validate(item) for item in cached]

        stmt = select(TimeSlot).where(
            TimeSlot.tenant_id == tenant_id,
            TimeSlot.is_deleted == False
        ).order_by(TimeSlot.day_of_week, TimeSlot.start_time)
        result = await self.db.execute(stmt)
        slots = result.scalars().all()

        response = [TimeSlotResponse.model_validate(slot) for slot in slots]
        await self.cache.set(cache_key, [item.model_dump(mode="json") for item in response])
        return response

    async def is_in_use(self, tenant_id: UUID, slot_id: UUID) -> bool:
        stmt = select(exists().where(
            TimetableEntry.tenant_id == tenant_id,
            TimetableEntry.time_slot_id == slot_id,
            TimetableEntry.is_active == True,
            TimetableEntry.is_deleted == False
        ))
        return bool((await self.db.execute(stmt)).scalar())

    async def find_overlap(
        self,
        tenant_id: UUID,
        day: DayOfWeek,
        start_time: time,
        end_time: time,
        exclude_slot_id: Optional[UUID] = None
    ) -> Optional[TimeSlot]:
        """First active slot on ``day`` intersecting [start_time, end_time)"""
        stmt = select(TimeSlot).where(
            TimeSlot.tenant_id == tenant_id,
            TimeSlot.day_of_week == day,
            TimeSlot.is_deleted == False,
            TimeSlot.start_time < end_time,
            TimeSlot.end_time > start_time
        ).limit(1)
        if exclude_slot_id is not None:
            stmt = stmt.where(TimeSlot.id != exclude_slot_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    # MUTATIONS

    async def create(self, tenant_id: UUID, actor_id: UUID, slot_data: Dict[str, Any]) -> TimeSlot:
        """Create a recurring weekly slot that overlaps no other slot of the same day"""
        day, start, end = validate_slot_bounds(
            slot_data.get("day"), slot_data.get("start_time"), slot_data.get("end_time")
        )

        overlapping = await self.find_overlap(tenant_id, day, start, end)
        if overlapping:
            raise OverlapError(
                overlapping.id,
                f"Time slot overlaps with {overlapping.label or 'existing slot'} "
                f"({overlapping.start_time:%H:%M}-{overlapping.end_time:%H:%M}) on {day.key}"
            )

        slot = TimeSlot(
            tenant_id=tenant_id,
            day_of_week=day,
            start_time=start,
            end_time=end,
            label=slot_data.get("label"),
            version=1,
            created_by=actor_id,
        )
        try:
            self.db.add(slot)
            await self.db.flush()
            self.audit.log_action(
                tenant_id=tenant_id,
                action_type="create",
                entity_type="time_slot",
                entity_id=slot.id,
                performed_by=actor_id,
                change_description=f"Created time slot {day.key} {start:%H:%M}-{end:%H:%M}",
                new_values=self._snapshot(slot),
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        await self.db.refresh(slot)
        await self._invalidate(tenant_id)

        logger.info(f"Time slot {slot.id} created for tenant {tenant_id}")
        return slot

    async def update(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        slot_id: UUID,
        version: int,
        fields: Dict[str, Any]
    ) -> TimeSlot:
        """Compare-and-swap update; bounds are frozen while an active entry uses the slot"""
        slot = await self.get_or_404(tenant_id, slot_id)
        old_values = self._snapshot(slot)

        values: Dict[str, Any] = {"label": fields.get("label", slot.label)}
        requested = {
            "day_of_week": fields.get("day", slot.day_of_week),
            "start_time": fields.get("start_time", slot.start_time),
            "end_time": fields.get("end_time", slot.end_time),
        }
        day, start, end = validate_slot_bounds(
            requested["day_of_week"], requested["start_time"], requested["end_time"]
        )

        if (day, start, end) != (slot.day_of_week, slot.start_time, slot.end_time):
            if await self.is_in_use(tenant_id, slot_id):
                raise InUseError("Cannot modify time slot that is in active timetable", slot_id)
            overlapping = await self.find_overlap(tenant_id, day, start, end, exclude_slot_id=slot_id)
            if overlapping:
                raise OverlapError(overlapping.id)
            values.update(day_of_week=day, start_time=start, end_time=end)

        stmt = (
            update(TimeSlot)
            .where(
                TimeSlot.id == slot_id,
                TimeSlot.tenant_id == tenant_id,
                TimeSlot.version == version,
                TimeSlot.is_deleted == False
            )
            .values(**values, version=TimeSlot.version + 1, updated_by=actor_id)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            if result.rowcount == 0:
                await self.db.rollback()
                raise VersionMismatch(self.resource_name, slot_id)

            self.audit.log_action(
                tenant_id=tenant_id,
                action_type="update",
                entity_type="time_slot",
                entity_id=slot_id,
                performed_by=actor_id,
                change_description=f"Updated time slot to version {version + 1}",
                old_values=old_values,
                new_values=values,
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        await self.db.refresh(slot)
        await self._invalidate(tenant_id)
        return slot

    async def delete(self, tenant_id: UUID, actor_id: UUID, slot_id: UUID) -> None:
        slot = await self.get_or_404(tenant_id, slot_id)
        if await self.is_in_use(tenant_id, slot_id):
            raise InUseError("Cannot delete time slot that is used in timetable", slot_id)

        try:
            slot.is_deleted = True
            slot.version = slot.version + 1
            slot.updated_by = actor_id
            self.audit.log_action(
                tenant_id=tenant_id,
                action_type="delete",
                entity_type="time_slot",
                entity_id=slot_id,
                performed_by=actor_id,
                change_description=f"Deleted time slot {slot.day_of_week.key} {slot.start_time:%H:%M}",
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        await self._invalidate(tenant_id)
        logger.info(f"Time slot {slot_id} deleted for tenant {tenant_id}")

    # HELPERS

    def _cache_key(self, tenant_id: UUID) -> str:
        return self.cache.make_key("time_slots", tenant_id)

    async def _invalidate(self, tenant_id: UUID):
        await self.cache.delete_pattern(self._cache_key(tenant_id))

    @staticmethod
    def _snapshot(slot: TimeSlot) -> Dict[str, Any]:
        return {
            "day_of_week": slot.day_of_week.key if slot.day_of_week else None,
            "start_time": slot.start_time,
            "end_time": slot.end_time,
            "label": slot.label,
            "version": slot.version,
        }
