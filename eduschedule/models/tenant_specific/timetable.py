# eduschedule/models/tenant_specific/timetable.py
from sqlalchemy import (
    Column, String, Boolean, ForeignKey, Time, Text, SmallInteger, JSON,
    Index, UniqueConstraint, CheckConstraint, TypeDecorator, text
)
from sqlalchemy.dialects.postgresql import UUID
from ..base import Base, TenantScoped, Versioned
import enum


class DayOfWeek(enum.IntEnum):
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7

    @property
    def key(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value) -> "DayOfWeek":
        """Accept a member, its ordinal or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            candidate = value.strip()
            if candidate.upper() in cls.__members__:
                return cls[candidate.upper()]
            if candidate.isdigit():
                value = int(candidate)
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                pass
        allowed = ", ".join(day.key for day in cls)
        raise ValueError(f"Invalid day '{value}'. Allowed: {allowed}")


class DayOfWeekType(TypeDecorator):
    """Stores a DayOfWeek as its ordinal so the database can order by day."""
    impl = SmallInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(DayOfWeek.parse(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return DayOfWeek(value)


# Storage-side guarantee against double booking. Only live rows count,
# retired entries keep their history without blocking the slot.
ACTIVE_ENTRY_PREDICATE = text("is_active AND NOT is_deleted")


def _active_unique_index(name: str, column: str) -> Index:
    return Index(
        name,
        "tenant_id", "academic_year_id", "time_slot_id", column,
        unique=True,
        postgresql_where=ACTIVE_ENTRY_PREDICATE,
        sqlite_where=ACTIVE_ENTRY_PREDICATE,
    )


class TimeSlot(TenantScoped, Versioned, Base):
    __tablename__ = "time_slots"

    # Recurring weekly interval, half-open [start_time, end_time)
    day_of_week = Column(DayOfWeekType, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    label = Column(String(50))

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_time_slot_bounds"),
        CheckConstraint("day_of_week BETWEEN 1 AND 7", name="ck_time_slot_day"),
        Index("ix_time_slots_tenant_day", "tenant_id", "day_of_week"),
    )


class TimetableEntry(TenantScoped, Versioned, Base):
    __tablename__ = "timetable_entries"

    # Foreign Keys
    time_slot_id = Column(UUID(as_uuid=True), ForeignKey("time_slots.id"), nullable=False, index=True)
    room_id = Column(UUID(as_uuid=True), ForeignKey("rooms.id"), nullable=True, index=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id"), nullable=True)
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("teachers.id"), nullable=True, index=True)
    academic_year_id = Column(UUID(as_uuid=True), ForeignKey("academic_years.id"), nullable=False, index=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        _active_unique_index("uq_timetable_entry_room", "room_id"),
        _active_unique_index("uq_timetable_entry_teacher", "teacher_id"),
        _active_unique_index("uq_timetable_entry_class", "class_id"),
    )


class TeacherAvailability(TenantScoped, Base):
    __tablename__ = "teacher_availability"

    teacher_id = Column(UUID(as_uuid=True), ForeignKey("teachers.id"), nullable=False, index=True)
    time_slot_id = Column(UUID(as_uuid=True), ForeignKey("time_slots.id"), nullable=False, index=True)
    is_available = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "teacher_id", "time_slot_id", name="uq_teacher_availability_slot"),
    )


class TimetableAuditLog(TenantScoped, Base):
    __tablename__ = "timetable_audit_logs"

    action_type = Column(String(50), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    performed_by = Column(UUID(as_uuid=True), nullable=False)
    change_description = Column(Text)
    old_values = Column(JSON)
    new_values = Column(JSON)
