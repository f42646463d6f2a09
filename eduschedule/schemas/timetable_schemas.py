# eduschedule/schemas/timetable_schemas.py
from typing import Any, Dict, List, Optional, Union
from datetime import datetime, time
from uuid import UUID
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from ..models.tenant_specific.timetable import DayOfWeek


class Ack(BaseModel):
    success: bool = True
    message: str


# TIME SLOTS

class TimeSlotCreate(BaseModel):
    day: Union[int, str] = Field(..., description="Day name (monday..sunday) or ordinal 1..7")
    start_time: time
    end_time: time
    label: Optional[str] = Field(default=None, max_length=50)


class TimeSlotUpdate(BaseModel):
    version: int = Field(..., ge=1)
    day: Optional[Union[int, str]] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    label: Optional[str] = Field(default=None, max_length=50)


class TimeSlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    label: Optional[str] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("day_of_week", mode="before")
    @classmethod
    def _parse_day(cls, value):
        return DayOfWeek.parse(value)

    @field_serializer("day_of_week")
    def _serialize_day(self, day: DayOfWeek) -> str:
        return day.key


# TIMETABLE ENTRIES

class ConflictType(str, Enum):
    ROOM = "room"
    TEACHER = "teacher"
    CLASS = "class"


class SchedulingConflictDetail(BaseModel):
    type: ConflictType
    message: str
    conflicting_entry_id: UUID


class TimetableEntryBase(BaseModel):
    time_slot_id: UUID
    class_id: UUID
    room_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    teacher_id: Optional[UUID] = None


class TimetableEntryCreate(TimetableEntryBase):
    academic_year_id: UUID


class TimetableEntryUpdate(BaseModel):
    """Only supplied fields are changed; an explicit null clears an optional reference."""
    version: int = Field(..., ge=1)
    time_slot_id: Optional[UUID] = None
    room_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    teacher_id: Optional[UUID] = None


class ConflictCheckRequest(TimetableEntryCreate):
    exclude_entry_id: Optional[UUID] = None


class ConflictCheckResponse(BaseModel):
    has_conflicts: bool
    conflicts: List[SchedulingConflictDetail]


class TimetableEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    time_slot_id: UUID
    class_id: UUID
    room_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    teacher_id: Optional[UUID] = None
    academic_year_id: UUID
    is_active: bool
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TimetableEntryView(BaseModel):
    """Entry joined with the display data of its slot, class, subject, teacher and room."""
    id: UUID
    version: int
    academic_year_id: UUID
    time_slot_id: UUID
    day_of_week: str
    start_time: time
    end_time: time
    slot_label: Optional[str] = None
    class_id: UUID
    class_name: str
    section: Optional[str] = None
    subject_id: Optional[UUID] = None
    subject_name: Optional[str] = None
    subject_code: Optional[str] = None
    teacher_id: Optional[UUID] = None
    teacher_name: Optional[str] = None
    room_id: Optional[UUID] = None
    room_name: Optional[str] = None
    building: Optional[str] = None


class WeeklyTimetableResponse(BaseModel):
    academic_year_id: UUID
    weekly_schedule: Dict[str, List[TimetableEntryView]]
    total_entries: int


# BULK IMPORT

class BulkImportRequest(BaseModel):
    academic_year_id: UUID
    entries: List[TimetableEntryBase] = Field(..., min_length=1)


class BulkImportError(BaseModel):
    index: int
    input: Dict[str, Any]
    message: str
    conflicts: List[SchedulingConflictDetail] = []


class BulkImportResult(BaseModel):
    success: List[TimetableEntryResponse]
    errors: List[BulkImportError]
    total_processed: int
