# eduschedule/schemas/availability_schemas.py
from typing import List, Optional
from datetime import time
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


class AvailabilitySlot(BaseModel):
    time_slot_id: UUID
    is_available: bool = True


class AvailabilitySet(BaseModel):
    slots: List[AvailabilitySlot] = Field(default_factory=list)


class AvailabilityRecord(BaseModel):
    time_slot_id: UUID
    is_available: bool
    day_of_week: str
    start_time: time
    end_time: time
    label: Optional[str] = None


class TeacherAvailabilityResponse(BaseModel):
    teacher_id: UUID
    availability: List[AvailabilityRecord]


class AvailableTeacher(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
