# eduschedule/routers/timetable.py
from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.tenant_context import Actor, PRINCIPAL, SCHEDULER_ROLES, get_actor, get_tenant_db, require_roles
from ..services.time_slot_service import TimeSlotService
from ..services.timetable_entry_service import TimetableEntryService
from ..services.bulk_import_service import BulkImportService
from ..services.availability_service import AvailabilityService
from ..schemas.timetable_schemas import (
    Ack, TimeSlotCreate, TimeSlotUpdate, TimeSlotResponse,
    TimetableEntryCreate, TimetableEntryUpdate, TimetableEntryResponse, TimetableEntryView,
    ConflictCheckRequest, ConflictCheckResponse, WeeklyTimetableResponse,
    BulkImportRequest, BulkImportResult
)
from ..schemas.availability_schemas import AvailabilitySet, AvailableTeacher, TeacherAvailabilityResponse


router = APIRouter(
    prefix="/api/v1/timetable",
    tags=["Timetable"]
)

# TIME SLOT ENDPOINTS

@router.post("/slots", response_model=TimeSlotResponse, status_code=status.HTTP_201_CREATED)
async def create_time_slot(
    slot_data: TimeSlotCreate,
    actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: AsyncSession = Depends(get_tenant_db)
):
    """Create a recurring weekly time slot"""
    service = TimeSlotService(db)
    slot = await service.create(actor.tenant_id, actor.user_id, slot_data.model_dump())
    return TimeSlotResponse.model_validate(slot)

@router.get("/slots", response_model=List[TimeSlotResponse])
async def list_time_slots(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_tenant_db)
):
    """All active time slots, Monday first"""
    return await TimeSlotService(db).list(actor.tenant_id)

@router.get("/slots/{slot_id}", response_model=TimeSlotResponse)
async def get_time_slot(
    slot_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_tenant_db)
):
    slot = await TimeSlotService(db).get_or_404(actor.tenant_id, slot_id)
    return TimeSlotResponse.model_validate(slot)

@router.patch("/slots/{slot_id}", response_model=TimeSlotResponse)
async def update_time_slot(
    slot_id: UUID,
    slot_data: TimeSlotUpdate,
    actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: AsyncSession = Depends(get_tenant_db)
):
    """Update a time slot; requires the version the client last read"""
    fields = slot_data.model_dump(exclude_unset=True, exclude={"version"})
    slot = await TimeSlotService(db).update(
        actor.tenant_id, actor.user_id, slot_id, slot_data.version, fields
    )
    return TimeSlotResponse.model_validate(slot)

@router.delete("/slots/{slot_id}", response_model=Ack)
async def delete_time_slot(
    slot_id: UUID,
    actor: Actor = Depends(require_roles(PRINCIPAL)),
    db: AsyncSession = Depends(get_tenant_db)
):
    await TimeSlotService(db).delete(actor.tenant_id, actor.user_id, slot_id)
    return Ack(message="Time slot deleted")

# TIMETABLE ENTRY ENDPOINTS

@router.post("/entries", response_model=TimetableEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    entry_data: TimetableEntryCreate,
    actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: AsyncSession = Depends(get_tenant_db)
):
    """Create a timetable entry; 409 with every conflict when double-booked"""
    entry = await TimetableEntryService(db).create(actor.tenant_id, actor.user_id, entry_data.model_dump())
    return TimetableEntryResponse.model_validate(entry)

@router.post("/entries/check-conflicts", response_model=ConflictCheckResponse)
async def check_entry_conflicts(
    entry_data: ConflictCheckRequest,
    actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: AsyncSession = Depends(get_tenant_db)
):
    """Dry-run conflict check, nothing is written"""
    candidate = entry_data.model_dump(exclude={"exclude_entry_id"})
    conflicts = await TimetableEntryService(db).check_conflicts(
        actor.tenant_id, candidate, entry_data.exclude_entry_id
    )
    return ConflictCheckResponse(has_conflicts=bool(conflicts), conflicts=conflicts)

@router.post("/entries/bulk", response_model=BulkImportResult)
async def bulk_import_entries(
    import_data: BulkImportRequest,
    actor: Actor = Depends(require_roles(PRINCIPAL)),
    db: AsyncSession = Depends(get_tenant_db)
):
    """Import entries one by one; failed rows are reported next to created ones"""
    result = await BulkImportService(db).import_entries(
        actor.tenant_id,
        actor.user_id,
        [entry.model_dump() for entry in import_data.entries],
        import_data.academic_year_id
    )
    return BulkImportResult(
        success=[TimetableEntryResponse.model_validate(entry) for entry in result["success"]],
        errors=result["errors"],
        total_processed=result["total_processed"],
    )

@router.get("/entries/{entry_id}", response_model=TimetableEntryView)
async def get_entry(
    entry_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_tenant_db)
):
    return await TimetableEntryService(db).get_view(actor.tenant_id, entry_id)

@router.patch("/entries/{entry_id}", response_model=TimetableEntryResponse)
async def update_entry(
    entry_id: UUID,
    entry_data: TimetableEntryUpdate,
    actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: AsyncSession = Depends(get_tenant_db)
):
    fields = entry_data.model_dump(exclude_unset=True, exclude={"version"})
    entry = await TimetableEntryService(db).update(
        actor.tenant_id, actor.user_id, entry_id, entry_data.version, fields
    )
    return TimetableEntryResponse.model_validate(entry)

@router.delete("/entries/{entry_id}", response_model=Ack)
async def delete_entry(
    entry_id: UUID,
    actor: Actor = Depends(require_roles(PRINCIPAL)),
    db: AsyncSession = Depends(get_tenant_db)
):
    await TimetableEntryService(db).delete(actor.tenant_id, actor.user_id, entry_id)
    return Ack(message="Timetable entry deactivated")

# WEEKLY VIEWS

def _weekly_response(academic_year_id: UUID, weekly_schedule) -> WeeklyTimetableResponse:
    return WeeklyTimetableResponse(
        academic_year_id=academic_year_id,
        weekly_schedule=weekly_schedule,
        total_entries=sum(len(day_schedule) for day_schedule in weekly_schedule.values()),
    )

@router.get("/class/{class_id}", response_model=WeeklyTimetableResponse)
async def get_class_timetable(
    class_id: UUID,
    academic_year_id: UUID = Query(...),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_tenant_db)
):
    schedule = await TimetableEntryService(db).get_by_class(actor.tenant_id, class_id, academic_year_id)
    return _weekly_response(academic_year_id, schedule)

@router.get("/teacher/{teacher_id}", response_model=WeeklyTimetableResponse)
async def get_teacher_timetable(
    teacher_id: UUID,
    academic_year_id: UUID = Query(...),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_tenant_db)
):
    schedule = await TimetableEntryService(db).get_by_teacher(actor.tenant_id, teacher_id, academic_year_id)
    return _weekly_response(academic_year_id, schedule)

@router.get("/room/{room_id}", response_model=WeeklyTimetableResponse)
async def get_room_timetable(
    room_id: UUID,
    academic_year_id: UUID = Query(...),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_tenant_db)
):
    schedule = await TimetableEntryService(db).get_by_room(actor.tenant_id, room_id, academic_year_id)
    return _weekly_response(academic_year_id, schedule)

# TEACHER AVAILABILITY

@router.get("/availability/{teacher_id}", response_model=TeacherAvailabilityResponse)
async def get_teacher_availability(
    teacher_id: UUID,
    actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: AsyncSession = Depends(get_tenant_db)
):
    availability = await AvailabilityService(db).get_for_teacher(actor.tenant_id, teacher_id)
    return TeacherAvailabilityResponse(teacher_id=teacher_id, availability=availability)

@router.put("/availability/{teacher_id}", response_model=Ack)
async def set_teacher_availability(
    teacher_id: UUID,
    availability_data: AvailabilitySet,
    actor: Actor = Depends(require_roles(PRINCIPAL)),
    db: AsyncSession = Depends(get_tenant_db)
):
    """Replace the teacher's availability with the submitted set"""
    await AvailabilityService(db).set(
        actor.tenant_id,
        actor.user_id,
        teacher_id,
        [slot.model_dump() for slot in availability_data.slots]
    )
    return Ack(message="Availability updated")

@router.get("/available-teachers/{slot_id}", response_model=List[AvailableTeacher])
async def get_available_teachers(
    slot_id: UUID,
    academic_year_id: UUID = Query(...),
    actor: Actor = Depends(require_roles(*SCHEDULER_ROLES)),
    db: AsyncSession = Depends(get_tenant_db)
):
    teachers = await AvailabilityService(db).get_available_teachers(actor.tenant_id, slot_id, academic_year_id)
    return [AvailableTeacher.model_validate(teacher) for teacher in teachers]
