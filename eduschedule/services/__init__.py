from .base_service import BaseService
from .audit_service import TimetableAuditService
from .time_slot_service import TimeSlotService
from .conflict_checker import ConflictChecker
from .timetable_entry_service import TimetableEntryService
from .bulk_import_service import BulkImportService
from .availability_service import AvailabilityService

__all__ = [
    "BaseService",
    "TimetableAuditService",
    "TimeSlotService",
    "ConflictChecker",
    "TimetableEntryService",
    "BulkImportService",
    "AvailabilityService",
]
