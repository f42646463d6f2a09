# eduschedule/models/__init__.py
"""Import all models here, needed for Alembic migration."""
from .base import Base

# Shared models
from .shared.tenant import Tenant

# Tenant-specific models
from .tenant_specific.academic import AcademicYear, ClassModel, Subject, Room
from .tenant_specific.teacher import Teacher
from .tenant_specific.timetable import (
    DayOfWeek, TimeSlot, TimetableEntry, TeacherAvailability, TimetableAuditLog
)

__all__ = [
    "Base",
    "Tenant",
    "AcademicYear",
    "ClassModel",
    "Subject",
    "Room",
    "Teacher",
    "DayOfWeek",
    "TimeSlot",
    "TimetableEntry",
    "TeacherAvailability",
    "TimetableAuditLog",
]
