"""EduSchedule: multi-tenant school timetable backend."""

__version__ = "1.0.0"
