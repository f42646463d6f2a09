from . import health, timetable

__all__ = [
    "health",
    "timetable",
]
