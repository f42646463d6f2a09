# eduschedule/core/exceptions.py
"""Scheduling error taxonomy.

Every error carries a machine-readable kind (the class name), a message and,
where one exists, the id of the offending record, so callers can pick the
right remedy: reload-and-retry for ``VersionMismatch``, fix-and-resubmit for
``ValidationError``/``OverlapError``, show the conflicts for
``SchedulingConflict``.
"""
from typing import Any, Dict, List, Optional


class SchedulingError(Exception):
    """Base exception for the timetable scheduler"""
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, entity_id: Any = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.entity_id = entity_id
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.entity_id is not None:
            payload["entity_id"] = str(self.entity_id)
        return payload


class ValidationError(SchedulingError):
    """Malformed day or time bounds, rejected before any store access"""
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.field:
            payload["field"] = self.field
        return payload


class NotFoundError(SchedulingError):
    """Resource not found exception"""
    status_code = 404

    def __init__(self, resource: str, id: Any = None):
        message = f"{resource} not found"
        if id is not None:
            message += f" with id: {id}"
        self.resource = resource
        super().__init__(message, entity_id=id)


class OverlapError(SchedulingError):
    """A time slot intersects another active slot on the same day"""
    status_code = 409

    def __init__(self, overlapping_slot_id: Any, message: str = "Time slot overlaps with existing slot"):
        super().__init__(message, entity_id=overlapping_slot_id)


class SchedulingConflict(SchedulingError):
    """One or more room/teacher/class collisions; always the complete list"""
    status_code = 409

    def __init__(self, conflicts: List[Any], message: str = "Scheduling conflict detected"):
        self.conflicts = list(conflicts)
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["conflicts"] = [conflict.model_dump(mode="json") for conflict in self.conflicts]
        return payload


class VersionMismatch(SchedulingError):
    """Stale write: the record is missing or another writer advanced its version"""
    status_code = 409

    def __init__(self, resource: str, id: Any):
        super().__init__(f"{resource} not found or version mismatch, reload and retry", entity_id=id)


class InUseError(SchedulingError):
    """Mutation blocked by an active timetable entry"""
    status_code = 409

    def __init__(self, message: str, id: Any = None):
        super().__init__(message, entity_id=id)
