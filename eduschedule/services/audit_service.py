# eduschedule/services/audit_service.py
from typing import Any, Optional
from uuid import UUID
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.tenant_specific.timetable import TimetableAuditLog


class TimetableAuditService:
    """Records timetable mutations inside the caller's transaction.

    Nothing is committed here: the audit row lands or rolls back together
    with the change it describes.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def log_action(
        self,
        tenant_id: UUID,
        action_type: str,
        entity_type: str,
        entity_id: UUID,
        performed_by: UUID,
        change_description: str,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None
    ) -> TimetableAuditLog:
        audit_log = TimetableAuditLog(
            tenant_id=tenant_id,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=entity_id,
            performed_by=performed_by,
            change_description=change_description,
            old_values=_encode(old_values),
            new_values=_encode(new_values),
        )
        self.db.add(audit_log)
        return audit_log


def _encode(values: Optional[dict]) -> Optional[Any]:
    if values is None:
        return None
    return jsonable_encoder(values)
