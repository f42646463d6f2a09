# eduschedule/services/bulk_import_service.py
from typing import Any, Dict, List
from uuid import UUID
import logging
import time
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from .timetable_entry_service import TimetableEntryService
from ..core.config import settings
from ..core.exceptions import SchedulingError, ValidationError

logger = logging.getLogger(__name__)


class BulkImportService:
    """Imports a batch of entries row by row.

    There is no enclosing transaction: every row is created and
    committed on its own, so a bad row is reported next to the good ones
    instead of rolling them back.
    """

    def __init__(self, db: AsyncSession, max_entries: int = None):
        self.db = db
        self.entries = TimetableEntryService(db)
        self.max_entries = max_entries or settings.bulk_import_max_entries

    async def import_entries(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        entries: List[Dict[str, Any]],
        academic_year_id: UUID
    ) -> Dict[str, Any]:
        if len(entries) > self.max_entries:
            raise ValidationError(
                f"Bulk import accepts at most {self.max_entries} entries, got {len(entries)}",
                field="entries"
            )

        start_time = time.time()
        success = []
        errors = []

        for index, item in enumerate(entries):
            try:
                created = await self.entries.create(
                    tenant_id, actor_id, {**item, "academic_year_id": academic_year_id}
                )
            except SchedulingError as e:
                errors.append({
                    "index": index,
                    "input": item,
                    "message": e.message,
                    "conflicts": getattr(e, "conflicts", []),
                })
                continue
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.warning(f"Bulk import row {index} for tenant {tenant_id} failed: {e}")
                errors.append({
                    "index": index,
                    "input": item,
                    "message": "Database error while creating entry",
                    "conflicts": [],
                })
                continue
            success.append(created)

        logger.info(
            f"Bulk import for tenant {tenant_id}: {len(success)} created, "
            f"{len(errors)} failed in {time.time() - start_time:.3f}s"
        )
        return {
            "success": success,
            "errors": errors,
            "total_processed": len(entries),
        }
