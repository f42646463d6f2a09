# eduschedule/services/base_service.py
"""Base service with tenant-scoped lookups."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, exists
from typing import Type, Any, Optional, TypeVar, Generic
from uuid import UUID

from ..core.exceptions import NotFoundError

# Define generic type
T = TypeVar('T')

class BaseService(Generic[T]):
    resource_name = "Resource"

    def __init__(self, model: Type[T], db: AsyncSession):
        self.model = model
        self.db = db

    async def get(self, tenant_id: UUID, id: Any) -> Optional[T]:
        stmt = select(self.model).where(
            self.model.id == id,
            self.model.tenant_id == tenant_id,
            self.model.is_deleted == False
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_404(self, tenant_id: UUID, id: Any) -> T:
        obj = await self.get(tenant_id, id)
        if obj is None:
            raise NotFoundError(self.resource_name, id)
        return obj

    async def ensure_exists(self, model: Type[Any], tenant_id: UUID, id: Any, resource: str):
        """Reject references to rows that are missing, deleted or owned by another tenant."""
        stmt = select(exists().where(
            model.id == id,
            model.tenant_id == tenant_id,
            model.is_deleted == False
        ))
        if not (await self.db.execute(stmt)).scalar():
            raise NotFoundError(resource, id)
