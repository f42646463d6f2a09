# eduschedule/models/base.py
from sqlalchemy.orm import as_declarative, declared_attr
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import DateTime, Boolean, Integer, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
import uuid


@as_declarative()
class Base:
    __abstract__ = True

    id: Mapped[uuid.UUID]

    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower()

    id = mapped_column(UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Soft delete, rows are never physically removed
    is_deleted = mapped_column(Boolean, default=False, nullable=False, index=True)


class TenantScoped:
    """Owning school. Every query against these tables filters on it."""

    @declared_attr
    def tenant_id(cls):
        return mapped_column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)


class Versioned:
    """Optimistic concurrency counter plus who created and last changed the row."""

    @declared_attr
    def version(cls):
        return mapped_column(Integer, default=1, nullable=False)

    @declared_attr
    def created_by(cls):
        return mapped_column(UUID(as_uuid=True))

    @declared_attr
    def updated_by(cls):
        return mapped_column(UUID(as_uuid=True))
