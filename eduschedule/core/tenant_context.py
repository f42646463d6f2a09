# eduschedule/core/tenant_context.py
"""Actor identity supplied by the upstream session layer.

Authentication happens before requests reach this service; the gateway
forwards the verified identity as ``X-Tenant-ID``, ``X-User-ID`` and
``X-User-Roles`` headers.
"""
from typing import AsyncGenerator, FrozenSet, Optional
from uuid import UUID
from fastapi import Depends, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db, bind_tenant

PRINCIPAL = "principal"
REGISTRAR = "registrar"
SCHEDULER_ROLES = (PRINCIPAL, REGISTRAR)


class Actor(BaseModel):
    tenant_id: UUID
    user_id: UUID
    roles: FrozenSet[str] = frozenset()

    def has_any_role(self, *roles: str) -> bool:
        return bool(self.roles.intersection(roles))


def _parse_uuid(value: Optional[str], header: str) -> UUID:
    if not value:
        raise HTTPException(status_code=401, detail=f"Missing {header} header")
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Invalid {header} header")


async def get_actor(
    x_tenant_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
    x_user_roles: Optional[str] = Header(None),
) -> Actor:
    roles = frozenset(
        role.strip().lower() for role in (x_user_roles or "").split(",") if role.strip()
    )
    return Actor(
        tenant_id=_parse_uuid(x_tenant_id, "X-Tenant-ID"),
        user_id=_parse_uuid(x_user_id, "X-User-ID"),
        roles=roles,
    )


def require_roles(*roles: str):
    """Dependency factory rejecting actors without any of ``roles``"""
    async def _check(actor: Actor = Depends(get_actor)) -> Actor:
        if not actor.has_any_role(*roles):
            raise HTTPException(status_code=403, detail="Permission denied")
        return actor
    return _check


async def get_tenant_db(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> AsyncGenerator[AsyncSession, None]:
    yield bind_tenant(db, actor.tenant_id)
