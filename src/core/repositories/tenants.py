from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.tenant import Tenant


class TenantAccountRepository:
    """Tenant rows are the RLS boundary itself, so lookups here are unscoped."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, tenant_id: UUID) -> Tenant | None:
        return await self.session.scalar(select(Tenant).where(Tenant.id == tenant_id))

    async def list_all(self) -> list[Tenant]:
        return list((await self.session.scalars(select(Tenant).order_by(Tenant.created_at))).all())
