from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import TenantRepository
from src.models.enphase_config import EnphaseConfig


class EnphaseConfigRepository(TenantRepository[EnphaseConfig]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=EnphaseConfig)

    async def get_current(self) -> EnphaseConfig | None:
        await self._apply_rls()
        result = await self.session.execute(self._scoped_select())
        return result.scalar_one_or_none()

    async def upsert(self, **values: object) -> EnphaseConfig:
        existing = await self.get_current()
        if existing is None:
            return await self.create(**values)

        updated = await self.update(existing.id, **values)
        return updated if updated is not None else existing
