from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import TenantRepository
from src.models.company import Company


class CompanyRepository(TenantRepository[Company]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=Company)

    async def get_current(self) -> Company | None:
        await self._apply_rls()
        result = await self.session.execute(self._scoped_select())
        return result.scalars().first()
