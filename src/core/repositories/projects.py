from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import Page, TenantRepository
from src.models.project import Project, ProjectImage


@dataclass(slots=True)
class ProjectFilters:
    status: str | None = None
    search: str | None = None
    customer_id: UUID | None = None
    crm_lead_id: UUID | None = None
    created_by_id: UUID | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    min_kw: Decimal | None = None
    max_kw: Decimal | None = None


class ProjectRepository(TenantRepository[Project]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=Project)

    async def get_by_crm_lead_id(self, crm_lead_id: UUID) -> Project | None:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select().where(Project.crm_lead_id == crm_lead_id)
        )
        return result.scalar_one_or_none()

    async def list_projects(self, filters: ProjectFilters, *, page: int = 1, limit: int = 20) -> Page[Project]:
        await self._apply_rls()
        stmt = self._scoped_select()

        if filters.status:
            stmt = stmt.where(Project.status == filters.status)
        if filters.customer_id:
            stmt = stmt.where(Project.customer_id == filters.customer_id)
        if filters.crm_lead_id:
            stmt = stmt.where(Project.crm_lead_id == filters.crm_lead_id)
        if filters.created_by_id:
            stmt = stmt.where(Project.created_by_id == filters.created_by_id)
        if filters.min_price is not None:
            stmt = stmt.where(Project.estimated_price >= filters.min_price)
        if filters.max_price is not None:
            stmt = stmt.where(Project.estimated_price <= filters.max_price)
        if filters.min_kw is not None:
            stmt = stmt.where(Project.estimated_kw >= filters.min_kw)
        if filters.max_kw is not None:
            stmt = stmt.where(Project.estimated_kw <= filters.max_kw)
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            stmt = stmt.where(
                or_(
                    Project.name.ilike(pattern),
                    Project.description.ilike(pattern),
                    Project.address.ilike(pattern),
                )
            )

        return await self._paginate(stmt.order_by(Project.created_at.desc()), page=page, limit=limit)


class ProjectImageRepository(TenantRepository[ProjectImage]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=ProjectImage)

    async def count_for_project(self, project_id: UUID) -> int:
        await self._apply_rls()
        return int(
            await self.session.scalar(
                select(func.count(ProjectImage.id)).where(
                    ProjectImage.tenant_id == self.tenant_id,
                    ProjectImage.project_id == project_id,
                )
            )
            or 0
        )

    async def get_for_project(self, project_id: UUID, image_id: UUID) -> ProjectImage | None:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select().where(
                ProjectImage.id == image_id,
                ProjectImage.project_id == project_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(
        self,
        project_id: UUID,
        *,
        category: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[ProjectImage]:
        await self._apply_rls()
        stmt = self._scoped_select().where(ProjectImage.project_id == project_id)
        if category:
            stmt = stmt.where(ProjectImage.category == category)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    ProjectImage.title.ilike(pattern),
                    ProjectImage.description.ilike(pattern),
                    ProjectImage.original_name.ilike(pattern),
                )
            )
        stmt = stmt.order_by(ProjectImage.order.asc(), ProjectImage.created_at.asc())
        return await self._paginate(stmt, page=page, limit=limit)

    async def all_for_project(self, project_id: UUID) -> list[ProjectImage]:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select().where(ProjectImage.project_id == project_id)
        )
        return list(result.scalars().all())
