from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import Page, TenantRepository
from src.models.project_request import ProjectRequest


@dataclass(slots=True)
class ProjectRequestFilters:
    status: str | None = None
    service_type: str | None = None
    priority: str | None = None
    search: str | None = None
    created_by_id: UUID | None = None
    assigned_to_id: UUID | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None


class ProjectRequestRepository(TenantRepository[ProjectRequest]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=ProjectRequest)

    async def list_requests(
        self,
        filters: ProjectRequestFilters,
        *,
        page: int = 1,
        limit: int = 20,
    ) -> Page[ProjectRequest]:
        await self._apply_rls()
        stmt = self._scoped_select()
        if filters.status:
            stmt = stmt.where(ProjectRequest.status == filters.status)
        if filters.service_type:
            stmt = stmt.where(ProjectRequest.service_type == filters.service_type)
        if filters.priority:
            stmt = stmt.where(ProjectRequest.priority == filters.priority)
        if filters.created_by_id:
            stmt = stmt.where(ProjectRequest.created_by_id == filters.created_by_id)
        if filters.assigned_to_id:
            stmt = stmt.where(ProjectRequest.assigned_to_id == filters.assigned_to_id)
        if filters.date_from:
            stmt = stmt.where(ProjectRequest.created_at >= filters.date_from)
        if filters.date_to:
            stmt = stmt.where(ProjectRequest.created_at <= filters.date_to)
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            stmt = stmt.where(
                or_(
                    ProjectRequest.title.ilike(pattern),
                    ProjectRequest.client_name.ilike(pattern),
                    ProjectRequest.client_email.ilike(pattern),
                    ProjectRequest.city.ilike(pattern),
                )
            )
        return await self._paginate(stmt.order_by(ProjectRequest.created_at.desc()), page=page, limit=limit)
