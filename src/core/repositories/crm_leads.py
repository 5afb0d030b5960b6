from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import Page, TenantRepository
from src.models.crm_lead import CrmLead, UserJourneyStep

LEAD_SORT_COLUMNS = {
    "name": CrmLead.name,
    "created_at": CrmLead.created_at,
    "score": CrmLead.score,
    "last_activity": CrmLead.last_activity,
}


@dataclass(slots=True)
class LeadFilters:
    status: str | None = None
    assignee: str | None = None
    product_service: str | None = None
    customer_type: str | None = None
    search: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None


class CrmLeadRepository(TenantRepository[CrmLead]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=CrmLead)

    async def list_leads(
        self,
        filters: LeadFilters,
        *,
        page: int = 1,
        limit: int = 50,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Page[CrmLead]:
        await self._apply_rls()
        stmt = self._scoped_select()

        if filters.status:
            stmt = stmt.where(CrmLead.status == filters.status)
        if filters.assignee:
            stmt = stmt.where(CrmLead.assignee == filters.assignee)
        if filters.product_service:
            stmt = stmt.where(CrmLead.product_service == filters.product_service)
        if filters.customer_type:
            stmt = stmt.where(CrmLead.customer_type == filters.customer_type)
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            stmt = stmt.where(
                or_(
                    CrmLead.name.ilike(pattern),
                    CrmLead.email.ilike(pattern),
                    CrmLead.company.ilike(pattern),
                )
            )
        if filters.date_from:
            stmt = stmt.where(CrmLead.created_at >= filters.date_from)
        if filters.date_to:
            stmt = stmt.where(CrmLead.created_at <= filters.date_to)

        column = LEAD_SORT_COLUMNS.get(sort_by, CrmLead.created_at)
        stmt = stmt.order_by(column.asc() if sort_order == "asc" else column.desc())
        return await self._paginate(stmt, page=page, limit=limit)

    async def find_existing_emails(self, emails: Iterable[str]) -> set[str]:
        normalized = {email.strip().lower() for email in emails if email}
        if not normalized:
            return set()
        await self._apply_rls()
        result = await self.session.execute(
            select(func.lower(CrmLead.email)).where(
                CrmLead.tenant_id == self.tenant_id,
                func.lower(CrmLead.email).in_(normalized),
            )
        )
        return set(result.scalars().all())

    async def stats(self) -> dict[str, object]:
        await self._apply_rls()
        scope = CrmLead.tenant_id == self.tenant_id

        total = int(await self.session.scalar(select(func.count(CrmLead.id)).where(scope)) or 0)
        by_status = {
            status: count
            for status, count in (
                await self.session.execute(
                    select(CrmLead.status, func.count(CrmLead.id)).where(scope).group_by(CrmLead.status)
                )
            ).all()
        }
        by_assignee = {
            (assignee or "unassigned"): count
            for assignee, count in (
                await self.session.execute(
                    select(CrmLead.assignee, func.count(CrmLead.id)).where(scope).group_by(CrmLead.assignee)
                )
            ).all()
        }
        avg_score = await self.session.scalar(select(func.avg(CrmLead.score)).where(scope))
        week_ago = datetime.now(timezone.utc) - timedelta(days=7)
        recent_activity = int(
            await self.session.scalar(
                select(func.count(CrmLead.id)).where(scope, CrmLead.last_activity >= week_ago)
            )
            or 0
        )

        return {
            "total": total,
            "by_status": by_status,
            "by_assignee": by_assignee,
            "avg_score": round(float(avg_score or 0), 2),
            "recent_activity": recent_activity,
        }


class JourneyStepRepository(TenantRepository[UserJourneyStep]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=UserJourneyStep)

    async def list_for_lead(self, crm_lead_id: UUID) -> list[UserJourneyStep]:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select()
            .where(UserJourneyStep.crm_lead_id == crm_lead_id)
            .order_by(UserJourneyStep.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_for_lead(self, crm_lead_id: UUID, step_id: UUID) -> UserJourneyStep | None:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select().where(
                UserJourneyStep.id == step_id,
                UserJourneyStep.crm_lead_id == crm_lead_id,
            )
        )
        return result.scalar_one_or_none()

    async def delete_for_lead(self, crm_lead_id: UUID) -> int:
        await self._apply_rls()
        result = await self.session.execute(
            delete(UserJourneyStep).where(
                UserJourneyStep.tenant_id == self.tenant_id,
                UserJourneyStep.crm_lead_id == crm_lead_id,
            )
        )
        return result.rowcount or 0
