from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import TenantRepository
from src.models.support import SupportTicket, TicketPriority, TicketResponse, TicketStatus


@dataclass(slots=True)
class TicketFilters:
    status: str | None = None
    priority: str | None = None
    category: str | None = None


class SupportTicketRepository(TenantRepository[SupportTicket]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=SupportTicket)

    def _filtered(self, filters: TicketFilters):  # noqa: ANN202
        stmt = self._scoped_select()
        if filters.status:
            stmt = stmt.where(SupportTicket.status == filters.status)
        if filters.priority:
            stmt = stmt.where(SupportTicket.priority == filters.priority)
        if filters.category:
            stmt = stmt.where(SupportTicket.category == filters.category)
        return stmt

    async def list_tickets(
        self,
        filters: TicketFilters,
        *,
        created_by_id: UUID | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[SupportTicket]:
        await self._apply_rls()
        stmt = self._filtered(filters)
        if created_by_id is not None:
            stmt = stmt.where(SupportTicket.created_by_id == created_by_id)
        result = await self.session.execute(
            stmt.order_by(SupportTicket.created_at.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all())

    async def list_for_technician(
        self,
        technician_id: UUID,
        filters: TicketFilters,
        *,
        limit: int = 10,
        offset: int = 0,
    ) -> list[SupportTicket]:
        await self._apply_rls()
        stmt = self._filtered(filters).where(
            or_(
                SupportTicket.assigned_to_id == technician_id,
                SupportTicket.assigned_to_id.is_(None),
            )
        )
        result = await self.session.execute(
            stmt.order_by(SupportTicket.created_at.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().unique().all())

    async def stats(self, *, user_id: UUID, created_by_id: UUID | None = None) -> dict[str, int]:
        await self._apply_rls()
        scope = [SupportTicket.tenant_id == self.tenant_id]
        if created_by_id is not None:
            scope.append(SupportTicket.created_by_id == created_by_id)

        counts = {
            status: count
            for status, count in (
                await self.session.execute(
                    select(SupportTicket.status, func.count(SupportTicket.id))
                    .where(*scope)
                    .group_by(SupportTicket.status)
                )
            ).all()
        }
        urgent = int(
            await self.session.scalar(
                select(func.count(SupportTicket.id)).where(
                    *scope, SupportTicket.priority == TicketPriority.URGENT.value
                )
            )
            or 0
        )
        my_assigned = int(
            await self.session.scalar(
                select(func.count(SupportTicket.id)).where(*scope, SupportTicket.assigned_to_id == user_id)
            )
            or 0
        )

        return {
            "total": sum(counts.values()),
            "open": counts.get(TicketStatus.OPEN.value, 0),
            "in_progress": counts.get(TicketStatus.IN_PROGRESS.value, 0),
            "resolved": counts.get(TicketStatus.RESOLVED.value, 0),
            "closed": counts.get(TicketStatus.CLOSED.value, 0),
            "urgent": urgent,
            "my_assigned": my_assigned,
        }


class TicketResponseRepository(TenantRepository[TicketResponse]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=TicketResponse)

    async def list_for_ticket(self, ticket_id: UUID, *, include_internal: bool = True) -> list[TicketResponse]:
        await self._apply_rls()
        stmt = self._scoped_select().where(TicketResponse.ticket_id == ticket_id)
        if not include_internal:
            stmt = stmt.where(TicketResponse.is_internal.is_(False))
        result = await self.session.execute(stmt.order_by(TicketResponse.created_at.asc()))
        return list(result.scalars().all())
