from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import TenantRepository
from src.models.invitation import Invitation, InvitationStatus


class InvitationRepository(TenantRepository[Invitation]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=Invitation)

    async def get_by_token(self, token: str) -> Invitation | None:
        # Token lookups happen before the invitee has a tenant context.
        result = await self.session.execute(select(Invitation).where(Invitation.token == token))
        return result.scalar_one_or_none()

    async def get_pending_by_email(self, email: str) -> Invitation | None:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select().where(
                func.lower(Invitation.email) == email.strip().lower(),
                Invitation.status == InvitationStatus.PENDING.value,
            )
        )
        return result.scalars().first()

    async def list_pending(self) -> list[Invitation]:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select()
            .where(Invitation.status == InvitationStatus.PENDING.value)
            .order_by(Invitation.created_at.desc())
        )
        return list(result.scalars().all())
