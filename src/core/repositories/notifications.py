from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import TenantRepository
from src.models.notification import Notification


class NotificationRepository(TenantRepository[Notification]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=Notification)

    async def list_for_user(self, user_id: UUID, *, unread_only: bool = False, limit: int = 20) -> list[Notification]:
        await self._apply_rls()
        stmt = self._scoped_select().where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        result = await self.session.execute(stmt.order_by(Notification.created_at.desc()).limit(limit))
        return list(result.scalars().all())

    async def count_unread(self, user_id: UUID) -> int:
        await self._apply_rls()
        return int(
            await self.session.scalar(
                select(func.count(Notification.id)).where(
                    Notification.tenant_id == self.tenant_id,
                    Notification.user_id == user_id,
                    Notification.is_read.is_(False),
                )
            )
            or 0
        )

    async def get_for_user(self, notification_id: UUID, user_id: UUID) -> Notification | None:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select().where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def mark_all_read(self, user_id: UUID) -> int:
        await self._apply_rls()
        result = await self.session.execute(
            update(Notification)
            .where(
                Notification.tenant_id == self.tenant_id,
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=datetime.now(timezone.utc))
        )
        return result.rowcount or 0
