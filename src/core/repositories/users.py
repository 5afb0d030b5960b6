from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import TenantRepository
from src.models.user import User


class UserRepository(TenantRepository[User]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=User)

    async def get_by_email(self, email: str) -> User | None:
        # Emails are unique across tenants, so this lookup is not tenant scoped.
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def list_users(self, *, search: str | None = None, role: str | None = None) -> list[User]:
        await self._apply_rls()
        stmt = self._scoped_select()
        if role:
            stmt = stmt.where(User.role == role)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        result = await self.session.execute(stmt.order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def list_ids_by_roles(
        self,
        roles: Iterable[str],
        *,
        exclude_user_id: UUID | None = None,
    ) -> list[UUID]:
        await self._apply_rls()
        stmt = select(User.id).where(User.tenant_id == self.tenant_id, User.role.in_(list(roles)))
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
