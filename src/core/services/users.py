from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status

from src.core.auth import AuthContext
from src.core.permissions import has_permission, role_level
from src.core.repositories.users import UserRepository
from src.models.user import User, UserRole, UserStatus

logger = logging.getLogger(__name__)

USER_ADMIN_ROLES = frozenset({UserRole.ADMIN.value, UserRole.MANAGER.value})


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def ensure_can_assign_role(requester_role: str, role: str) -> None:
    if requester_role not in USER_ADMIN_ROLES:
        raise _forbidden("Only administrators and managers can change roles")
    if role == UserRole.ADMIN.value and requester_role != UserRole.ADMIN.value:
        raise _forbidden("Only administrators can grant the ADMIN role")
    if role_level(role) > role_level(requester_role):
        raise _forbidden("Cannot assign a role higher than your own")


class UserManagementService:
    def __init__(self, users: UserRepository) -> None:
        self.users = users

    async def _require_user(self, user_id: UUID) -> User:
        user = await self.users.get(user_id)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    async def list_users(self, *, search: str | None = None, role: str | None = None) -> list[User]:
        return await self.users.list_users(search=search, role=role)

    async def get_user(self, user_id: UUID) -> User:
        return await self._require_user(user_id)

    async def update_user(self, auth: AuthContext, user_id: UUID, **values: object) -> User:
        target = await self._require_user(user_id)
        is_self = target.id == auth.user_id
        is_user_admin = auth.role in USER_ADMIN_ROLES
        changes: dict[str, object] = {}

        role = values.get("role")
        if role is not None and role != target.role:
            if is_self:
                raise _forbidden("Cannot change your own role")
            ensure_can_assign_role(auth.role, role)
            if auth.role != UserRole.ADMIN.value and role_level(target.role) >= role_level(auth.role):
                raise _forbidden("Cannot modify a user with an equal or higher role")
            changes["role"] = role

        user_status = values.get("status")
        if user_status is not None and user_status != target.status:
            if is_self and user_status == UserStatus.INACTIVE.value:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Cannot deactivate your own account",
                )
            if not is_user_admin:
                raise _forbidden("Only administrators and managers can change user status")
            changes["status"] = user_status

        for field in ("name", "phone"):
            if values.get(field) is None:
                continue
            if not is_self and not is_user_admin:
                raise _forbidden("You can only update your own profile")
            changes[field] = values[field]

        permissions = values.get("permissions")
        if permissions is not None:
            if auth.role != UserRole.ADMIN.value:
                raise _forbidden("Only administrators can change permissions")
            missing = [p for p in permissions if not has_permission(auth.role, p)]
            if missing:
                raise _forbidden(f"Cannot grant permissions you do not hold: {', '.join(missing)}")
            changes["permissions"] = list(permissions)

        if not changes:
            return target

        updated = await self.users.update(target.id, **changes)
        logger.info("Updated user %s fields %s", target.id, sorted(changes))
        return updated or target

    async def update_role(self, auth: AuthContext, user_id: UUID, role: str) -> User:
        target = await self._require_user(user_id)
        if target.id == auth.user_id:
            raise _forbidden("Cannot change your own role")
        return await self.update_user(auth, user_id, role=role)

    async def delete_user(self, auth: AuthContext, user_id: UUID) -> None:
        if auth.tenant_id is None:
            raise _forbidden("No tenant associated with the current user")
        if auth.role != UserRole.ADMIN.value:
            raise _forbidden("Only administrators can delete users")
        if user_id == auth.user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete your own account",
            )
        target = await self._require_user(user_id)
        await self.users.delete(target.id)
        logger.info("Deleted user %s", target.id)
