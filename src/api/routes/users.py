from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context, require_roles
from src.core.db import get_db_session
from src.core.repositories.users import UserRepository
from src.core.services.users import UserManagementService
from src.models.user import UserRole
from src.schemas.common import MessageResponse
from src.schemas.users import UserResponse, UserRoleUpdateRequest, UserUpdateRequest

router = APIRouter(prefix="/users", tags=["users"])

require_user_admin = require_roles(UserRole.ADMIN, UserRole.MANAGER)


def _build_service(session: AsyncSession) -> UserManagementService:
    return UserManagementService(UserRepository(session))


@router.get("", response_model=list[UserResponse])
async def list_users(
    search: str | None = None,
    role: UserRole | None = None,
    _: AuthContext = Depends(require_user_admin),
    session: AsyncSession = Depends(get_db_session),
) -> list[UserResponse]:
    users = await _build_service(session).list_users(search=search, role=role.value if role else None)
    return [UserResponse.model_validate(user) for user in users]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    _: AuthContext = Depends(require_user_admin),
    session: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return UserResponse.model_validate(await _build_service(session).get_user(user_id))


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    payload: UserUpdateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await _build_service(session).update_user(auth, user_id, **payload.model_dump(exclude_unset=True))
    await session.commit()
    return UserResponse.model_validate(user)


@router.patch("/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: UUID,
    payload: UserRoleUpdateRequest,
    auth: AuthContext = Depends(require_user_admin),
    session: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await _build_service(session).update_role(auth, user_id, payload.role)
    await session.commit()
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: UUID,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await _build_service(session).delete_user(auth, user_id)
    await session.commit()
    return MessageResponse(message="User deleted successfully")
