from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, create_access_token, require_auth_context
from src.core.config import settings
from src.core.db import get_db_session
from src.core.permissions import navigation_for_role, permissions_for_role
from src.core.repositories.tenants import TenantAccountRepository
from src.core.repositories.users import UserRepository
from src.core.security.dependencies import get_password_hasher
from src.models.user import UserStatus
from src.schemas.auth import CurrentUserResponse, SignInRequest, TokenResponse
from src.schemas.users import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-in", response_model=TokenResponse)
async def sign_in(
    payload: SignInRequest,
    session: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    user = await UserRepository(session).get_by_email(payload.email)
    if user is None or not get_password_hasher().verify(payload.password, user.password_hash):
        logger.info("Rejected sign-in attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if user.status != UserStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    tenant = await TenantAccountRepository(session).get(user.tenant_id)
    if tenant is None or not tenant.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Tenant is not active",
        )

    user.last_login = datetime.now(timezone.utc)
    await session.commit()
    return TokenResponse(
        access_token=create_access_token(user),
        expires_in=settings.access_token_ttl_seconds,
    )


@router.get("/me", response_model=CurrentUserResponse)
async def current_user(
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> CurrentUserResponse:
    user = await UserRepository(session).get(auth.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    permissions = sorted({p.value for p in permissions_for_role(user.role)} | set(user.permissions or []))
    return CurrentUserResponse(
        user=UserResponse.model_validate(user),
        permissions=permissions,
        navigation=navigation_for_role(user.role).to_dict(),
    )
