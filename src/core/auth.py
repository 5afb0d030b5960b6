from __future__ import annotations

import hmac
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.context import set_current_tenant_id, set_current_user_id
from src.core.db import get_db_session
from src.models.tenant import Tenant
from src.models.user import User, UserRole, UserStatus

bearer_scheme = HTTPBearer(auto_error=True)


@dataclass(slots=True)
class AuthContext:
    tenant_id: UUID
    user_id: UUID
    role: str
    email: str
    name: str = ""

    def has_role(self, *roles: str | UserRole) -> bool:
        values = {role.value if isinstance(role, UserRole) else role for role in roles}
        return self.role in values


def create_access_token(user: User, *, ttl_seconds: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(seconds=ttl_seconds or settings.access_token_ttl_seconds)
    claims = {
        "sub": str(user.id),
        "tid": str(user.tenant_id),
        "role": user.role,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from exc


def _subject_to_user_id(subject: object) -> UUID:
    try:
        return UUID(str(subject))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token subject is not a valid user id",
        ) from exc


async def require_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db_session),
) -> AuthContext:
    claims = decode_access_token(credentials.credentials)
    user_id = _subject_to_user_id(claims.get("sub"))

    user = await session.scalar(select(User).where(User.id == user_id))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    if user.status != UserStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    tenant = await session.scalar(select(Tenant).where(Tenant.id == user.tenant_id))
    if tenant is None or not tenant.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Tenant is not active",
        )

    request.state.tenant_id = tenant.id
    request.state.user_id = user.id
    set_current_tenant_id(tenant.id)
    set_current_user_id(user.id)

    return AuthContext(
        tenant_id=tenant.id,
        user_id=user.id,
        role=user.role,
        email=user.email,
        name=user.name,
    )


def require_roles(*roles: UserRole | str) -> Callable[..., Awaitable[AuthContext]]:
    allowed = {role.value if isinstance(role, UserRole) else role for role in roles}

    async def _dependency(auth: AuthContext = Depends(require_auth_context)) -> AuthContext:
        if auth.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return auth

    return _dependency


async def require_backend_api_key(authorization: str | None = Header(default=None)) -> None:
    expected = settings.enphase_backend_api_key
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Backend API key is not configured",
        )
    if not authorization or not hmac.compare_digest(authorization, f"Bearer {expected}"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
