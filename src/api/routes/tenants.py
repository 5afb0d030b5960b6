from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context, require_roles
from src.core.db import get_db_session
from src.core.repositories.tenants import TenantAccountRepository
from src.models.user import UserRole
from src.schemas.tenants import TenantResponse

router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.get("/current", response_model=TenantResponse)
async def current_tenant(
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> TenantResponse:
    tenant = await TenantAccountRepository(session).get(auth.tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found",
        )
    return TenantResponse.model_validate(tenant)


@router.get("", response_model=list[TenantResponse])
async def list_tenants(
    _: AuthContext = Depends(require_roles(UserRole.ADMIN)),
    session: AsyncSession = Depends(get_db_session),
) -> list[TenantResponse]:
    tenants = await TenantAccountRepository(session).list_all()
    return [TenantResponse.model_validate(tenant) for tenant in tenants]
