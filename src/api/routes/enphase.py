from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context, require_backend_api_key, require_roles
from src.core.context import set_current_tenant_id
from src.core.db import get_db_session
from src.core.enphase import EnphaseService, build_authorize_url, encode_state
from src.core.repositories.enphase_configs import EnphaseConfigRepository
from src.core.security.dependencies import get_security_cipher
from src.models.user import UserRole
from src.schemas.common import MessageResponse
from src.schemas.enphase import (
    AuthorizeUrlResponse,
    EnphaseConfigResponse,
    EnphaseConfigUpsertRequest,
    EnphaseStatusResponse,
    OAuthCallbackRequest,
    SystemModifyRequest,
    SystemsReplaceRequest,
    SystemsResponse,
    SystemSummaryResponse,
    ValidateSystemRequest,
)

router = APIRouter(tags=["enphase"])

require_enphase_admin = require_roles(UserRole.ADMIN, UserRole.MANAGER)


def _build_service(session: AsyncSession) -> EnphaseService:
    return EnphaseService(EnphaseConfigRepository(session), get_security_cipher())


async def _commit_if_unauthorized(session: AsyncSession, exc: HTTPException) -> None:
    # A failed refresh leaves the config marked EXPIRED even though the request fails.
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        await session.commit()


@router.get("/enphase/oauth/authorize-url", response_model=AuthorizeUrlResponse)
async def authorize_url(
    system_id: str | None = None,
    auth: AuthContext = Depends(require_enphase_admin),
) -> AuthorizeUrlResponse:
    state = encode_state(auth.tenant_id, system_id)
    return AuthorizeUrlResponse(authorization_url=build_authorize_url(state), state=state)


@router.post("/enphase/oauth/callback", response_model=EnphaseStatusResponse)
async def oauth_callback(
    payload: OAuthCallbackRequest,
    auth: AuthContext = Depends(require_enphase_admin),
    session: AsyncSession = Depends(get_db_session),
) -> EnphaseStatusResponse:
    service = _build_service(session)
    config = await service.complete_authorization(
        tenant_id=auth.tenant_id,
        user_id=auth.user_id,
        code=payload.code,
        state=payload.state,
    )
    await session.commit()
    return EnphaseStatusResponse(
        status="authorized",
        token_expires_at=config.token_expires_at,
        last_refresh_at=config.last_refresh_at,
        available_systems=list(config.available_systems or []),
    )


@router.get("/enphase/status", response_model=EnphaseStatusResponse)
async def enphase_status(
    _: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> EnphaseStatusResponse:
    status_value, config = await _build_service(session).get_status()
    if config is None:
        return EnphaseStatusResponse(status=status_value)
    return EnphaseStatusResponse(
        status=status_value,
        token_expires_at=config.token_expires_at,
        last_refresh_at=config.last_refresh_at,
        available_systems=list(config.available_systems or []),
    )


@router.delete("/enphase/authorization", response_model=MessageResponse)
async def revoke_authorization(
    auth: AuthContext = Depends(require_roles(UserRole.ADMIN)),
    session: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await _build_service(session).revoke(auth.tenant_id)
    await session.commit()
    return MessageResponse(message="Enphase authorization revoked")


@router.post("/enphase/validate-system", response_model=SystemSummaryResponse)
async def validate_system(
    payload: ValidateSystemRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> SystemSummaryResponse:
    try:
        summary = await _build_service(session).validate_system(auth.tenant_id, payload.system_id)
    except HTTPException as exc:
        await _commit_if_unauthorized(session, exc)
        raise
    # A token refresh may have rotated the stored credentials.
    await session.commit()
    return SystemSummaryResponse(**summary)


@router.get(
    "/enphase/systems",
    response_model=SystemsResponse,
    dependencies=[Depends(require_backend_api_key)],
)
async def list_systems(
    tenant_id: UUID = Query(...),
    session: AsyncSession = Depends(get_db_session),
) -> SystemsResponse:
    set_current_tenant_id(tenant_id)
    systems = await _build_service(session).list_systems()
    return SystemsResponse(tenant_id=tenant_id, available_systems=systems)


@router.put(
    "/enphase/systems",
    response_model=SystemsResponse,
    dependencies=[Depends(require_backend_api_key)],
)
async def replace_systems(
    payload: SystemsReplaceRequest,
    session: AsyncSession = Depends(get_db_session),
) -> SystemsResponse:
    set_current_tenant_id(payload.tenant_id)
    config = await _build_service(session).replace_systems(payload.available_systems)
    await session.commit()
    return SystemsResponse(tenant_id=payload.tenant_id, available_systems=list(config.available_systems or []))


@router.post(
    "/enphase/systems",
    response_model=SystemsResponse,
    dependencies=[Depends(require_backend_api_key)],
)
async def modify_system(
    payload: SystemModifyRequest,
    session: AsyncSession = Depends(get_db_session),
) -> SystemsResponse:
    set_current_tenant_id(payload.tenant_id)
    config = await _build_service(session).modify_system(payload.system_id, payload.action)
    await session.commit()
    return SystemsResponse(tenant_id=payload.tenant_id, available_systems=list(config.available_systems or []))


@router.get(
    "/tenants/{tenant_id}/enphase-config",
    response_model=EnphaseConfigResponse,
    dependencies=[Depends(require_backend_api_key)],
)
async def get_enphase_config(
    tenant_id: UUID,
    session: AsyncSession = Depends(get_db_session),
) -> EnphaseConfigResponse:
    set_current_tenant_id(tenant_id)
    config = await EnphaseConfigRepository(session).get_current()
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Enphase is not configured for this tenant",
        )
    return EnphaseConfigResponse.model_validate(config)


@router.put(
    "/tenants/{tenant_id}/enphase-config",
    response_model=EnphaseConfigResponse,
    dependencies=[Depends(require_backend_api_key)],
)
async def upsert_enphase_config(
    tenant_id: UUID,
    payload: EnphaseConfigUpsertRequest,
    session: AsyncSession = Depends(get_db_session),
) -> EnphaseConfigResponse:
    set_current_tenant_id(tenant_id)
    config = await _build_service(session).upsert_config(**payload.model_dump(exclude_unset=True))
    await session.commit()
    return EnphaseConfigResponse.model_validate(config)
