from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context, require_roles
from src.core.db import get_db_session
from src.core.email import get_email_client
from src.core.repositories.invitations import InvitationRepository
from src.core.repositories.tenants import TenantAccountRepository
from src.core.repositories.users import UserRepository
from src.core.security.dependencies import get_password_hasher
from src.core.services.invitations import InvitationService
from src.models.user import UserRole
from src.schemas.invitations import (
    InvitationAcceptRequest,
    InvitationAcceptResponse,
    InvitationCreateRequest,
    InvitationResponse,
    InvitationSentResponse,
    InvitationValidationResponse,
)

router = APIRouter(prefix="/invitations", tags=["invitations"])


def _build_service(session: AsyncSession) -> InvitationService:
    return InvitationService(
        InvitationRepository(session),
        UserRepository(session),
        TenantAccountRepository(session),
        get_email_client(),
        get_password_hasher(),
    )


async def _commit_if_expired(session: AsyncSession, exc: HTTPException) -> None:
    # Expired invitations stay marked EXPIRED even though the request fails.
    if exc.status_code == status.HTTP_410_GONE:
        await session.commit()


@router.post("", response_model=InvitationSentResponse, status_code=status.HTTP_201_CREATED)
async def invite_user(
    payload: InvitationCreateRequest,
    auth: AuthContext = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER)),
    session: AsyncSession = Depends(get_db_session),
) -> InvitationSentResponse:
    invitation, email_sent = await _build_service(session).invite(auth, email=payload.email, role=payload.role)
    await session.commit()
    return InvitationSentResponse(
        invitation=InvitationResponse.model_validate(invitation),
        email_sent=email_sent,
    )


@router.get("/pending", response_model=list[InvitationResponse])
async def list_pending_invitations(
    _: AuthContext = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER)),
    session: AsyncSession = Depends(get_db_session),
) -> list[InvitationResponse]:
    invitations = await _build_service(session).list_pending()
    return [InvitationResponse.model_validate(invitation) for invitation in invitations]


@router.get("/validate", response_model=InvitationValidationResponse)
async def validate_invitation(
    token: str = Query(min_length=1),
    session: AsyncSession = Depends(get_db_session),
) -> InvitationValidationResponse:
    try:
        check = await _build_service(session).validate(token)
    except HTTPException as exc:
        await _commit_if_expired(session, exc)
        raise
    return InvitationValidationResponse(
        status=check.status,
        email=check.invitation.email,
        role=check.invitation.role,
        tenant_name=check.tenant_name,
        expires_at=check.invitation.expires_at,
    )


@router.post("/accept", response_model=InvitationAcceptResponse, status_code=status.HTTP_201_CREATED)
async def accept_invitation(
    payload: InvitationAcceptRequest,
    session: AsyncSession = Depends(get_db_session),
) -> InvitationAcceptResponse:
    service = _build_service(session)
    try:
        accepted = await service.accept(token=payload.token, name=payload.name, password=payload.password)
    except HTTPException as exc:
        await _commit_if_expired(session, exc)
        raise
    await session.commit()
    return InvitationAcceptResponse(
        access_token=accepted.access_token,
        user_id=accepted.user.id,
        tenant_id=accepted.user.tenant_id,
        tenant_name=accepted.tenant_name,
        role=accepted.user.role,
    )


@router.post("/{invitation_id}/cancel", response_model=InvitationResponse)
async def cancel_invitation(
    invitation_id: UUID,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> InvitationResponse:
    invitation = await _build_service(session).cancel(auth, invitation_id)
    await session.commit()
    return InvitationResponse.model_validate(invitation)


@router.post("/{invitation_id}/resend", response_model=InvitationSentResponse)
async def resend_invitation(
    invitation_id: UUID,
    auth: AuthContext = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER)),
    session: AsyncSession = Depends(get_db_session),
) -> InvitationSentResponse:
    invitation, email_sent = await _build_service(session).resend(auth, invitation_id)
    await session.commit()
    return InvitationSentResponse(
        invitation=InvitationResponse.model_validate(invitation),
        email_sent=email_sent,
    )
