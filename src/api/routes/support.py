from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context
from src.core.db import get_db_session
from src.core.repositories.notifications import NotificationRepository
from src.core.repositories.support import SupportTicketRepository, TicketFilters, TicketResponseRepository
from src.core.repositories.users import UserRepository
from src.core.services.notifications import NotificationService
from src.core.services.support import SupportTicketService
from src.models.support import TicketCategory, TicketPriority, TicketStatus
from src.schemas.support import (
    SupportTicketResponse,
    TicketAssignRequest,
    TicketCategoryUpdateRequest,
    TicketCreateRequest,
    TicketDetailResponse,
    TicketReplyResponse,
    TicketResponseCreateRequest,
    TicketStatsResponse,
    TicketStatusUpdateRequest,
)

router = APIRouter(prefix="/support/tickets", tags=["support"])


def _build_service(session: AsyncSession) -> SupportTicketService:
    users = UserRepository(session)
    return SupportTicketService(
        SupportTicketRepository(session),
        TicketResponseRepository(session),
        users,
        NotificationService(NotificationRepository(session), users),
    )


@router.post("", response_model=SupportTicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> SupportTicketResponse:
    ticket = await _build_service(session).create_ticket(
        auth,
        subject=payload.subject,
        description=payload.description,
        priority=payload.priority,
        category=payload.category,
    )
    await session.commit()
    return SupportTicketResponse.model_validate(ticket)


@router.get("", response_model=list[SupportTicketResponse])
async def list_tickets(
    ticket_status: TicketStatus | None = Query(default=None, alias="status"),
    priority: TicketPriority | None = None,
    category: TicketCategory | None = None,
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> list[SupportTicketResponse]:
    filters = TicketFilters(
        status=ticket_status.value if ticket_status else None,
        priority=priority.value if priority else None,
        category=category.value if category else None,
    )
    tickets = await _build_service(session).list_tickets(auth, filters, limit=limit, offset=offset)
    return [SupportTicketResponse.model_validate(ticket) for ticket in tickets]


@router.get("/stats", response_model=TicketStatsResponse)
async def ticket_stats(
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> TicketStatsResponse:
    return TicketStatsResponse(**await _build_service(session).stats(auth))


@router.get("/{ticket_id}", response_model=TicketDetailResponse)
async def get_ticket(
    ticket_id: UUID,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> TicketDetailResponse:
    ticket, responses = await _build_service(session).get_ticket(auth, ticket_id)
    detail = TicketDetailResponse.model_validate(ticket)
    detail.responses = [TicketReplyResponse.model_validate(response) for response in responses]
    return detail


@router.post("/{ticket_id}/assign", response_model=SupportTicketResponse)
async def assign_ticket(
    ticket_id: UUID,
    payload: TicketAssignRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> SupportTicketResponse:
    ticket = await _build_service(session).assign_ticket(auth, ticket_id, payload.technician_id)
    await session.commit()
    return SupportTicketResponse.model_validate(ticket)


@router.patch("/{ticket_id}/status", response_model=SupportTicketResponse)
async def update_ticket_status(
    ticket_id: UUID,
    payload: TicketStatusUpdateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> SupportTicketResponse:
    ticket = await _build_service(session).update_status(auth, ticket_id, payload.status)
    await session.commit()
    return SupportTicketResponse.model_validate(ticket)


@router.patch("/{ticket_id}/category", response_model=SupportTicketResponse)
async def update_ticket_category(
    ticket_id: UUID,
    payload: TicketCategoryUpdateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> SupportTicketResponse:
    ticket = await _build_service(session).update_category(auth, ticket_id, payload.category)
    await session.commit()
    return SupportTicketResponse.model_validate(ticket)


@router.post(
    "/{ticket_id}/responses",
    response_model=TicketReplyResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_ticket_response(
    ticket_id: UUID,
    payload: TicketResponseCreateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> TicketReplyResponse:
    response = await _build_service(session).add_response(
        auth,
        ticket_id,
        content=payload.content,
        is_internal=payload.is_internal,
    )
    await session.commit()
    return TicketReplyResponse.model_validate(response)
