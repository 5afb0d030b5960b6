from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context
from src.core.db import get_db_session
from src.core.repositories.notifications import NotificationRepository
from src.core.repositories.project_requests import ProjectRequestFilters, ProjectRequestRepository
from src.core.repositories.users import UserRepository
from src.core.services.notifications import NotificationService
from src.core.services.project_requests import ProjectRequestService
from src.models.project_request import ProjectRequestPriority, ProjectRequestStatus, ServiceType
from src.schemas.project_requests import (
    ProjectRequestAssignRequest,
    ProjectRequestCreateRequest,
    ProjectRequestListResponse,
    ProjectRequestResponse,
    ProjectRequestStatusUpdateRequest,
)

router = APIRouter(prefix="/project-requests", tags=["project-requests"])


def _build_service(session: AsyncSession) -> ProjectRequestService:
    users = UserRepository(session)
    return ProjectRequestService(
        ProjectRequestRepository(session),
        users,
        NotificationService(NotificationRepository(session), users),
    )


@router.post("", response_model=ProjectRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_project_request(
    payload: ProjectRequestCreateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectRequestResponse:
    project_request = await _build_service(session).create_request(auth, **payload.model_dump())
    await session.commit()
    return ProjectRequestResponse.model_validate(project_request)


@router.get("", response_model=ProjectRequestListResponse)
async def list_project_requests(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    request_status: ProjectRequestStatus | None = Query(default=None, alias="status"),
    service_type: ServiceType | None = None,
    priority: ProjectRequestPriority | None = None,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectRequestListResponse:
    filters = ProjectRequestFilters(
        status=request_status.value if request_status else None,
        service_type=service_type.value if service_type else None,
        priority=priority.value if priority else None,
        search=search,
        date_from=date_from,
        date_to=date_to,
    )
    result = await _build_service(session).list_requests(auth, filters, page=page, limit=limit)
    return ProjectRequestListResponse(
        requests=[ProjectRequestResponse.model_validate(item) for item in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/{request_id}", response_model=ProjectRequestResponse)
async def get_project_request(
    request_id: UUID,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectRequestResponse:
    project_request = await _build_service(session).get_request(auth, request_id)
    return ProjectRequestResponse.model_validate(project_request)


@router.post("/{request_id}/assign", response_model=ProjectRequestResponse)
async def assign_project_request(
    request_id: UUID,
    payload: ProjectRequestAssignRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectRequestResponse:
    project_request = await _build_service(session).assign_request(auth, request_id, payload.assigned_to_id)
    await session.commit()
    return ProjectRequestResponse.model_validate(project_request)


@router.patch("/{request_id}/status", response_model=ProjectRequestResponse)
async def update_project_request_status(
    request_id: UUID,
    payload: ProjectRequestStatusUpdateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectRequestResponse:
    project_request = await _build_service(session).update_status(
        auth,
        request_id,
        new_status=payload.status,
        rejection_reason=payload.rejection_reason,
        admin_notes=payload.admin_notes,
        converted_to_project_id=payload.converted_to_project_id,
    )
    await session.commit()
    return ProjectRequestResponse.model_validate(project_request)
