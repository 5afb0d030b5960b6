from __future__ import annotations

import logging
from datetime import datetime
from pathlib import PurePath
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_roles
from src.core.config import settings
from src.core.db import get_db_session
from src.core.repositories.crm_leads import CrmLeadRepository, JourneyStepRepository, LeadFilters
from src.core.repositories.projects import ProjectImageRepository, ProjectRepository
from src.core.services.crm import CrmLeadService
from src.core.services.lead_import import LeadImportService
from src.core.services.projects import ProjectService
from src.models.user import UserRole
from src.schemas.crm import (
    JourneyStepCreateRequest,
    JourneyStepResponse,
    JourneyStepUpdateRequest,
    LeadCreateRequest,
    LeadDetailResponse,
    LeadListResponse,
    LeadResponse,
    LeadStatsResponse,
    LeadUpdateRequest,
)
from src.schemas.common import MessageResponse
from src.schemas.lead_import import LeadImportData, LeadImportResponse
from src.schemas.projects import LeadProjectResponse, ProjectResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/crm", tags=["crm"])

require_crm_access = require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.SALES_REP)


def _build_service(session: AsyncSession) -> CrmLeadService:
    return CrmLeadService(CrmLeadRepository(session), JourneyStepRepository(session))


def _build_project_service(session: AsyncSession) -> ProjectService:
    return ProjectService(ProjectRepository(session), ProjectImageRepository(session), CrmLeadRepository(session))


def validate_upload(filename: str | None, content: bytes) -> None:
    if not filename or PurePath(filename).suffix.lower() != ".csv":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed",
        )
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File is empty",
        )
    if len(content) > settings.lead_import_max_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File size exceeds 10MB limit",
        )


@router.get("/leads", response_model=LeadListResponse)
async def list_leads(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    lead_status: str | None = Query(default=None, alias="status"),
    assignee: str | None = None,
    product_service: str | None = None,
    customer_type: str | None = None,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    sort_by: Literal["name", "created_at", "score", "last_activity"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    _: AuthContext = Depends(require_crm_access),
    session: AsyncSession = Depends(get_db_session),
) -> LeadListResponse:
    filters = LeadFilters(
        status=lead_status,
        assignee=assignee,
        product_service=product_service,
        customer_type=customer_type,
        search=search,
        date_from=date_from,
        date_to=date_to,
    )
    result = await _build_service(session).list_leads(
        filters,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return LeadListResponse(
        leads=[LeadResponse.model_validate(lead) for lead in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.post("/leads", response_model=LeadResponse, status_code=status.HTTP_201_CREATED)
async def create_lead(
    payload: LeadCreateRequest,
    auth: AuthContext = Depends(require_crm_access),
    session: AsyncSession = Depends(get_db_session),
) -> LeadResponse:
    lead = await _build_service(session).create_lead(created_by=auth.user_id, **payload.model_dump())
    await session.commit()
    return LeadResponse.model_validate(lead)


@router.get("/leads/stats", response_model=LeadStatsResponse)
async def lead_stats(
    _: AuthContext = Depends(require_crm_access),
    session: AsyncSession = Depends(get_db_session),
) -> LeadStatsResponse:
    return LeadStatsResponse(**await _build_service(session).stats())


@router.post("/leads/import", response_model=LeadImportResponse)
async def import_leads(
    file: UploadFile = File(...),
    skip_duplicates: bool = Query(default=True),
    auth: AuthContext = Depends(require_crm_access),
    session: AsyncSession = Depends(get_db_session),
) -> LeadImportResponse:
    content = await file.read()
    validate_upload(file.filename, content)

    importer = LeadImportService(_build_service(session), batch_size=settings.lead_import_batch_size)
    summary = await importer.import_csv(
        content.decode("utf-8", errors="replace"),
        created_by=auth.user_id,
        skip_duplicates=skip_duplicates,
    )
    await session.commit()
    logger.info("Lead import finished: %s", summary.message)
    return LeadImportResponse(
        success=summary.success,
        message=summary.message,
        data=LeadImportData(
            total=summary.total,
            imported=summary.imported,
            failed=summary.failed,
            skipped=summary.skipped,
            duration_ms=summary.duration_ms,
            errors=[error.to_dict() for error in summary.errors],
            imported_leads=summary.imported_leads,
        ),
    )


@router.get("/leads/{lead_id}", response_model=LeadDetailResponse)
async def get_lead(
    lead_id: UUID,
    _: AuthContext = Depends(require_crm_access),
    session: AsyncSession = Depends(get_db_session),
) -> LeadDetailResponse:
    lead, steps = await _build_service(session).get_lead(lead_id)
    detail = LeadDetailResponse.model_validate(lead)
    detail.journey_steps = [JourneyStepResponse.model_validate(step) for step in steps]
    return detail


@router.patch("/leads/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: UUID,
    payload: LeadUpdateRequest,
    _: AuthContext = Depends(require_crm_access),
    session: AsyncSession = Depends(get_db_session),
) -> LeadResponse:
    lead = await _build_service(session).update_lead(lead_id, **payload.model_dump(exclude_unset=True))
    await session.commit()
    return LeadResponse.model_validate(lead)


@router.delete("/leads/{lead_id}", response_model=MessageResponse)
async def delete_lead(
    lead_id: UUID,
    _: AuthContext = Depends(require_crm_access),
    session: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await _build_service(session).delete_lead(lead_id)
    await session.commit()
    return MessageResponse(message="Lead deleted successfully")


@router.get("/leads/{lead_id}/projects", response_model=LeadProjectResponse)
async def get_lead_project(
    lead_id: UUID,
    _: AuthContext = Depends(require_crm_access),
    session: AsyncSession = Depends(get_db_session),
) -> LeadProjectResponse:
    project = await _build_project_service(session).get_for_lead(lead_id)
    if project is None:
        return LeadProjectResponse(data=None, message="No project associated with this lead")
    return LeadProjectResponse(data=ProjectResponse.model_validate(project), message="Project found")


@router.post(
    "/leads/{lead_id}/journey-steps",
    response_model=JourneyStepResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_journey_step(
    lead_id: UUID,
    payload: JourneyStepCreateRequest,
    auth: AuthContext = Depends(require_crm_access),
    session: AsyncSession = Depends(get_db_session),
) -> JourneyStepResponse:
    step = await _build_service(session).add_journey_step(
        lead_id,
        step=payload.step,
        step_status=payload.status,
        notes=payload.notes,
        scheduled_at=payload.scheduled_at,
        created_by=auth.user_id,
    )
    await session.commit()
    return JourneyStepResponse.model_validate(step)


@router.patch("/leads/{lead_id}/journey-steps/{step_id}", response_model=JourneyStepResponse)
async def update_journey_step(
    lead_id: UUID,
    step_id: UUID,
    payload: JourneyStepUpdateRequest,
    _: AuthContext = Depends(require_crm_access),
    session: AsyncSession = Depends(get_db_session),
) -> JourneyStepResponse:
    step = await _build_service(session).update_journey_step(
        lead_id,
        step_id,
        **payload.model_dump(exclude_unset=True),
    )
    await session.commit()
    return JourneyStepResponse.model_validate(step)


@router.delete("/leads/{lead_id}/journey-steps/{step_id}", response_model=MessageResponse)
async def delete_journey_step(
    lead_id: UUID,
    step_id: UUID,
    _: AuthContext = Depends(require_crm_access),
    session: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await _build_service(session).delete_journey_step(lead_id, step_id)
    await session.commit()
    return MessageResponse(message="Journey step deleted successfully")
