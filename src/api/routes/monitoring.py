from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_roles
from src.core.db import get_db_session
from src.core.permissions import MONITORING_ROLES
from src.core.repositories.crm_leads import CrmLeadRepository
from src.core.repositories.monitoring import MonitoringDataRepository, MonitoringFilters
from src.core.services.monitoring import MonitoringService
from src.models.user import UserRole
from src.schemas.common import MessageResponse
from src.schemas.monitoring import (
    MonitoringCreateRequest,
    MonitoringListResponse,
    MonitoringResponse,
    MonitoringStatsResponse,
    MonitoringUpdateRequest,
)

router = APIRouter(prefix="/monitoring", tags=["monitoring"])

require_monitoring_read = require_roles(*sorted(MONITORING_ROLES))
require_monitoring_write = require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.TECHNICIAN)


def _build_service(session: AsyncSession) -> MonitoringService:
    return MonitoringService(MonitoringDataRepository(session), CrmLeadRepository(session))


@router.get("/data", response_model=MonitoringListResponse)
async def list_monitoring_data(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    customer_type: str | None = None,
    equipment_status: str | None = None,
    alert_level: str | None = None,
    crm_lead_id: UUID | None = None,
    search: str | None = None,
    _: AuthContext = Depends(require_monitoring_read),
    session: AsyncSession = Depends(get_db_session),
) -> MonitoringListResponse:
    filters = MonitoringFilters(
        customer_type=customer_type,
        equipment_status=equipment_status,
        alert_level=alert_level,
        crm_lead_id=crm_lead_id,
        search=search,
    )
    result = await _build_service(session).list(filters, page=page, limit=limit)
    return MonitoringListResponse(
        data=[MonitoringResponse.model_validate(record) for record in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.post("/data", response_model=MonitoringResponse, status_code=status.HTTP_201_CREATED)
async def create_monitoring_data(
    payload: MonitoringCreateRequest,
    _: AuthContext = Depends(require_monitoring_write),
    session: AsyncSession = Depends(get_db_session),
) -> MonitoringResponse:
    values = payload.model_dump(exclude_none=True)
    record = await _build_service(session).create(crm_lead_id=values.pop("crm_lead_id"), **values)
    await session.commit()
    return MonitoringResponse.model_validate(record)


@router.get("/data/stats", response_model=MonitoringStatsResponse)
async def monitoring_stats(
    _: AuthContext = Depends(require_monitoring_read),
    session: AsyncSession = Depends(get_db_session),
) -> MonitoringStatsResponse:
    return MonitoringStatsResponse(**await _build_service(session).stats())


@router.get("/data/by-lead/{crm_lead_id}", response_model=MonitoringResponse)
async def get_monitoring_by_lead(
    crm_lead_id: UUID,
    _: AuthContext = Depends(require_monitoring_read),
    session: AsyncSession = Depends(get_db_session),
) -> MonitoringResponse:
    record = await _build_service(session).get_by_crm_lead(crm_lead_id)
    return MonitoringResponse.model_validate(record)


@router.patch("/data/by-lead/{crm_lead_id}", response_model=MonitoringResponse)
async def update_monitoring_by_lead(
    crm_lead_id: UUID,
    payload: MonitoringUpdateRequest,
    _: AuthContext = Depends(require_monitoring_write),
    session: AsyncSession = Depends(get_db_session),
) -> MonitoringResponse:
    record = await _build_service(session).update_by_crm_lead(
        crm_lead_id,
        **payload.model_dump(exclude_unset=True),
    )
    await session.commit()
    return MonitoringResponse.model_validate(record)


@router.get("/data/{record_id}", response_model=MonitoringResponse)
async def get_monitoring_data(
    record_id: UUID,
    _: AuthContext = Depends(require_monitoring_read),
    session: AsyncSession = Depends(get_db_session),
) -> MonitoringResponse:
    record = await _build_service(session).get(record_id)
    return MonitoringResponse.model_validate(record)


@router.patch("/data/{record_id}", response_model=MonitoringResponse)
async def update_monitoring_data(
    record_id: UUID,
    payload: MonitoringUpdateRequest,
    _: AuthContext = Depends(require_monitoring_write),
    session: AsyncSession = Depends(get_db_session),
) -> MonitoringResponse:
    record = await _build_service(session).update(record_id, **payload.model_dump(exclude_unset=True))
    await session.commit()
    return MonitoringResponse.model_validate(record)


@router.delete("/data/{record_id}", response_model=MessageResponse)
async def delete_monitoring_data(
    record_id: UUID,
    _: AuthContext = Depends(require_monitoring_write),
    session: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await _build_service(session).delete(record_id)
    await session.commit()
    return MessageResponse(message="Monitoring data deleted successfully")
