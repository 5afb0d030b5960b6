from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import HTTPException, status

from src.core.repositories.base import Page
from src.core.repositories.crm_leads import CrmLeadRepository
from src.core.repositories.monitoring import MonitoringDataRepository, MonitoringFilters
from src.models.monitoring import MonitoringData

logger = logging.getLogger(__name__)


class MonitoringService:
    def __init__(self, records: MonitoringDataRepository, leads: CrmLeadRepository) -> None:
        self.records = records
        self.leads = leads

    @staticmethod
    def _not_found() -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Monitoring data not found",
        )

    async def create(self, *, crm_lead_id: UUID, **values: object) -> MonitoringData:
        if await self.leads.get(crm_lead_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="CRM lead not found",
            )
        record = await self.records.create(
            crm_lead_id=crm_lead_id,
            last_update=datetime.now(timezone.utc),
            **values,
        )
        logger.info("Created monitoring data %s for lead %s", record.id, crm_lead_id)
        return record

    async def get(self, record_id: UUID) -> MonitoringData:
        record = await self.records.get(record_id)
        if record is None:
            raise self._not_found()
        return record

    async def get_by_crm_lead(self, crm_lead_id: UUID) -> MonitoringData:
        record = await self.records.get_by_crm_lead_id(crm_lead_id)
        if record is None:
            raise self._not_found()
        return record

    async def update(self, record_id: UUID, **values: object) -> MonitoringData:
        record = await self.get(record_id)
        values["last_update"] = datetime.now(timezone.utc)
        updated = await self.records.update(record.id, **values)
        return updated or record

    async def update_by_crm_lead(self, crm_lead_id: UUID, **values: object) -> MonitoringData:
        record = await self.get_by_crm_lead(crm_lead_id)
        return await self.update(record.id, **values)

    async def delete(self, record_id: UUID) -> None:
        record = await self.get(record_id)
        await self.records.delete(record.id)

    async def list(self, filters: MonitoringFilters, *, page: int = 1, limit: int = 50) -> Page[MonitoringData]:
        return await self.records.list_data(filters, page=page, limit=limit)

    async def stats(self) -> dict[str, object]:
        return await self.records.stats()
