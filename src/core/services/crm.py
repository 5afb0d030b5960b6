from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import HTTPException, status

from src.core.repositories.base import Page
from src.core.repositories.crm_leads import CrmLeadRepository, JourneyStepRepository, LeadFilters
from src.models.crm_lead import CrmLead, JourneyStep, StepStatus, UserJourneyStep

logger = logging.getLogger(__name__)

INITIAL_STEP_NOTES = "Lead created in system"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CrmLeadService:
    def __init__(self, leads: CrmLeadRepository, steps: JourneyStepRepository) -> None:
        self.leads = leads
        self.steps = steps

    async def _require_lead(self, lead_id: UUID) -> CrmLead:
        lead = await self.leads.get(lead_id)
        if lead is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="CRM lead not found",
            )
        return lead

    async def create_lead(self, *, created_by: UUID | None, **values: object) -> CrmLead:
        now = _now()
        lead = await self.leads.create(created_by=created_by, last_activity=now, **values)
        await self.steps.create(
            crm_lead_id=lead.id,
            step=JourneyStep.INITIAL_CONTACT.value,
            status=StepStatus.COMPLETED.value,
            completed_at=now,
            notes=INITIAL_STEP_NOTES,
            created_by=created_by,
        )
        logger.info("Created CRM lead %s", lead.id)
        return lead

    async def get_lead(self, lead_id: UUID) -> tuple[CrmLead, list[UserJourneyStep]]:
        lead = await self._require_lead(lead_id)
        return lead, await self.steps.list_for_lead(lead.id)

    async def update_lead(self, lead_id: UUID, **values: object) -> CrmLead:
        lead = await self._require_lead(lead_id)
        new_status = values.get("status")
        if new_status is not None and new_status != lead.status:
            values["last_activity"] = _now()

        updated = await self.leads.update(lead.id, **values)
        if updated is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="CRM lead not found",
            )
        return updated

    async def delete_lead(self, lead_id: UUID) -> None:
        lead = await self._require_lead(lead_id)
        await self.steps.delete_for_lead(lead.id)
        await self.leads.delete(lead.id)
        logger.info("Deleted CRM lead %s", lead.id)

    async def list_leads(
        self,
        filters: LeadFilters,
        *,
        page: int = 1,
        limit: int = 50,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Page[CrmLead]:
        return await self.leads.list_leads(
            filters,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )

    async def stats(self) -> dict[str, object]:
        return await self.leads.stats()

    async def _touch(self, lead: CrmLead) -> None:
        await self.leads.update(lead.id, last_activity=_now())

    async def add_journey_step(
        self,
        lead_id: UUID,
        *,
        step: str,
        step_status: str,
        notes: str | None = None,
        scheduled_at: datetime | None = None,
        created_by: UUID | None = None,
    ) -> UserJourneyStep:
        lead = await self._require_lead(lead_id)
        journey_step = await self.steps.create(
            crm_lead_id=lead.id,
            step=step,
            status=step_status,
            notes=notes,
            scheduled_at=scheduled_at,
            completed_at=_now() if step_status == StepStatus.COMPLETED.value else None,
            created_by=created_by,
        )
        await self._touch(lead)
        return journey_step

    async def _require_step(self, lead_id: UUID, step_id: UUID) -> UserJourneyStep:
        journey_step = await self.steps.get_for_lead(lead_id, step_id)
        if journey_step is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Journey step not found for this lead",
            )
        return journey_step

    async def update_journey_step(self, lead_id: UUID, step_id: UUID, **values: object) -> UserJourneyStep:
        lead = await self._require_lead(lead_id)
        journey_step = await self._require_step(lead.id, step_id)

        new_status = values.get("status")
        if new_status is not None:
            if new_status == StepStatus.COMPLETED.value:
                if journey_step.status != StepStatus.COMPLETED.value:
                    values["completed_at"] = _now()
            else:
                values["completed_at"] = None

        updated = await self.steps.update(journey_step.id, **values)
        await self._touch(lead)
        return updated or journey_step

    async def delete_journey_step(self, lead_id: UUID, step_id: UUID) -> None:
        lead = await self._require_lead(lead_id)
        journey_step = await self._require_step(lead.id, step_id)
        await self.steps.delete(journey_step.id)
        await self._touch(lead)
