from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.crm_lead import JourneyStep, LeadCustomerType, LeadStatus, ProductService, StepStatus
from src.schemas.common import EMAIL_PATTERN, RequestModel, reject_null


class LeadCreateRequest(RequestModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    phone: str | None = Field(default=None, max_length=32)
    company: str | None = Field(default=None, max_length=255)
    status: LeadStatus = LeadStatus.LEAD.value
    score: int = Field(default=0, ge=0, le=100)
    assignee: str | None = Field(default=None, max_length=255)
    product_service: ProductService = ProductService.SOLAR_PANELS.value
    customer_type: LeadCustomerType = LeadCustomerType.UNKNOWN.value
    notes: str | None = None


class LeadUpdateRequest(RequestModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN, max_length=320)
    phone: str | None = Field(default=None, max_length=32)
    company: str | None = Field(default=None, max_length=255)
    status: LeadStatus | None = None
    score: int | None = Field(default=None, ge=0, le=100)
    assignee: str | None = Field(default=None, max_length=255)
    product_service: ProductService | None = None
    customer_type: LeadCustomerType | None = None
    notes: str | None = None

    _required = reject_null("name", "email", "status", "score", "product_service", "customer_type")


class JourneyStepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    crm_lead_id: UUID
    step: str
    status: str
    notes: str | None = None
    scheduled_at: datetime | None = None
    completed_at: datetime | None = None
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime


class LeadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    phone: str | None = None
    company: str | None = None
    status: str
    score: int
    assignee: str | None = None
    product_service: str
    customer_type: str
    notes: str | None = None
    created_by: UUID | None = None
    last_activity: datetime
    created_at: datetime
    updated_at: datetime


class LeadDetailResponse(LeadResponse):
    journey_steps: list[JourneyStepResponse] = Field(default_factory=list)


class LeadListResponse(BaseModel):
    leads: list[LeadResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class LeadStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    by_assignee: dict[str, int]
    avg_score: float
    recent_activity: int


class JourneyStepCreateRequest(RequestModel):
    step: JourneyStep
    status: StepStatus
    notes: str | None = None
    scheduled_at: datetime | None = None


class JourneyStepUpdateRequest(RequestModel):
    step: JourneyStep | None = None
    status: StepStatus | None = None
    notes: str | None = None
    scheduled_at: datetime | None = None

    _required = reject_null("step", "status")
