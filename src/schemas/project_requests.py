from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.project_request import (
    ProjectRequestPriority,
    ProjectRequestStatus,
    PropertyType,
    ServiceType,
)
from src.schemas.common import EMAIL_PATTERN, RequestModel


class ProjectRequestCreateRequest(RequestModel):
    service_type: ServiceType
    priority: ProjectRequestPriority = ProjectRequestPriority.NORMAL.value
    client_name: str = Field(min_length=2, max_length=255)
    client_email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    client_phone: str = Field(min_length=10, max_length=32)
    company_name: str | None = Field(default=None, max_length=255)
    address: str = Field(min_length=5, max_length=255)
    address2: str | None = Field(default=None, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    zip_code: str = Field(min_length=1, max_length=20)
    country: str = Field(min_length=1, max_length=100)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    title: str = Field(min_length=5, max_length=255)
    description: str = Field(min_length=20)
    estimated_budget: Decimal | None = Field(default=None, ge=0)
    estimated_size: float | None = Field(default=None, ge=0)
    preferred_timeline: str | None = Field(default=None, max_length=255)
    property_type: PropertyType
    roof_type: str | None = Field(default=None, max_length=64)


class ProjectRequestAssignRequest(BaseModel):
    assigned_to_id: UUID


class ProjectRequestStatusUpdateRequest(RequestModel):
    status: ProjectRequestStatus
    rejection_reason: str | None = None
    admin_notes: str | None = None
    converted_to_project_id: UUID | None = None


class ProjectRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    service_type: str
    status: str
    priority: str
    client_name: str
    client_email: str
    client_phone: str
    company_name: str | None = None
    address: str
    address2: str | None = None
    city: str
    state: str
    zip_code: str
    country: str
    latitude: float | None = None
    longitude: float | None = None
    title: str
    description: str
    estimated_budget: Decimal | None = None
    estimated_size: float | None = None
    preferred_timeline: str | None = None
    property_type: str
    roof_type: str | None = None
    created_by_id: UUID
    assigned_to_id: UUID | None = None
    assigned_at: datetime | None = None
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    admin_notes: str | None = None
    converted_to_project_id: UUID | None = None
    converted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ProjectRequestListResponse(BaseModel):
    requests: list[ProjectRequestResponse]
    total: int
    page: int
    limit: int
    total_pages: int
