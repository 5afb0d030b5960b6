from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.project import EnphaseStatus, ImageCategory, ProjectStatus
from src.schemas.common import EMAIL_PATTERN, RequestModel, reject_null

PHONE_PATTERN = r"^[\d\s\-\+\(\)]+$"
NAME_PATTERN = r"^[a-zA-Z0-9\s'\-.,]+$"


def _check_address(value: str | None) -> str | None:
    if value is None:
        return value
    if not re.search(r"\d", value) or not re.search(r"[A-Za-z]", value):
        raise ValueError("Please enter a valid street address (e.g., \"123 Main St, City, State\")")
    return value


class ProjectCreateRequest(RequestModel):
    name: str = Field(min_length=3, max_length=200, pattern=NAME_PATTERN)
    description: str | None = Field(default=None, max_length=1000)
    status: ProjectStatus = ProjectStatus.PLANNING.value
    estimated_kw: Decimal = Field(ge=Decimal("0.1"), le=10000)
    estimated_price: Decimal = Field(ge=100, le=10_000_000)
    customer_id: UUID | None = None
    crm_lead_id: UUID | None = None
    address: str | None = Field(default=None, min_length=5, max_length=200)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN, max_length=100)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN, max_length=20)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    enphase_system_id: str | None = Field(default=None, max_length=64)
    enphase_enabled: bool = False

    _address = field_validator("address")(_check_address)


class ProjectUpdateRequest(RequestModel):
    name: str | None = Field(default=None, min_length=3, max_length=200, pattern=NAME_PATTERN)
    description: str | None = Field(default=None, max_length=1000)
    status: ProjectStatus | None = None
    estimated_kw: Decimal | None = Field(default=None, ge=Decimal("0.1"), le=10000)
    estimated_price: Decimal | None = Field(default=None, ge=100, le=10_000_000)
    customer_id: UUID | None = None
    crm_lead_id: UUID | None = None
    address: str | None = Field(default=None, min_length=5, max_length=200)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN, max_length=100)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN, max_length=20)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    enphase_system_id: str | None = Field(default=None, max_length=64)
    enphase_status: EnphaseStatus | None = None
    enphase_enabled: bool | None = None

    _address = field_validator("address")(_check_address)
    _required = reject_null("name", "status", "estimated_kw", "estimated_price", "enphase_enabled")


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    status: str
    estimated_kw: Decimal
    estimated_price: Decimal
    customer_id: UUID | None = None
    created_by_id: UUID
    crm_lead_id: UUID | None = None
    address: str | None = None
    email: str | None = None
    phone: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    enphase_system_id: str | None = None
    enphase_status: str | None = None
    enphase_last_sync: datetime | None = None
    enphase_enabled: bool = False
    created_at: datetime
    updated_at: datetime


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class LeadProjectResponse(BaseModel):
    success: bool = True
    data: ProjectResponse | None
    message: str


class ProjectImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    filename: str
    original_name: str
    url: str
    mime_type: str
    size: int
    category: str
    title: str | None = None
    description: str | None = None
    order: int
    uploaded_by_id: UUID
    created_at: datetime


class ProjectImageListResponse(BaseModel):
    images: list[ProjectImageResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class ProjectImageUpdateRequest(RequestModel):
    title: str | None = Field(default=None, max_length=255)
    description: str | None = None
    category: ImageCategory | None = None

    _required = reject_null("category")


class ImageOrder(BaseModel):
    id: UUID
    order: int = Field(ge=0)


class ImageReorderRequest(BaseModel):
    image_orders: list[ImageOrder] = Field(min_length=1)
