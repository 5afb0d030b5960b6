from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.enphase_config import EnphaseConfigStatus
from src.schemas.common import RequestModel


class AuthorizeUrlResponse(BaseModel):
    authorization_url: str
    state: str


class OAuthCallbackRequest(BaseModel):
    code: str = Field(min_length=1)
    state: str = Field(min_length=1)


class EnphaseStatusResponse(BaseModel):
    status: str
    token_expires_at: datetime | None = None
    last_refresh_at: datetime | None = None
    available_systems: list[str] = Field(default_factory=list)


class ValidateSystemRequest(BaseModel):
    system_id: str = ""


class SystemSummaryResponse(BaseModel):
    system_id: str
    system_name: str
    status: str
    last_reported_at: datetime | None = None
    peak_power_w: float | None = None
    current_power_w: float | None = None
    energy_today_kwh: float
    energy_lifetime_kwh: float
    modules: int | None = None
    timezone: str | None = None


class SystemsResponse(BaseModel):
    tenant_id: UUID
    available_systems: list[str]


class SystemsReplaceRequest(BaseModel):
    tenant_id: UUID
    available_systems: list[str]


class SystemModifyRequest(BaseModel):
    tenant_id: UUID
    system_id: str = Field(min_length=1, max_length=64)
    action: Literal["add", "remove"]


class EnphaseConfigUpsertRequest(RequestModel):
    status: EnphaseConfigStatus | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    token_expires_at: datetime | None = None
    authorized_by_id: UUID | None = None
    available_systems: list[str] | None = None


class EnphaseConfigResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    status: str
    token_expires_at: datetime | None = None
    last_refresh_at: datetime | None = None
    authorized_by_id: UUID | None = None
    available_systems: list[str] = Field(default_factory=list)
    updated_at: datetime
