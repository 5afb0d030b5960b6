from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.common import EMAIL_PATTERN, RequestModel


class CompanyUpdateRequest(RequestModel):
    name: str = Field(min_length=2, max_length=255)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN, max_length=320)
    phone: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=255)
    website: str | None = Field(default=None, pattern=r"^https?://[^\s/$.?#][^\s]*$", max_length=255)
    tax_id: str | None = Field(default=None, max_length=64)
    description: str | None = None


class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    website: str | None = None
    tax_id: str | None = None
    description: str | None = None
    updated_at: datetime
