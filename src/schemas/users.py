from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.user import UserRole, UserStatus
from src.schemas.common import RequestModel, reject_null


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    name: str
    email: str
    phone: str | None = None
    role: str
    status: str
    permissions: list[str] = Field(default_factory=list)
    last_login: datetime | None = None
    created_at: datetime


class UserUpdateRequest(RequestModel):
    name: str | None = Field(default=None, min_length=2, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    role: UserRole | None = None
    status: UserStatus | None = None
    permissions: list[str] | None = None

    _required = reject_null("name", "role", "status", "permissions")


class UserRoleUpdateRequest(RequestModel):
    role: UserRole
