from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.user import UserRole
from src.schemas.common import EMAIL_PATTERN, RequestModel


class InvitationCreateRequest(RequestModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    role: UserRole = UserRole.VIEWER.value


class InvitationAcceptRequest(BaseModel):
    token: str = ""
    name: str = ""
    password: str = ""


class InvitationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: str
    status: str
    expires_at: datetime
    invited_by_id: UUID
    accepted_at: datetime | None = None
    created_at: datetime


class InvitationSentResponse(BaseModel):
    invitation: InvitationResponse
    email_sent: bool


class InvitationValidationResponse(BaseModel):
    status: str
    email: str
    role: str
    tenant_name: str | None = None
    expires_at: datetime


class InvitationAcceptResponse(BaseModel):
    success: bool = True
    message: str = "Account created successfully"
    access_token: str
    token_type: str = "bearer"
    user_id: UUID
    tenant_id: UUID
    tenant_name: str | None = None
    role: str
