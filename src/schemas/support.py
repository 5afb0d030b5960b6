from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.support import TicketCategory, TicketPriority, TicketStatus
from src.schemas.common import RequestModel


class TicketCreateRequest(RequestModel):
    subject: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    priority: TicketPriority = TicketPriority.MEDIUM.value
    category: TicketCategory = TicketCategory.OTHER.value


class TicketAssignRequest(BaseModel):
    technician_id: UUID


class TicketStatusUpdateRequest(RequestModel):
    status: TicketStatus


class TicketCategoryUpdateRequest(RequestModel):
    category: TicketCategory


class TicketResponseCreateRequest(BaseModel):
    content: str = Field(min_length=1)
    is_internal: bool = False


class TicketReplyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    ticket_id: UUID
    user_id: UUID
    content: str
    is_internal: bool
    created_at: datetime


class SupportTicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    subject: str
    description: str
    status: str
    priority: str
    category: str
    created_by_id: UUID
    assigned_to_id: UUID | None = None
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class TicketDetailResponse(SupportTicketResponse):
    responses: list[TicketReplyResponse] = Field(default_factory=list)


class TicketStatsResponse(BaseModel):
    total: int
    open: int
    in_progress: int
    resolved: int
    closed: int
    urgent: int
    my_assigned: int
