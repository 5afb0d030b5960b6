from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import TenantScopedBase


class NotificationType(str, enum.Enum):
    TICKET_CREATED = "TICKET_CREATED"
    TICKET_ASSIGNED = "TICKET_ASSIGNED"
    TICKET_RESPONSE = "TICKET_RESPONSE"
    TICKET_STATUS_CHANGED = "TICKET_STATUS_CHANGED"
    PROPOSAL_SENT = "PROPOSAL_SENT"
    INSTALLATION_SCHEDULED = "INSTALLATION_SCHEDULED"
    MAINTENANCE_REMINDER = "MAINTENANCE_REMINDER"
    PROJECT_REQUEST_CREATED = "PROJECT_REQUEST_CREATED"
    PROJECT_REQUEST_ASSIGNED = "PROJECT_REQUEST_ASSIGNED"
    PROJECT_REQUEST_APPROVED = "PROJECT_REQUEST_APPROVED"
    PROJECT_REQUEST_REJECTED = "PROJECT_REQUEST_REJECTED"


class Notification(TenantScopedBase):
    __tablename__ = "notifications"

    user_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    is_read: Mapped[bool] = mapped_column(nullable=False, default=False, index=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
