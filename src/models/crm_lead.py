from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import TenantScopedBase, utcnow


class LeadStatus(str, enum.Enum):
    LEAD = "LEAD"
    CONTACTED = "CONTACTED"
    QUALIFIED = "QUALIFIED"
    PROPOSAL_SENT = "PROPOSAL_SENT"
    NEGOTIATION = "NEGOTIATION"
    CLOSED_WON = "CLOSED_WON"
    CLOSED_LOST = "CLOSED_LOST"
    ON_HOLD = "ON_HOLD"


class ProductService(str, enum.Enum):
    SOLAR_PANELS = "SOLAR_PANELS"
    SOLAR_WATER_HEATER = "SOLAR_WATER_HEATER"
    BATTERY_STORAGE = "BATTERY_STORAGE"
    EV_CHARGING = "EV_CHARGING"
    ENERGY_AUDIT = "ENERGY_AUDIT"
    MAINTENANCE = "MAINTENANCE"
    CONSULTING = "CONSULTING"


class LeadCustomerType(str, enum.Enum):
    OWNER = "OWNER"
    LEASE = "LEASE"
    UNKNOWN = "UNKNOWN"


class JourneyStep(str, enum.Enum):
    INITIAL_CONTACT = "INITIAL_CONTACT"
    SITE_VISIT_SCHEDULED = "SITE_VISIT_SCHEDULED"
    SITE_VISIT_COMPLETED = "SITE_VISIT_COMPLETED"
    PROPOSAL_CREATED = "PROPOSAL_CREATED"
    PROPOSAL_SENT = "PROPOSAL_SENT"
    CONTRACT_SIGNED = "CONTRACT_SIGNED"
    INSTALLATION_SCHEDULED = "INSTALLATION_SCHEDULED"
    INSTALLATION_COMPLETED = "INSTALLATION_COMPLETED"
    SYSTEM_ACTIVATED = "SYSTEM_ACTIVATED"
    FOLLOW_UP_SCHEDULED = "FOLLOW_UP_SCHEDULED"


class StepStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


class CrmLead(TenantScopedBase):
    __tablename__ = "crm_leads"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=LeadStatus.LEAD.value, index=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    assignee: Mapped[str | None] = mapped_column(String(255), nullable=True)
    product_service: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ProductService.SOLAR_PANELS.value
    )
    customer_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=LeadCustomerType.UNKNOWN.value
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True)
    last_activity: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class UserJourneyStep(TenantScopedBase):
    __tablename__ = "user_journey_steps"

    crm_lead_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("crm_leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step: Mapped[str] = mapped_column(String(40), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=StepStatus.PENDING.value)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True)
