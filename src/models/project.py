from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, Float, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import TenantScopedBase


class ProjectStatus(str, enum.Enum):
    PLANNING = "PLANNING"
    PROPOSAL_SENT = "PROPOSAL_SENT"
    APPROVED = "APPROVED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class EnphaseStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    ERROR = "ERROR"
    DISABLED = "DISABLED"
    SYNCING = "SYNCING"


class ImageCategory(str, enum.Enum):
    SITE_PHOTO = "site_photo"
    BLUEPRINT = "blueprint"
    DOCUMENT = "document"
    INSTALLATION = "installation"
    COMPLETION = "completion"
    MILESTONE = "milestone"
    OTHER = "other"


class Project(TenantScopedBase):
    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ProjectStatus.PLANNING.value, index=True)
    estimated_kw: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    estimated_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_by_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)
    crm_lead_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("crm_leads.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
    )
    address: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    enphase_system_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    enphase_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    enphase_last_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    enphase_api_key: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    enphase_enabled: Mapped[bool] = mapped_column(nullable=False, default=False)
    enphase_jwt_token: Mapped[str | None] = mapped_column(String(4096), nullable=True)
    enphase_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ProjectImage(TenantScopedBase):
    __tablename__ = "project_images"

    project_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(512), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(128), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default=ImageCategory.OTHER.value)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    uploaded_by_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False)
