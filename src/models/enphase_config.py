from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import TenantScopedBase


class EnphaseConfigStatus(str, enum.Enum):
    AUTHORIZED = "AUTHORIZED"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"
    ERROR = "ERROR"


class EnphaseConfig(TenantScopedBase):
    __tablename__ = "enphase_configs"
    __table_args__ = (UniqueConstraint("tenant_id", name="uq_enphase_configs_tenant"),)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=EnphaseConfigStatus.AUTHORIZED.value)
    access_token_encrypted: Mapped[str | None] = mapped_column(String(4096), nullable=True)
    refresh_token_encrypted: Mapped[str | None] = mapped_column(String(4096), nullable=True)
    token_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_refresh_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    authorized_by_id: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True)
    available_systems: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
