from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import TenantScopedBase, utcnow


class MonitoringCustomerType(str, enum.Enum):
    RESIDENTIAL = "RESIDENTIAL"
    COMMERCIAL = "COMMERCIAL"
    FARM = "FARM"


class EquipmentStatus(str, enum.Enum):
    ONLINE = "ONLINE"
    WARNING = "WARNING"
    OFFLINE = "OFFLINE"
    MAINTENANCE = "MAINTENANCE"


class AlertLevel(str, enum.Enum):
    NORMAL = "NORMAL"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class MonitoringData(TenantScopedBase):
    __tablename__ = "monitoring_data"

    crm_lead_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("crm_leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=MonitoringCustomerType.RESIDENTIAL.value
    )
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    peak_kwp: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    energy_today_kwh: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    equipment_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=EquipmentStatus.ONLINE.value
    )
    alert_level: Mapped[str] = mapped_column(String(16), nullable=False, default=AlertLevel.NORMAL.value)

    microinverter_brand: Mapped[str | None] = mapped_column(String(64), nullable=True)
    microinverter_model: Mapped[str | None] = mapped_column(String(64), nullable=True)
    microinverter_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    microinverter_serial: Mapped[str | None] = mapped_column(String(128), nullable=True)

    enphase_system_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    enphase_site_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    current_power_w: Mapped[float | None] = mapped_column(Float, nullable=True)
    lifetime_energy_kwh: Mapped[float | None] = mapped_column(Float, nullable=True)

    last_update: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
