from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.monitoring import AlertLevel, EquipmentStatus, MonitoringCustomerType
from src.schemas.common import RequestModel, reject_null


class MonitoringFields(RequestModel):
    customer_type: MonitoringCustomerType | None = None
    address: str | None = Field(default=None, min_length=1, max_length=255)
    peak_kwp: float | None = Field(default=None, ge=0)
    energy_today_kwh: float | None = Field(default=None, ge=0)
    equipment_status: EquipmentStatus | None = None
    alert_level: AlertLevel | None = None
    microinverter_brand: str | None = Field(default=None, max_length=64)
    microinverter_model: str | None = Field(default=None, max_length=64)
    microinverter_count: int | None = Field(default=None, ge=0)
    microinverter_serial: str | None = Field(default=None, max_length=128)
    enphase_system_id: str | None = Field(default=None, max_length=64)
    enphase_site_id: str | None = Field(default=None, max_length=64)
    current_power_w: float | None = None
    lifetime_energy_kwh: float | None = Field(default=None, ge=0)
    last_sync_at: datetime | None = None


class MonitoringCreateRequest(MonitoringFields):
    crm_lead_id: UUID
    customer_type: MonitoringCustomerType = MonitoringCustomerType.RESIDENTIAL.value
    address: str = Field(min_length=1, max_length=255)
    peak_kwp: float = Field(default=0, ge=0)
    energy_today_kwh: float = Field(default=0, ge=0)
    equipment_status: EquipmentStatus = EquipmentStatus.ONLINE.value
    alert_level: AlertLevel = AlertLevel.NORMAL.value


class MonitoringUpdateRequest(MonitoringFields):
    _required = reject_null(
        "customer_type", "address", "peak_kwp", "energy_today_kwh", "equipment_status", "alert_level"
    )


class MonitoringResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    crm_lead_id: UUID
    customer_type: str
    address: str
    peak_kwp: float
    energy_today_kwh: float
    equipment_status: str
    alert_level: str
    microinverter_brand: str | None = None
    microinverter_model: str | None = None
    microinverter_count: int | None = None
    microinverter_serial: str | None = None
    enphase_system_id: str | None = None
    enphase_site_id: str | None = None
    current_power_w: float | None = None
    lifetime_energy_kwh: float | None = None
    last_update: datetime
    last_sync_at: datetime | None = None
    created_at: datetime


class MonitoringListResponse(BaseModel):
    data: list[MonitoringResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class MonitoringStatsResponse(BaseModel):
    total: int
    by_customer_type: dict[str, int]
    by_equipment_status: dict[str, int]
    by_alert_level: dict[str, int]
    total_peak_kwp: float
    avg_energy_today: float
    alerts_count: int
