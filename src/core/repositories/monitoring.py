from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import Page, TenantRepository
from src.models.monitoring import AlertLevel, MonitoringData


@dataclass(slots=True)
class MonitoringFilters:
    customer_type: str | None = None
    equipment_status: str | None = None
    alert_level: str | None = None
    crm_lead_id: UUID | None = None
    search: str | None = None


class MonitoringDataRepository(TenantRepository[MonitoringData]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=MonitoringData)

    async def get_by_crm_lead_id(self, crm_lead_id: UUID) -> MonitoringData | None:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select()
            .where(MonitoringData.crm_lead_id == crm_lead_id)
            .order_by(MonitoringData.last_update.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_data(
        self,
        filters: MonitoringFilters,
        *,
        page: int = 1,
        limit: int = 50,
    ) -> Page[MonitoringData]:
        await self._apply_rls()
        stmt = self._scoped_select()
        if filters.customer_type:
            stmt = stmt.where(MonitoringData.customer_type == filters.customer_type)
        if filters.equipment_status:
            stmt = stmt.where(MonitoringData.equipment_status == filters.equipment_status)
        if filters.alert_level:
            stmt = stmt.where(MonitoringData.alert_level == filters.alert_level)
        if filters.crm_lead_id:
            stmt = stmt.where(MonitoringData.crm_lead_id == filters.crm_lead_id)
        if filters.search:
            stmt = stmt.where(MonitoringData.address.ilike(f"%{filters.search.strip()}%"))
        return await self._paginate(stmt.order_by(MonitoringData.last_update.desc()), page=page, limit=limit)

    async def _grouped_counts(self, column) -> dict[str, int]:  # noqa: ANN001
        result = await self.session.execute(
            select(column, func.count(MonitoringData.id))
            .where(MonitoringData.tenant_id == self.tenant_id)
            .group_by(column)
        )
        return {key: count for key, count in result.all()}

    async def stats(self) -> dict[str, object]:
        await self._apply_rls()
        scope = MonitoringData.tenant_id == self.tenant_id

        total = int(await self.session.scalar(select(func.count(MonitoringData.id)).where(scope)) or 0)
        total_peak = await self.session.scalar(select(func.sum(MonitoringData.peak_kwp)).where(scope))
        avg_energy = await self.session.scalar(select(func.avg(MonitoringData.energy_today_kwh)).where(scope))
        alerts = int(
            await self.session.scalar(
                select(func.count(MonitoringData.id)).where(
                    scope,
                    MonitoringData.alert_level.in_([AlertLevel.WARNING.value, AlertLevel.CRITICAL.value]),
                )
            )
            or 0
        )

        return {
            "total": total,
            "by_customer_type": await self._grouped_counts(MonitoringData.customer_type),
            "by_equipment_status": await self._grouped_counts(MonitoringData.equipment_status),
            "by_alert_level": await self._grouped_counts(MonitoringData.alert_level),
            "total_peak_kwp": round(float(total_peak or 0), 2),
            "avg_energy_today": round(float(avg_energy or 0), 2),
            "alerts_count": alerts,
        }
