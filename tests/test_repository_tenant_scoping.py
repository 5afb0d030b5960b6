from __future__ import annotations

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from src.core.context import reset_current_tenant_id, set_current_tenant_id
from src.core.repositories.base import Page, TenantContextMissingError, TenantRepository
from src.models.crm_lead import CrmLead


def _sql(stmt) -> str:  # noqa: ANN001
    return str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


def test_tenant_id_missing_raises() -> None:
    repo = TenantRepository(session=Mock(), model=CrmLead)

    with pytest.raises(TenantContextMissingError):
        _ = repo.tenant_id


def test_scoped_select_contains_tenant_filter() -> None:
    tenant_id = uuid4()
    token = set_current_tenant_id(tenant_id)
    try:
        repo = TenantRepository(session=Mock(), model=CrmLead)
        sql = _sql(repo._scoped_select())

        assert "WHERE" in sql
        assert "crm_leads.tenant_id" in sql
        assert str(tenant_id) in sql
    finally:
        reset_current_tenant_id(token)


@pytest.mark.asyncio
async def test_create_injects_tenant_id() -> None:
    tenant_id = uuid4()
    token = set_current_tenant_id(tenant_id)
    try:
        session = Mock()
        session.add = Mock()
        session.flush = AsyncMock()
        session.refresh = AsyncMock()

        repo = TenantRepository(session=session, model=CrmLead)
        repo._apply_rls = AsyncMock()

        created = await repo.create(name="Ana Lopez", email="ana@example.com")

        assert created.tenant_id == tenant_id
        session.add.assert_called_once_with(created)
        session.flush.assert_awaited_once()
        session.refresh.assert_awaited_once_with(created)
    finally:
        reset_current_tenant_id(token)


@pytest.mark.asyncio
async def test_create_ignores_foreign_tenant_only_when_missing() -> None:
    tenant_id = uuid4()
    token = set_current_tenant_id(tenant_id)
    try:
        session = Mock()
        session.flush = AsyncMock()
        session.refresh = AsyncMock()
        repo = TenantRepository(session=session, model=CrmLead)
        repo._apply_rls = AsyncMock()

        explicit = uuid4()
        created = await repo.create(tenant_id=explicit, name="Invited", email="i@example.com")
        assert created.tenant_id == explicit
    finally:
        reset_current_tenant_id(token)


def test_page_total_pages() -> None:
    assert Page(items=[], total=0, page=1, limit=20).total_pages == 0
    assert Page(items=[], total=41, page=1, limit=20).total_pages == 3
    assert Page(items=[], total=40, page=2, limit=20).total_pages == 2
    assert Page(items=[], total=5, page=1, limit=0).total_pages == 0
