from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from src.core.context import reset_current_tenant_id, set_current_tenant_id
from src.core.db import apply_rls_tenant_context, get_db_session, ping_database
from src.core.repositories import (
    CrmLeadRepository,
    CustomerRepository,
    InvitationRepository,
    JourneyStepRepository,
    NotificationRepository,
    ProjectRepository,
    SupportTicketRepository,
    TenantAccountRepository,
    TenantRepository,
    UserRepository,
)
from src.models.crm_lead import CrmLead


@pytest.mark.asyncio
async def test_apply_rls_tenant_context_executes_sql() -> None:
    session = Mock()
    session.execute = AsyncMock()

    tenant_id = uuid4()
    await apply_rls_tenant_context(session, tenant_id)

    session.execute.assert_awaited_once()
    assert session.execute.await_args.args[1] == {"tenant_id": str(tenant_id)}


@pytest.mark.asyncio
async def test_ping_database_reports_failures() -> None:
    healthy = Mock()
    healthy.execute = AsyncMock()
    assert await ping_database(healthy) is True

    broken = Mock()
    broken.execute = AsyncMock(side_effect=RuntimeError("connection refused"))
    assert await ping_database(broken) is False


@pytest.mark.asyncio
async def test_get_db_session_yields_session(monkeypatch: pytest.MonkeyPatch) -> None:
    sentinel = object()

    class _Ctx:
        async def __aenter__(self):
            return sentinel

        async def __aexit__(self, exc_type, exc, tb):  # noqa: ANN001
            return None

    from src.core import db

    monkeypatch.setattr(db, "AsyncSessionLocal", lambda: _Ctx())

    agen = get_db_session()
    value = await agen.__anext__()
    assert value is sentinel

    with pytest.raises(StopAsyncIteration):
        await agen.__anext__()


@pytest.mark.asyncio
async def test_tenant_repository_get_list_update_delete() -> None:
    tenant_id = uuid4()
    token = set_current_tenant_id(tenant_id)
    try:
        entity = CrmLead(
            id=uuid4(),
            tenant_id=tenant_id,
            name="Lead One",
            email="one@example.com",
            status="LEAD",
            score=10,
        )

        execute_values = [
            SimpleNamespace(scalar_one_or_none=lambda: entity),
            SimpleNamespace(scalars=lambda: SimpleNamespace(all=lambda: [entity])),
            SimpleNamespace(scalar_one_or_none=lambda: entity),
            SimpleNamespace(rowcount=1),
        ]

        async def _execute(_stmt):  # noqa: ANN001
            return execute_values.pop(0)

        session = Mock()
        session.execute = AsyncMock(side_effect=_execute)
        session.flush = AsyncMock()
        session.refresh = AsyncMock()

        repo = TenantRepository(session=session, model=CrmLead)
        repo._apply_rls = AsyncMock()

        got = await repo.get(entity.id)
        listed = await repo.list(limit=10, offset=0)
        updated = await repo.update(entity.id, status="CONTACTED", id=uuid4(), tenant_id=uuid4())
        deleted = await repo.delete(entity.id)

        assert got is entity
        assert listed == [entity]
        assert updated is entity
        assert entity.status == "CONTACTED"
        assert entity.tenant_id == tenant_id
        assert deleted is True
    finally:
        reset_current_tenant_id(token)


@pytest.mark.asyncio
async def test_find_existing_emails_normalizes_and_short_circuits() -> None:
    tenant_id = uuid4()
    token = set_current_tenant_id(tenant_id)
    try:
        session = Mock()
        session.execute = AsyncMock(
            return_value=SimpleNamespace(scalars=lambda: SimpleNamespace(all=lambda: ["dup@example.com"]))
        )
        repo = CrmLeadRepository(session)
        repo._apply_rls = AsyncMock()

        assert await repo.find_existing_emails([]) == set()
        session.execute.assert_not_awaited()

        found = await repo.find_existing_emails([" Dup@Example.com ", "new@example.com"])
        assert found == {"dup@example.com"}
        session.execute.assert_awaited_once()
    finally:
        reset_current_tenant_id(token)


@pytest.mark.asyncio
async def test_user_email_lookup_is_not_tenant_scoped() -> None:
    expected = object()
    session = Mock()
    session.execute = AsyncMock(return_value=SimpleNamespace(scalar_one_or_none=lambda: expected))

    repo = UserRepository(session)

    # No tenant context is set: sign-in and invitation flows resolve users before a tenant is known.
    assert await repo.get_by_email("Someone@Example.com") is expected


@pytest.mark.asyncio
async def test_tenant_account_repository_is_unscoped() -> None:
    tenant = SimpleNamespace(id=uuid4(), name="Acme Solar")
    session = Mock()
    session.scalar = AsyncMock(return_value=tenant)
    session.scalars = AsyncMock(return_value=SimpleNamespace(all=lambda: [tenant]))

    repo = TenantAccountRepository(session)

    assert await repo.get(tenant.id) is tenant
    assert await repo.list_all() == [tenant]


def test_repository_exports_are_tenant_repositories() -> None:
    session = Mock()

    for repo_cls in (
        CrmLeadRepository,
        JourneyStepRepository,
        CustomerRepository,
        ProjectRepository,
        SupportTicketRepository,
        NotificationRepository,
        InvitationRepository,
        UserRepository,
    ):
        assert isinstance(repo_cls(session), TenantRepository)
