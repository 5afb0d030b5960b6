from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.core.auth import AuthContext, decode_access_token, require_auth_context
from src.core.db import get_db_session
from src.core.repositories.base import Page
from src.core.security.crypto import PasswordHasher


@dataclass
class _FakeScalars:
    data: list

    def all(self) -> list:
        return self.data


class _FakeSession:
    def __init__(self, *, scalar_values: list | None = None, scalars_values: list | None = None) -> None:
        self._scalar_values = list(scalar_values or [])
        self._scalars_values = list(scalars_values or [])
        self.committed = False

    async def scalar(self, stmt):  # noqa: ANN001
        return self._scalar_values.pop(0) if self._scalar_values else None

    async def scalars(self, stmt):  # noqa: ANN001
        value = self._scalars_values.pop(0) if self._scalars_values else []
        return _FakeScalars(value)

    async def execute(self, stmt):  # noqa: ANN001
        return None

    async def commit(self) -> None:
        self.committed = True


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _user(**overrides):  # noqa: ANN003
    values = {
        "id": uuid4(),
        "tenant_id": uuid4(),
        "name": "Sam Seller",
        "email": "sam@example.com",
        "phone": None,
        "role": "SALES_REP",
        "status": "ACTIVE",
        "permissions": [],
        "password_hash": "",
        "last_login": None,
        "created_at": _now(),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _lead(**overrides):  # noqa: ANN003
    values = {
        "id": uuid4(),
        "name": "Jane Doe",
        "email": "jane@gmail.com",
        "phone": None,
        "company": None,
        "status": "LEAD",
        "score": 0,
        "assignee": None,
        "product_service": "SOLAR_PANELS",
        "customer_type": "OWNER",
        "notes": None,
        "created_by": None,
        "last_activity": _now(),
        "created_at": _now(),
        "updated_at": _now(),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _project(**overrides):  # noqa: ANN003
    values = {
        "id": uuid4(),
        "name": "Roof Array",
        "description": None,
        "status": "PLANNING",
        "estimated_kw": Decimal("8.5"),
        "estimated_price": Decimal("24000"),
        "customer_id": None,
        "created_by_id": uuid4(),
        "crm_lead_id": None,
        "address": None,
        "email": None,
        "phone": None,
        "latitude": None,
        "longitude": None,
        "enphase_system_id": None,
        "enphase_status": None,
        "enphase_last_sync": None,
        "enphase_enabled": False,
        "created_at": _now(),
        "updated_at": _now(),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def auth_context() -> AuthContext:
    return AuthContext(
        tenant_id=uuid4(),
        user_id=uuid4(),
        role="ADMIN",
        email="admin@example.com",
        name="Ada Admin",
    )


@pytest.fixture
def fake_session() -> _FakeSession:
    return _FakeSession()


@pytest.fixture
def client(auth_context: AuthContext, fake_session: _FakeSession):
    async def _auth_override() -> AuthContext:
        return auth_context

    async def _db_override():
        yield fake_session

    app.dependency_overrides[require_auth_context] = _auth_override
    app.dependency_overrides[get_db_session] = _db_override
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_health_endpoint(client: TestClient) -> None:
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_sign_in_issues_token(client: TestClient, monkeypatch: pytest.MonkeyPatch, fake_session: _FakeSession) -> None:
    from src.api.routes import auth as auth_routes

    hasher = PasswordHasher(n=2**10)
    user = _user(password_hash=hasher.hash("sunny-days"))

    class FakeUsers:
        def __init__(self, session):  # noqa: ANN001
            pass

        async def get_by_email(self, email):  # noqa: ANN001
            return user if email == user.email else None

    class FakeTenants:
        def __init__(self, session):  # noqa: ANN001
            pass

        async def get(self, tenant_id):  # noqa: ANN001
            return SimpleNamespace(id=tenant_id, is_active=True)

    monkeypatch.setattr(auth_routes, "UserRepository", FakeUsers)
    monkeypatch.setattr(auth_routes, "TenantAccountRepository", FakeTenants)
    monkeypatch.setattr(auth_routes, "get_password_hasher", lambda: hasher)

    res = client.post("/api/v1/auth/sign-in", json={"email": "sam@example.com", "password": "wrong"})
    assert res.status_code == 401

    res = client.post("/api/v1/auth/sign-in", json={"email": "sam@example.com", "password": "sunny-days"})
    assert res.status_code == 200
    body = res.json()
    assert body["token_type"] == "bearer"
    assert decode_access_token(body["access_token"])["sub"] == str(user.id)
    assert user.last_login is not None
    assert fake_session.committed is True


def test_sign_in_rejects_inactive_user(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from src.api.routes import auth as auth_routes

    hasher = PasswordHasher(n=2**10)
    user = _user(status="INACTIVE", password_hash=hasher.hash("pw"))

    class FakeUsers:
        def __init__(self, session):  # noqa: ANN001
            pass

        async def get_by_email(self, email):  # noqa: ANN001
            return user

    monkeypatch.setattr(auth_routes, "UserRepository", FakeUsers)
    monkeypatch.setattr(auth_routes, "get_password_hasher", lambda: hasher)

    res = client.post("/api/v1/auth/sign-in", json={"email": "sam@example.com", "password": "pw"})
    assert res.status_code == 403


def test_current_user_includes_permissions_and_navigation(
    client: TestClient, monkeypatch: pytest.MonkeyPatch, auth_context: AuthContext
) -> None:
    from src.api.routes import auth as auth_routes

    user = _user(id=auth_context.user_id, tenant_id=auth_context.tenant_id, role="SALES_REP", permissions=["extra"])

    class FakeUsers:
        def __init__(self, session):  # noqa: ANN001
            pass

        async def get(self, user_id):  # noqa: ANN001
            return user if user_id == user.id else None

    monkeypatch.setattr(auth_routes, "UserRepository", FakeUsers)

    res = client.get("/api/v1/auth/me")

    assert res.status_code == 200
    body = res.json()
    assert body["user"]["email"] == "sam@example.com"
    assert "extra" in body["permissions"]
    assert body["navigation"]["can_view_crm"] is True


def test_crm_requires_sales_roles(client: TestClient, auth_context: AuthContext) -> None:
    auth_context.role = "VIEWER"

    res = client.get("/api/v1/crm/leads")

    assert res.status_code == 403


def test_list_and_create_leads(client: TestClient, monkeypatch: pytest.MonkeyPatch, fake_session: _FakeSession) -> None:
    from src.api.routes import crm

    lead = _lead()
    service = SimpleNamespace(
        list_leads=AsyncMock(return_value=Page(items=[lead], total=51, page=1, limit=50)),
        create_lead=AsyncMock(return_value=lead),
    )
    monkeypatch.setattr(crm, "_build_service", lambda session: service)

    res = client.get("/api/v1/crm/leads", params={"status": "LEAD", "sort_by": "name", "sort_order": "asc"})
    assert res.status_code == 200
    assert res.json()["total_pages"] == 2
    filters = service.list_leads.await_args.args[0]
    assert filters.status == "LEAD"
    assert service.list_leads.await_args.kwargs["sort_by"] == "name"

    res = client.post("/api/v1/crm/leads", json={"name": "Jane Doe", "email": "not-an-email"})
    assert res.status_code == 422

    res = client.post("/api/v1/crm/leads", json={"name": "Jane Doe", "email": "jane@gmail.com"})
    assert res.status_code == 201
    assert res.json()["email"] == "jane@gmail.com"
    assert service.create_lead.await_args.kwargs["status"] == "LEAD"
    assert fake_session.committed is True


def test_partial_updates_reject_null_required_fields(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from src.api.routes import crm

    lead = _lead(notes="old")
    service = SimpleNamespace(update_lead=AsyncMock(return_value=lead))
    monkeypatch.setattr(crm, "_build_service", lambda session: service)

    for body in ({"status": None}, {"name": None}, {"score": None}):
        res = client.patch(f"/api/v1/crm/leads/{lead.id}", json=body)
        assert res.status_code == 422
    service.update_lead.assert_not_awaited()

    res = client.patch(f"/api/v1/crm/leads/{lead.id}", json={"notes": None, "status": "CONTACTED"})
    assert res.status_code == 200
    assert service.update_lead.await_args.kwargs == {"notes": None, "status": "CONTACTED"}

    assert client.patch(f"/api/v1/projects/{uuid4()}", json={"estimated_price": None}).status_code == 422
    assert client.patch(f"/api/v1/monitoring/data/{uuid4()}", json={"address": None}).status_code == 422
    assert client.patch(f"/api/v1/users/{uuid4()}", json={"role": None}).status_code == 422


def test_lead_import_validates_upload(client: TestClient) -> None:
    res = client.post("/api/v1/crm/leads/import", files={"file": ("leads.txt", b"Name,Owner Email\n", "text/plain")})
    assert res.status_code == 400
    assert res.json()["detail"] == "Only CSV files are allowed"

    res = client.post("/api/v1/crm/leads/import", files={"file": ("leads.csv", b"", "text/csv")})
    assert res.status_code == 400
    assert res.json()["detail"] == "File is empty"


def test_lead_import_runs_importer(client: TestClient, monkeypatch: pytest.MonkeyPatch, fake_session: _FakeSession) -> None:
    from src.api.routes import crm

    class FakeLeads:
        async def find_existing_emails(self, emails):  # noqa: ANN001
            return set()

        @asynccontextmanager
        async def savepoint(self):
            yield

    created = []

    async def _create_lead(*, created_by, **values):  # noqa: ANN001, ANN003
        created.append(values)
        return SimpleNamespace(id=uuid4(), **values)

    service = SimpleNamespace(leads=FakeLeads(), create_lead=_create_lead)
    monkeypatch.setattr(crm, "_build_service", lambda session: service)

    content = b"Name,Owner Email,Owner Phone,My Company's Reference\nJane Doe,jane@gmail.com,,R-1\n"
    res = client.post("/api/v1/crm/leads/import", files={"file": ("leads.csv", content, "text/csv")})

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["data"]["imported"] == 1
    assert created[0]["email"] == "jane@gmail.com"
    assert fake_session.committed is True


def test_list_projects_passes_filters(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from src.api.routes import projects

    service = SimpleNamespace(list_projects=AsyncMock(return_value=Page(items=[_project()], total=1, page=1, limit=20)))
    monkeypatch.setattr(projects, "_build_service", lambda session: service)

    res = client.get("/api/v1/projects", params={"status": "PLANNING", "min_kw": "5"})

    assert res.status_code == 200
    assert res.json()["projects"][0]["name"] == "Roof Array"
    filters = service.list_projects.await_args.args[1]
    assert filters.status == "PLANNING"
    assert filters.min_kw == Decimal("5")


def test_create_project_validates_payload(client: TestClient) -> None:
    res = client.post("/api/v1/projects", json={"name": "Ok Name", "estimated_kw": 0, "estimated_price": 5000})
    assert res.status_code == 422


def test_create_support_ticket(client: TestClient, monkeypatch: pytest.MonkeyPatch, auth_context: AuthContext) -> None:
    from src.api.routes import support

    ticket = SimpleNamespace(
        id=uuid4(),
        subject="Inverter offline",
        description="No production since Monday",
        status="OPEN",
        priority="HIGH",
        category="TECHNICAL",
        created_by_id=auth_context.user_id,
        assigned_to_id=None,
        resolved_at=None,
        created_at=_now(),
        updated_at=_now(),
    )
    service = SimpleNamespace(create_ticket=AsyncMock(return_value=ticket))
    monkeypatch.setattr(support, "_build_service", lambda session: service)

    res = client.post(
        "/api/v1/support/tickets",
        json={"subject": "Inverter offline", "description": "No production since Monday", "priority": "HIGH", "category": "TECHNICAL"},
    )

    assert res.status_code == 201
    assert res.json()["status"] == "OPEN"
    assert service.create_ticket.await_args.kwargs["priority"] == "HIGH"


def test_notification_unread_count(client: TestClient, monkeypatch: pytest.MonkeyPatch, auth_context: AuthContext) -> None:
    from src.api.routes import notifications

    service = SimpleNamespace(unread_count=AsyncMock(return_value=3))
    monkeypatch.setattr(notifications, "_build_service", lambda session: service)

    res = client.get("/api/v1/notifications/unread-count")

    assert res.status_code == 200
    assert res.json() == {"count": 3}
    service.unread_count.assert_awaited_once_with(auth_context.user_id)


def test_stripe_webhook_info_and_missing_signature(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from src.core import billing

    monkeypatch.setattr(billing.settings, "stripe_webhook_secret", "whsec_test")

    res = client.get("/api/v1/webhooks/stripe")
    assert res.status_code == 200
    body = res.json()
    assert body["configured"] is True
    assert "customer.subscription.created" in body["handled_events"]

    res = client.post("/api/v1/webhooks/stripe", content=b"{}")
    assert res.status_code == 400


def test_enphase_systems_require_backend_key(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from src.api.routes import enphase as enphase_routes
    from src.core import auth

    monkeypatch.setattr(auth.settings, "enphase_backend_api_key", "backend-key")
    service = SimpleNamespace(list_systems=AsyncMock(return_value=["111", "222"]))
    monkeypatch.setattr(enphase_routes, "_build_service", lambda session: service)
    tenant_id = uuid4()

    res = client.get("/api/v1/enphase/systems", params={"tenant_id": str(tenant_id)})
    assert res.status_code == 401

    res = client.get(
        "/api/v1/enphase/systems",
        params={"tenant_id": str(tenant_id)},
        headers={"Authorization": "Bearer backend-key"},
    )
    assert res.status_code == 200
    assert res.json() == {"tenant_id": str(tenant_id), "available_systems": ["111", "222"]}


def test_validate_system_keeps_expired_status_on_failed_refresh(
    client: TestClient, monkeypatch: pytest.MonkeyPatch, fake_session: _FakeSession
) -> None:
    from fastapi import HTTPException

    from src.api.routes import enphase as enphase_routes

    service = SimpleNamespace(
        validate_system=AsyncMock(side_effect=HTTPException(status_code=404, detail="System not found"))
    )
    monkeypatch.setattr(enphase_routes, "_build_service", lambda session: service)

    res = client.post("/api/v1/enphase/validate-system", json={"system_id": "4412"})
    assert res.status_code == 404
    assert fake_session.committed is False

    service.validate_system.side_effect = HTTPException(status_code=401, detail="Enphase authorization expired")
    res = client.post("/api/v1/enphase/validate-system", json={"system_id": "4412"})
    assert res.status_code == 401
    assert fake_session.committed is True


def test_system_health_reports_degraded(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from src.api.routes import system

    class FakeTenants:
        def __init__(self, session):  # noqa: ANN001
            pass

        async def list_all(self):
            return [object(), object()]

    monkeypatch.setattr(system, "ping_database", AsyncMock(return_value=True))
    monkeypatch.setattr(system, "ping_redis", AsyncMock(return_value=False))
    monkeypatch.setattr(system, "TenantAccountRepository", FakeTenants)

    res = client.get("/api/v1/system/health")

    assert res.status_code == 200
    assert res.json() == {"status": "degraded", "database_ok": True, "redis_ok": False, "total_tenants": 2}


def test_system_health_is_admin_only(client: TestClient, auth_context: AuthContext) -> None:
    auth_context.role = "MANAGER"

    res = client.get("/api/v1/system/health")

    assert res.status_code == 403


def test_create_customer_checks_document(client: TestClient, monkeypatch: pytest.MonkeyPatch, auth_context: AuthContext) -> None:
    from src.api.routes import customers

    class FakeCustomers:
        def __init__(self, session):  # noqa: ANN001
            pass

        async def create(self, **values):  # noqa: ANN003
            return SimpleNamespace(id=uuid4(), created_at=_now(), **values)

    monkeypatch.setattr(customers, "CustomerRepository", FakeCustomers)
    payload = {"name": "Jane Doe", "email": "jane@gmail.com", "document_type": "EIN", "document": "123-45-6789"}

    res = client.post("/api/v1/customers", json=payload)
    assert res.status_code == 422

    res = client.post("/api/v1/customers", json={**payload, "document_type": "SSN", "state": "tx"})
    assert res.status_code == 201
    body = res.json()
    assert body["state"] == "TX"
    assert body["created_by"] == str(auth_context.user_id)


def test_company_missing_and_upsert(client: TestClient, monkeypatch: pytest.MonkeyPatch, auth_context: AuthContext) -> None:
    from src.api.routes import company

    stored: list = []

    class FakeCompanies:
        def __init__(self, session):  # noqa: ANN001
            pass

        async def get_current(self):
            return stored[0] if stored else None

        async def create(self, **values):  # noqa: ANN003
            row = SimpleNamespace(id=uuid4(), tenant_id=auth_context.tenant_id, updated_at=_now(), **values)
            stored.append(row)
            return row

    monkeypatch.setattr(company, "CompanyRepository", FakeCompanies)

    assert client.get("/api/v1/company").status_code == 404

    res = client.put("/api/v1/company", json={"name": "Acme Solar", "website": "https://acme.example.com"})
    assert res.status_code == 200
    assert res.json()["name"] == "Acme Solar"
    assert client.get("/api/v1/company").json()["website"] == "https://acme.example.com"
