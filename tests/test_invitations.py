from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import requests
from fastapi import HTTPException

from src.core import email as email_module
from src.core.auth import AuthContext, decode_access_token
from src.core.email import EmailDeliveryError, InvitationEmail, ResendEmailClient, invitation_url
from src.core.security.crypto import PasswordHasher
from src.core.services.invitations import InvitationService, generate_invitation_token


class _InvitationRepo:
    def __init__(self, *items: object) -> None:
        self.items = {item.id: item for item in items}

    async def create(self, **values):  # noqa: ANN003
        values.setdefault("tenant_id", uuid4())
        item = SimpleNamespace(id=uuid4(), accepted_at=None, **values)
        self.items[item.id] = item
        return item

    async def get(self, invitation_id):  # noqa: ANN001
        return self.items.get(invitation_id)

    async def get_by_token(self, token):  # noqa: ANN001
        return next((i for i in self.items.values() if i.token == token), None)

    async def get_pending_by_email(self, email):  # noqa: ANN001
        return next((i for i in self.items.values() if i.email == email and i.status == "PENDING"), None)

    async def list_pending(self):
        return [i for i in self.items.values() if i.status == "PENDING"]

    async def update(self, invitation_id, **values):  # noqa: ANN001, ANN003
        item = self.items[invitation_id]
        for field, value in values.items():
            setattr(item, field, value)
        return item


class _UserRepo:
    def __init__(self, *users: object) -> None:
        self.users = list(users)

    async def get_by_email(self, email):  # noqa: ANN001
        return next((u for u in self.users if u.email == email), None)

    async def create(self, **values):  # noqa: ANN003
        user = SimpleNamespace(id=uuid4(), **values)
        self.users.append(user)
        return user


class _TenantRepo:
    def __init__(self, tenant) -> None:  # noqa: ANN001
        self.tenant = tenant

    async def get(self, tenant_id):  # noqa: ANN001
        return self.tenant if self.tenant and self.tenant.id == tenant_id else None


def _invitation(tenant_id, **overrides):  # noqa: ANN001, ANN003
    values = {
        "id": uuid4(),
        "tenant_id": tenant_id,
        "email": "new@example.com",
        "role": "SALES_REP",
        "token": generate_invitation_token(),
        "status": "PENDING",
        "expires_at": datetime.now(timezone.utc) + timedelta(days=3),
        "accepted_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _service(*invitations, users=(), tenant=None, email_client=None):  # noqa: ANN001, ANN002
    client = email_client or SimpleNamespace(send_invitation=AsyncMock(return_value="msg_1"))
    service = InvitationService(
        _InvitationRepo(*invitations),
        _UserRepo(*users),
        _TenantRepo(tenant),
        client,
        PasswordHasher(n=2**10),
    )
    return service, client


def _auth(role: str = "ADMIN", tenant_id=None, user_id=None) -> AuthContext:  # noqa: ANN001
    return AuthContext(
        tenant_id=tenant_id or uuid4(),
        user_id=user_id or uuid4(),
        role=role,
        email="owner@example.com",
        name="Olivia Owner",
    )


def test_generate_invitation_token_is_random_hex() -> None:
    token = generate_invitation_token()
    assert len(token) == 64
    int(token, 16)
    assert token != generate_invitation_token()


@pytest.mark.asyncio
async def test_invite_creates_pending_invitation_and_sends_email() -> None:
    tenant = SimpleNamespace(id=uuid4(), name="Acme Solar", owner_id=None)
    service, client = _service(tenant=tenant)

    invitation, sent = await service.invite(_auth("MANAGER", tenant_id=tenant.id), email=" New@Example.com ", role="TECHNICIAN")

    assert sent is True
    assert invitation.email == "new@example.com"
    assert invitation.status == "PENDING"
    assert invitation.expires_at > datetime.now(timezone.utc) + timedelta(days=6)
    message = client.send_invitation.await_args.args[0]
    assert message.role_name == "TECHNICIAN"
    assert message.inviter_name == "Olivia Owner"
    assert invitation.token in message.invite_url


@pytest.mark.asyncio
async def test_invite_conflicts_and_role_limits() -> None:
    tenant_id = uuid4()
    existing_user = SimpleNamespace(email="taken@example.com")
    pending = _invitation(tenant_id, email="pending@example.com")
    service, _ = _service(pending, users=(existing_user,))

    for address in ("taken@example.com", "pending@example.com"):
        with pytest.raises(HTTPException) as exc:
            await service.invite(_auth(), email=address, role="VIEWER")
        assert exc.value.status_code == 409

    with pytest.raises(HTTPException) as exc:
        await service.invite(_auth("MANAGER"), email="boss@example.com", role="ADMIN")
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_invite_survives_email_failure() -> None:
    client = SimpleNamespace(send_invitation=AsyncMock(side_effect=EmailDeliveryError("down")))
    service, _ = _service(email_client=client)

    invitation, sent = await service.invite(_auth(), email="new@example.com", role="VIEWER")

    assert sent is False
    assert invitation.status == "PENDING"


@pytest.mark.asyncio
async def test_validate_invitation_states() -> None:
    tenant = SimpleNamespace(id=uuid4(), name="Acme Solar", owner_id=None)
    valid = _invitation(tenant.id)
    accepted = _invitation(tenant.id, status="ACCEPTED")
    cancelled = _invitation(tenant.id, status="CANCELLED")
    expired = _invitation(tenant.id, expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
    service, _ = _service(valid, accepted, cancelled, expired, tenant=tenant)

    check = await service.validate(valid.token)
    assert check.status == "valid"
    assert check.tenant_name == "Acme Solar"

    assert (await service.validate(accepted.token)).status == "accepted"

    with pytest.raises(HTTPException) as exc:
        await service.validate(cancelled.token)
    assert exc.value.status_code == 410

    with pytest.raises(HTTPException) as exc:
        await service.validate(expired.token)
    assert exc.value.status_code == 410
    assert expired.status == "EXPIRED"

    with pytest.raises(HTTPException) as exc:
        await service.validate("missing")
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_accept_creates_active_user_with_token() -> None:
    tenant = SimpleNamespace(id=uuid4(), name="Acme Solar", owner_id=None)
    invitation = _invitation(tenant.id)
    service, _ = _service(invitation, tenant=tenant)

    accepted = await service.accept(token=invitation.token, name=" New Person ", password="correct horse")

    assert accepted.user.tenant_id == tenant.id
    assert accepted.user.role == "SALES_REP"
    assert accepted.user.status == "ACTIVE"
    assert accepted.user.name == "New Person"
    assert service.password_hasher.verify("correct horse", accepted.user.password_hash) is True
    assert invitation.status == "ACCEPTED"
    assert invitation.accepted_at is not None
    assert decode_access_token(accepted.access_token)["sub"] == str(accepted.user.id)
    assert accepted.tenant_name == "Acme Solar"

    with pytest.raises(HTTPException) as exc:
        await service.accept(token=invitation.token, name="Again", password="pw")
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_accept_rejects_missing_fields_and_existing_accounts() -> None:
    tenant_id = uuid4()
    invitation = _invitation(tenant_id)
    service, _ = _service(invitation, users=(SimpleNamespace(email="new@example.com"),))

    with pytest.raises(HTTPException) as exc:
        await service.accept(token="", name="x", password="y")
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        await service.accept(token=invitation.token, name="Someone", password="pw")
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_cancel_requires_owner_or_admin() -> None:
    owner_id = uuid4()
    tenant = SimpleNamespace(id=uuid4(), name="Acme Solar", owner_id=owner_id)
    invitation = _invitation(tenant.id)
    service, _ = _service(invitation, tenant=tenant)

    with pytest.raises(HTTPException) as exc:
        await service.cancel(_auth("MANAGER", tenant_id=tenant.id), invitation.id)
    assert exc.value.status_code == 403

    await service.cancel(_auth("MANAGER", tenant_id=tenant.id, user_id=owner_id), invitation.id)
    assert invitation.status == "CANCELLED"

    with pytest.raises(HTTPException) as exc:
        await service.cancel(_auth("ADMIN", tenant_id=tenant.id), invitation.id)
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_resend_rotates_token_and_expiry() -> None:
    invitation = _invitation(uuid4(), expires_at=datetime.now(timezone.utc) + timedelta(hours=1))
    old_token = invitation.token
    service, client = _service(invitation)

    _, sent = await service.resend(_auth(), invitation.id)

    assert sent is True
    assert invitation.token != old_token
    assert invitation.expires_at > datetime.now(timezone.utc) + timedelta(days=6)
    client.send_invitation.assert_awaited_once()


def test_invitation_email_rendering(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(email_module.settings, "app_base_url", "https://app.example.com/")
    message = InvitationEmail(
        to="new@example.com",
        invite_url=invitation_url("tok123"),
        role_name="VIEWER",
        inviter_name="<Olivia>",
        tenant_name="Acme Solar",
        expiry_days=7,
    )

    assert message.invite_url == "https://app.example.com/invite?token=tok123"
    assert message.subject == "You're invited to join Acme Solar on Solarfy"
    assert "&lt;Olivia&gt;" in message.html()
    assert "expire in 7 days" in message.text()


@pytest.mark.asyncio
async def test_resend_client_skips_when_disabled() -> None:
    client = ResendEmailClient(api_key="")

    assert client.enabled is False
    assert await client.send(to="a@example.com", subject="s", html="<p>h</p>") is None


@pytest.mark.asyncio
async def test_resend_client_posts_and_wraps_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict = {}

    class _Resp:
        def raise_for_status(self) -> None:
            return None

        def json(self) -> dict:
            return {"id": "email_1"}

    def _post(url, json, headers, timeout):  # noqa: ANN001
        captured.update(url=url, json=json, headers=headers)
        return _Resp()

    monkeypatch.setattr(email_module.requests, "post", _post)
    client = ResendEmailClient(api_key="re_test", api_url="https://api.resend.test/emails", sender="x@solarfy.app")

    assert await client.send(to="a@example.com", subject="Hi", html="<p>h</p>", text="h") == "email_1"
    assert captured["headers"] == {"Authorization": "Bearer re_test"}
    assert captured["json"]["to"] == ["a@example.com"]
    assert captured["json"]["text"] == "h"

    def _boom(*args, **kwargs):  # noqa: ANN002, ANN003
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(email_module.requests, "post", _boom)
    with pytest.raises(EmailDeliveryError):
        await client.send(to="a@example.com", subject="Hi", html="<p>h</p>")
