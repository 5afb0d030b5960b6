from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse
from uuid import uuid4

from cryptography.fernet import Fernet
import pytest
from fastapi import HTTPException

from src.core import enphase
from src.core.enphase import (
    EnphaseApiError,
    EnphaseService,
    TokenGrant,
    build_authorize_url,
    config_status,
    decode_state,
    encode_state,
    summarize_system,
)
from src.core.security.crypto import SecurityCipher


def _config(**overrides):  # noqa: ANN003
    values = {
        "id": uuid4(),
        "status": "AUTHORIZED",
        "access_token_encrypted": "enc",
        "refresh_token_encrypted": None,
        "token_expires_at": datetime.now(timezone.utc) + timedelta(hours=1),
        "last_refresh_at": None,
        "available_systems": [],
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class _FakeConfigRepo:
    def __init__(self, config=None) -> None:  # noqa: ANN001
        self.config = config
        self.updates: list[dict] = []

    async def get_current(self):
        return self.config

    async def upsert(self, **values):  # noqa: ANN003
        if self.config is None:
            self.config = SimpleNamespace(id=uuid4(), **values)
        else:
            for field, value in values.items():
                setattr(self.config, field, value)
        return self.config

    async def update(self, config_id, **values):  # noqa: ANN001, ANN003
        self.updates.append(values)
        for field, value in values.items():
            setattr(self.config, field, value)
        return self.config


class _FakeClient:
    def __init__(self, *, summary: dict | None = None, error: Exception | None = None) -> None:
        self.summary = summary or {}
        self.error = error
        self.refresh_calls: list[str] = []

    async def exchange_code(self, code: str) -> TokenGrant:
        return TokenGrant(access_token=f"access-{code}", refresh_token="refresh-1", expires_in=3600)

    async def refresh(self, refresh_token: str) -> TokenGrant:
        self.refresh_calls.append(refresh_token)
        return TokenGrant(access_token="access-refreshed", refresh_token=None, expires_in=3600)

    async def list_systems(self, access_token: str) -> list[dict]:
        return [{"system_id": 111}, {"system_id": 222}]

    async def system_summary(self, system_id: str, access_token: str) -> dict:
        if self.error is not None:
            raise self.error
        return self.summary


@pytest.fixture
def cipher() -> SecurityCipher:
    return SecurityCipher(Fernet.generate_key().decode())


@pytest.fixture(autouse=True)
def _no_redis(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(EnphaseService, "_cache_token", AsyncMock())
    monkeypatch.setattr(EnphaseService, "_drop_cached_token", AsyncMock())


def test_state_roundtrip_and_validation() -> None:
    tenant_id = uuid4()
    payload = decode_state(encode_state(tenant_id, "12345"))

    assert payload == {"tenantId": str(tenant_id), "flow": "tenant_oauth", "systemId": "12345"}
    assert "systemId" not in decode_state(encode_state(tenant_id))

    for bad in ("%%%not-base64", "eyJmbG93IjogIm90aGVyIn0="):
        with pytest.raises(HTTPException) as exc:
            decode_state(bad)
        assert exc.value.status_code == 400


def test_build_authorize_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(enphase.settings, "enphase_client_id", "client-1")
    monkeypatch.setattr(enphase.settings, "enphase_redirect_uri", "https://app.example.com/callback")
    monkeypatch.setattr(enphase.settings, "enphase_oauth_base_url", "https://api.enphaseenergy.com/oauth/")

    url = urlparse(build_authorize_url("state-xyz"))
    query = parse_qs(url.query)

    assert url.path == "/oauth/authorize"
    assert query["client_id"] == ["client-1"]
    assert query["response_type"] == ["code"]
    assert query["state"] == ["state-xyz"]
    assert query["redirect_uri"] == ["https://app.example.com/callback"]


def test_config_status_values() -> None:
    assert config_status(None) == "not_configured"
    assert config_status(_config()) == "authorized"
    assert config_status(_config(access_token_encrypted=None)) == "not_authorized"
    assert config_status(_config(token_expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))) == "expired"
    assert config_status(_config(token_expires_at=datetime.utcnow() - timedelta(minutes=1))) == "expired"
    assert config_status(_config(status="REVOKED")) == "revoked"
    assert config_status(_config(status="ERROR")) == "error"


def test_summarize_system_converts_units() -> None:
    summary = summarize_system(
        "42",
        {
            "system_id": 42,
            "status": "normal",
            "last_report_at": 1_700_000_000,
            "size_w": 8000,
            "current_power": 3500,
            "energy_today": 12500,
            "energy_lifetime": 2_000_000,
            "modules": 20,
            "timezone": "America/New_York",
        },
    )

    assert summary["system_name"] == "42 - normal"
    assert summary["energy_today_kwh"] == 12.5
    assert summary["energy_lifetime_kwh"] == 2000.0
    assert summary["last_reported_at"] == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)

    empty = summarize_system("7", {})
    assert empty["status"] == "active"
    assert empty["energy_today_kwh"] == 0
    assert empty["last_reported_at"] is None


@pytest.mark.asyncio
async def test_complete_authorization_stores_encrypted_tokens(cipher: SecurityCipher) -> None:
    tenant_id = uuid4()
    user_id = uuid4()
    repo = _FakeConfigRepo()
    service = EnphaseService(repo, cipher, client=_FakeClient())

    config = await service.complete_authorization(
        tenant_id=tenant_id,
        user_id=user_id,
        code="abc",
        state=encode_state(tenant_id, "999"),
    )

    assert config.status == "AUTHORIZED"
    assert cipher.decrypt(config.access_token_encrypted) == "access-abc"
    assert cipher.decrypt(config.refresh_token_encrypted) == "refresh-1"
    assert config.available_systems == ["111", "222", "999"]
    assert config.authorized_by_id == user_id


@pytest.mark.asyncio
async def test_complete_authorization_rejects_foreign_state(cipher: SecurityCipher) -> None:
    service = EnphaseService(_FakeConfigRepo(), cipher, client=_FakeClient())

    with pytest.raises(HTTPException) as exc:
        await service.complete_authorization(
            tenant_id=uuid4(),
            user_id=uuid4(),
            code="abc",
            state=encode_state(uuid4()),
        )
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_access_token_refreshes_when_expired(cipher: SecurityCipher) -> None:
    config = _config(
        access_token_encrypted=cipher.encrypt("old-access"),
        refresh_token_encrypted=cipher.encrypt("old-refresh"),
        token_expires_at=datetime.now(timezone.utc) - timedelta(minutes=5),
    )
    client = _FakeClient()
    service = EnphaseService(_FakeConfigRepo(config), cipher, client=client)

    token = await service.access_token(uuid4())

    assert token == "access-refreshed"
    assert client.refresh_calls == ["old-refresh"]
    assert cipher.decrypt(config.refresh_token_encrypted) == "old-refresh"
    assert config.token_expires_at > datetime.now(timezone.utc)


@pytest.mark.asyncio
async def test_access_token_without_refresh_marks_expired(cipher: SecurityCipher) -> None:
    config = _config(
        access_token_encrypted=cipher.encrypt("old-access"),
        token_expires_at=datetime.now(timezone.utc) - timedelta(minutes=5),
    )
    service = EnphaseService(_FakeConfigRepo(config), cipher, client=_FakeClient())

    with pytest.raises(HTTPException) as exc:
        await service.access_token(uuid4())
    assert exc.value.status_code == 401
    assert config.status == "EXPIRED"


@pytest.mark.asyncio
async def test_validate_system_maps_api_errors(cipher: SecurityCipher) -> None:
    config = _config(access_token_encrypted=cipher.encrypt("token"))

    service = EnphaseService(_FakeConfigRepo(config), cipher, client=_FakeClient(summary={"status": "normal"}))
    summary = await service.validate_system(uuid4(), " 555 ")
    assert summary["system_id"] == "555"

    with pytest.raises(HTTPException) as exc:
        await service.validate_system(uuid4(), "   ")
    assert exc.value.status_code == 400

    for api_status, expected in ((404, 404), (403, 401), (500, 503)):
        service = EnphaseService(
            _FakeConfigRepo(config),
            cipher,
            client=_FakeClient(error=EnphaseApiError("boom", status_code=api_status)),
        )
        with pytest.raises(HTTPException) as exc:
            await service.validate_system(uuid4(), "555")
        assert exc.value.status_code == expected


@pytest.mark.asyncio
async def test_revoke_clears_tokens(cipher: SecurityCipher) -> None:
    config = _config(access_token_encrypted=cipher.encrypt("token"))
    service = EnphaseService(_FakeConfigRepo(config), cipher, client=_FakeClient())

    await service.revoke(uuid4())

    assert config.status == "REVOKED"
    assert config.access_token_encrypted is None
    assert config.refresh_token_encrypted is None

    with pytest.raises(HTTPException) as exc:
        await EnphaseService(_FakeConfigRepo(), cipher, client=_FakeClient()).revoke(uuid4())
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_system_list_management(cipher: SecurityCipher) -> None:
    config = _config(available_systems=["1"])
    service = EnphaseService(_FakeConfigRepo(config), cipher, client=_FakeClient())

    await service.modify_system("2", "add")
    await service.modify_system("2", "add")
    assert config.available_systems == ["1", "2"]

    await service.modify_system("1", "remove")
    assert config.available_systems == ["2"]

    await service.replace_systems([" 3 ", "3", "", "4"])
    assert await service.list_systems() == ["3", "4"]

    with pytest.raises(HTTPException) as exc:
        await service.modify_system("5", "toggle")
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_upsert_config_encrypts_tokens(cipher: SecurityCipher) -> None:
    repo = _FakeConfigRepo()
    service = EnphaseService(repo, cipher, client=_FakeClient())

    config = await service.upsert_config(access_token="plain", refresh_token=None, available_systems=["9"])

    assert cipher.decrypt(config.access_token_encrypted) == "plain"
    assert config.refresh_token_encrypted is None
    assert config.status == "AUTHORIZED"
    assert config.available_systems == ["9"]
