from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode
from uuid import UUID

import redis.asyncio as redis
import requests
from fastapi import HTTPException, status
from redis.exceptions import RedisError

from src.core.config import settings
from src.core.repositories.enphase_configs import EnphaseConfigRepository
from src.core.security.crypto import EncryptionError, SecurityCipher
from src.models.enphase_config import EnphaseConfig, EnphaseConfigStatus

logger = logging.getLogger(__name__)

OAUTH_FLOW = "tenant_oauth"


class EnphaseApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def access_token_cache_key(tenant_id: UUID | str) -> str:
    return f"enphase:access_token:{tenant_id}"


def encode_state(tenant_id: UUID | str, system_id: str | None = None) -> str:
    payload: dict[str, str] = {"tenantId": str(tenant_id), "flow": OAUTH_FLOW}
    if system_id:
        payload["systemId"] = system_id
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def decode_state(state: str) -> dict[str, str]:
    try:
        payload = json.loads(base64.b64decode(state.encode("ascii"), validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid OAuth state",
        ) from exc

    if not isinstance(payload, dict) or payload.get("flow") != OAUTH_FLOW or not payload.get("tenantId"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid OAuth state",
        )
    return payload


def build_authorize_url(state: str) -> str:
    query = urlencode(
        {
            "response_type": "code",
            "client_id": settings.enphase_client_id,
            "redirect_uri": settings.enphase_redirect_uri,
            "state": state,
        }
    )
    return f"{settings.enphase_oauth_base_url.rstrip('/')}/authorize?{query}"


@dataclass(slots=True)
class TokenGrant:
    access_token: str
    refresh_token: str | None
    expires_in: int

    @property
    def expires_at(self) -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=self.expires_in)


class EnphaseClient:
    def __init__(self, *, timeout_seconds: int | None = None) -> None:
        self.oauth_base_url = settings.enphase_oauth_base_url.rstrip("/")
        self.api_base_url = settings.enphase_api_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.enphase_request_timeout_seconds

    def _token_request(self, data: dict[str, str]) -> TokenGrant:
        if not settings.enphase_client_id or not settings.enphase_client_secret:
            raise EnphaseApiError("Enphase OAuth client is not configured")

        response = requests.post(
            f"{self.oauth_base_url}/token",
            data=data,
            auth=(settings.enphase_client_id, settings.enphase_client_secret),
            headers={"Accept": "application/json"},
            timeout=self.timeout_seconds,
        )
        if response.status_code >= 400:
            raise EnphaseApiError(
                f"Enphase token request failed: {response.text[:200]}",
                status_code=response.status_code,
            )
        body = response.json()
        if not body.get("access_token"):
            raise EnphaseApiError("Enphase token response is missing access_token")
        return TokenGrant(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            expires_in=int(body.get("expires_in") or 86400),
        )

    def _get(self, path: str, access_token: str) -> dict:
        response = requests.get(
            f"{self.api_base_url}{path}",
            params={"key": settings.enphase_api_key},
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            timeout=self.timeout_seconds,
        )
        if response.status_code >= 400:
            raise EnphaseApiError(
                f"Enphase API request to {path} failed",
                status_code=response.status_code,
            )
        return response.json()

    async def exchange_code(self, code: str) -> TokenGrant:
        return await asyncio.to_thread(
            self._token_request,
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": settings.enphase_redirect_uri,
            },
        )

    async def refresh(self, refresh_token: str) -> TokenGrant:
        return await asyncio.to_thread(
            self._token_request,
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
        )

    async def list_systems(self, access_token: str) -> list[dict]:
        body = await asyncio.to_thread(self._get, "/systems", access_token)
        return list(body.get("systems") or [])

    async def system_summary(self, system_id: str, access_token: str) -> dict:
        return await asyncio.to_thread(self._get, f"/systems/{system_id}/summary", access_token)


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def config_status(config: EnphaseConfig | None) -> str:
    if config is None:
        return "not_configured"
    if config.status == EnphaseConfigStatus.AUTHORIZED.value:
        expires_at = _aware(config.token_expires_at)
        if expires_at is not None and expires_at <= datetime.now(timezone.utc):
            return "expired"
        if config.access_token_encrypted:
            return "authorized"
        return "not_authorized"
    if config.status in {
        EnphaseConfigStatus.EXPIRED.value,
        EnphaseConfigStatus.REVOKED.value,
        EnphaseConfigStatus.ERROR.value,
    }:
        return config.status.lower()
    return "not_authorized"


def summarize_system(system_id: str, data: dict) -> dict[str, object]:
    last_report_at = data.get("last_report_at")
    return {
        "system_id": system_id,
        "system_name": f"{data.get('system_id', system_id)} - {data.get('status') or 'Active'}",
        "status": data.get("status") or "active",
        "last_reported_at": (
            datetime.fromtimestamp(int(last_report_at), tz=timezone.utc) if last_report_at else None
        ),
        "peak_power_w": data.get("size_w"),
        "current_power_w": data.get("current_power"),
        "energy_today_kwh": (data.get("energy_today") or 0) / 1000,
        "energy_lifetime_kwh": (data.get("energy_lifetime") or 0) / 1000,
        "modules": data.get("modules"),
        "timezone": data.get("timezone"),
    }


class EnphaseService:
    def __init__(
        self,
        configs: EnphaseConfigRepository,
        cipher: SecurityCipher,
        client: EnphaseClient | None = None,
    ) -> None:
        self.configs = configs
        self.cipher = cipher
        self.client = client or EnphaseClient()

    async def _cache_token(self, tenant_id: UUID, grant: TokenGrant) -> None:
        redis_client = redis.from_url(settings.redis_url, decode_responses=True)
        try:
            await redis_client.set(access_token_cache_key(tenant_id), grant.access_token, ex=max(grant.expires_in, 1))
        except RedisError:
            logger.warning("Failed to cache Enphase token for tenant %s", tenant_id, exc_info=True)
        finally:
            await redis_client.aclose()

    async def _drop_cached_token(self, tenant_id: UUID) -> None:
        redis_client = redis.from_url(settings.redis_url, decode_responses=True)
        try:
            await redis_client.delete(access_token_cache_key(tenant_id))
        except RedisError:
            logger.warning("Failed to drop cached Enphase token for tenant %s", tenant_id, exc_info=True)
        finally:
            await redis_client.aclose()

    async def complete_authorization(
        self,
        *,
        tenant_id: UUID,
        user_id: UUID,
        code: str,
        state: str,
    ) -> EnphaseConfig:
        payload = decode_state(state)
        if payload["tenantId"] != str(tenant_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="OAuth state does not match the current tenant",
            )

        try:
            grant = await self.client.exchange_code(code)
        except EnphaseApiError as exc:
            logger.warning("Enphase code exchange failed for tenant %s: %s", tenant_id, exc)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Failed to exchange authorization code with Enphase",
            ) from exc
        except requests.RequestException as exc:
            logger.exception("Enphase token endpoint unreachable")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Enphase is unavailable",
            ) from exc

        systems: list[str] = []
        try:
            systems = [str(system.get("system_id")) for system in await self.client.list_systems(grant.access_token)]
        except (EnphaseApiError, requests.RequestException):
            logger.warning("Could not list Enphase systems for tenant %s after authorization", tenant_id)

        if payload.get("systemId") and payload["systemId"] != "default" and payload["systemId"] not in systems:
            systems.append(payload["systemId"])

        now = datetime.now(timezone.utc)
        config = await self.configs.upsert(
            status=EnphaseConfigStatus.AUTHORIZED.value,
            access_token_encrypted=self.cipher.encrypt(grant.access_token),
            refresh_token_encrypted=self.cipher.encrypt_optional(grant.refresh_token),
            token_expires_at=grant.expires_at,
            last_refresh_at=now,
            authorized_by_id=user_id,
            available_systems=systems,
        )
        await self._cache_token(tenant_id, grant)
        logger.info("Enphase authorized for tenant %s with %s systems", tenant_id, len(systems))
        return config

    async def get_status(self) -> tuple[str, EnphaseConfig | None]:
        config = await self.configs.get_current()
        return config_status(config), config

    async def revoke(self, tenant_id: UUID) -> EnphaseConfig | None:
        config = await self.configs.get_current()
        if config is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Enphase is not configured for this tenant",
            )
        updated = await self.configs.update(
            config.id,
            status=EnphaseConfigStatus.REVOKED.value,
            access_token_encrypted=None,
            refresh_token_encrypted=None,
            token_expires_at=None,
        )
        await self._drop_cached_token(tenant_id)
        logger.info("Enphase authorization revoked for tenant %s", tenant_id)
        return updated

    async def access_token(self, tenant_id: UUID) -> str:
        config = await self.configs.get_current()
        if config is None or config.status != EnphaseConfigStatus.AUTHORIZED.value or not config.access_token_encrypted:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Enphase is not authorized for this tenant",
            )

        expires_at = _aware(config.token_expires_at)
        try:
            if expires_at is None or expires_at > datetime.now(timezone.utc):
                return self.cipher.decrypt(config.access_token_encrypted)
            refresh_token = self.cipher.decrypt_optional(config.refresh_token_encrypted)
        except EncryptionError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Stored Enphase tokens could not be decrypted",
            ) from exc

        if not refresh_token:
            await self.configs.update(config.id, status=EnphaseConfigStatus.EXPIRED.value)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Enphase authorization expired",
            )

        try:
            grant = await self.client.refresh(refresh_token)
        except (EnphaseApiError, requests.RequestException) as exc:
            logger.warning("Enphase token refresh failed for tenant %s: %s", tenant_id, exc)
            await self.configs.update(config.id, status=EnphaseConfigStatus.EXPIRED.value)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Enphase authorization expired",
            ) from exc

        await self.configs.update(
            config.id,
            access_token_encrypted=self.cipher.encrypt(grant.access_token),
            refresh_token_encrypted=self.cipher.encrypt_optional(grant.refresh_token or refresh_token),
            token_expires_at=grant.expires_at,
            last_refresh_at=datetime.now(timezone.utc),
        )
        await self._cache_token(tenant_id, grant)
        logger.info("Refreshed Enphase token for tenant %s", tenant_id)
        return grant.access_token

    async def validate_system(self, tenant_id: UUID, system_id: str) -> dict[str, object]:
        system_id = (system_id or "").strip()
        if not system_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="System ID is required",
            )

        token = await self.access_token(tenant_id)
        try:
            data = await self.client.system_summary(system_id, token)
        except EnphaseApiError as exc:
            if exc.status_code == 404:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="System ID not found or not accessible with your credentials",
                ) from exc
            if exc.status_code in (401, 403):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Authorization expired or invalid. Please contact your administrator to re-authenticate.",
                ) from exc
            logger.warning("Enphase summary failed for system %s: %s", system_id, exc)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Unable to validate system ID with Enphase API. Please try again later.",
            ) from exc
        except requests.RequestException as exc:
            logger.exception("Enphase API unreachable while validating system %s", system_id)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Unable to validate system ID with Enphase API. Please try again later.",
            ) from exc

        return summarize_system(system_id, data)

    async def list_systems(self) -> list[str]:
        config = await self.configs.get_current()
        return list(config.available_systems or []) if config else []

    async def replace_systems(self, systems: list[str]) -> EnphaseConfig:
        config = await self.configs.get_current()
        if config is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Enphase is not configured for this tenant",
            )
        unique = list(dict.fromkeys(s.strip() for s in systems if s and s.strip()))
        return await self.configs.update(config.id, available_systems=unique) or config

    async def modify_system(self, system_id: str, action: str) -> EnphaseConfig:
        current = await self.list_systems()
        if action == "add":
            systems = current if system_id in current else [*current, system_id]
        elif action == "remove":
            systems = [s for s in current if s != system_id]
        else:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Action must be 'add' or 'remove'",
            )
        return await self.replace_systems(systems)

    async def upsert_config(self, **values: object) -> EnphaseConfig:
        payload: dict[str, object] = {}
        if "access_token" in values:
            payload["access_token_encrypted"] = self.cipher.encrypt_optional(values.pop("access_token"))
        if "refresh_token" in values:
            payload["refresh_token_encrypted"] = self.cipher.encrypt_optional(values.pop("refresh_token"))
        payload.update({key: value for key, value in values.items() if value is not None})

        existing = await self.configs.get_current()
        if existing is None:
            payload.setdefault("status", EnphaseConfigStatus.AUTHORIZED.value)
            payload.setdefault("available_systems", [])
        return await self.configs.upsert(**payload)
