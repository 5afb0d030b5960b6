from __future__ import annotations

import logging

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_roles
from src.core.config import settings
from src.core.db import get_db_session, ping_database
from src.core.repositories.tenants import TenantAccountRepository
from src.models.user import UserRole
from src.schemas.system import SystemHealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["system"])


async def ping_redis() -> bool:
    redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    try:
        return bool(await redis_client.ping())
    except RedisError:
        logger.warning("Redis health check failed", exc_info=True)
        return False
    finally:
        await redis_client.aclose()


@router.get("/health", response_model=SystemHealthResponse)
async def system_health(
    _: AuthContext = Depends(require_roles(UserRole.ADMIN)),
    session: AsyncSession = Depends(get_db_session),
) -> SystemHealthResponse:
    database_ok = await ping_database(session)
    total_tenants = len(await TenantAccountRepository(session).list_all()) if database_ok else 0
    redis_ok = await ping_redis()

    return SystemHealthResponse(
        status="ok" if database_ok and redis_ok else "degraded",
        database_ok=database_ok,
        redis_ok=redis_ok,
        total_tenants=total_tenants,
    )
