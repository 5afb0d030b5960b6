from __future__ import annotations

from pydantic import BaseModel


class SystemHealthResponse(BaseModel):
    status: str
    database_ok: bool
    redis_ok: bool
    total_tenants: int
