from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Request
from starlette.responses import Response

from src.core.context import (
    reset_current_tenant_id,
    reset_current_user_id,
    set_current_tenant_id,
    set_current_user_id,
)


async def request_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    # Every request starts unbound; require_auth_context binds tenant and user.
    tenant_token = set_current_tenant_id(None)
    user_token = set_current_user_id(None)
    try:
        return await call_next(request)
    finally:
        reset_current_user_id(user_token)
        reset_current_tenant_id(tenant_token)
