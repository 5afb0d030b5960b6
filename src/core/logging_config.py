from __future__ import annotations

import logging

from src.core.context import get_current_tenant_id, get_current_user_id

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] tenant=%(tenant_id)s user=%(user_id)s %(message)s"


class RequestContextFilter(logging.Filter):
    """Stamps every record with the tenant and user bound to the current request."""

    def filter(self, record: logging.LogRecord) -> bool:
        tenant_id = get_current_tenant_id()
        user_id = get_current_user_id()
        record.tenant_id = str(tenant_id) if tenant_id else "-"
        record.user_id = str(user_id) if user_id else "-"
        return True


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if any(isinstance(f, RequestContextFilter) for h in root.handlers for f in h.filters):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    root.addHandler(handler)
    root.setLevel(level.upper())
