import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from src.api.middleware import request_context_middleware
from src.api.routes import (
    auth_router,
    billing_router,
    company_router,
    crm_router,
    customers_router,
    enphase_router,
    invitations_router,
    monitoring_router,
    notifications_router,
    project_requests_router,
    projects_router,
    support_router,
    system_router,
    tenants_router,
    users_router,
    webhooks_router,
)
from src.core.config import settings
from src.core.logging_config import configure_logging

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Solarfy Platform")
app.middleware("http")(request_context_middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (
    auth_router,
    users_router,
    invitations_router,
    tenants_router,
    company_router,
    crm_router,
    customers_router,
    projects_router,
    monitoring_router,
    support_router,
    notifications_router,
    project_requests_router,
    billing_router,
    webhooks_router,
    enphase_router,
    system_router,
):
    app.include_router(router, prefix="/api/v1")

app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    return {"status": "ok"}
