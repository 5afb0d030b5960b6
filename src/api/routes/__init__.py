from src.api.routes.auth import router as auth_router
from src.api.routes.billing import router as billing_router
from src.api.routes.company import router as company_router
from src.api.routes.crm import router as crm_router
from src.api.routes.customers import router as customers_router
from src.api.routes.enphase import router as enphase_router
from src.api.routes.invitations import router as invitations_router
from src.api.routes.monitoring import router as monitoring_router
from src.api.routes.notifications import router as notifications_router
from src.api.routes.project_requests import router as project_requests_router
from src.api.routes.projects import router as projects_router
from src.api.routes.support import router as support_router
from src.api.routes.system import router as system_router
from src.api.routes.tenants import router as tenants_router
from src.api.routes.users import router as users_router
from src.api.routes.webhooks import router as webhooks_router

__all__ = [
    "auth_router",
    "billing_router",
    "company_router",
    "crm_router",
    "customers_router",
    "enphase_router",
    "invitations_router",
    "monitoring_router",
    "notifications_router",
    "project_requests_router",
    "projects_router",
    "support_router",
    "system_router",
    "tenants_router",
    "users_router",
    "webhooks_router",
]
