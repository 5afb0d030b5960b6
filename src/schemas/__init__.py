from src.schemas.auth import CurrentUserResponse, SignInRequest, TokenResponse
from src.schemas.billing import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PortalSessionRequest,
    PortalSessionResponse,
    StripeWebhookResponse,
    SubscriptionResponse,
)
from src.schemas.company import CompanyResponse, CompanyUpdateRequest
from src.schemas.crm import LeadCreateRequest, LeadResponse, LeadUpdateRequest
from src.schemas.customers import CustomerCreateRequest, CustomerResponse
from src.schemas.enphase import EnphaseConfigResponse, EnphaseStatusResponse, SystemSummaryResponse
from src.schemas.invitations import InvitationCreateRequest, InvitationResponse
from src.schemas.lead_import import LeadImportResponse
from src.schemas.monitoring import MonitoringCreateRequest, MonitoringResponse
from src.schemas.notifications import NotificationResponse
from src.schemas.project_requests import ProjectRequestCreateRequest, ProjectRequestResponse
from src.schemas.projects import ProjectCreateRequest, ProjectImageResponse, ProjectResponse
from src.schemas.support import SupportTicketResponse, TicketCreateRequest
from src.schemas.system import SystemHealthResponse
from src.schemas.tenants import TenantResponse
from src.schemas.users import UserResponse

__all__ = [
    "SignInRequest",
    "TokenResponse",
    "CurrentUserResponse",
    "CheckoutSessionRequest",
    "CheckoutSessionResponse",
    "PortalSessionRequest",
    "PortalSessionResponse",
    "SubscriptionResponse",
    "StripeWebhookResponse",
    "CompanyUpdateRequest",
    "CompanyResponse",
    "LeadCreateRequest",
    "LeadUpdateRequest",
    "LeadResponse",
    "CustomerCreateRequest",
    "CustomerResponse",
    "EnphaseStatusResponse",
    "EnphaseConfigResponse",
    "SystemSummaryResponse",
    "InvitationCreateRequest",
    "InvitationResponse",
    "LeadImportResponse",
    "MonitoringCreateRequest",
    "MonitoringResponse",
    "NotificationResponse",
    "ProjectRequestCreateRequest",
    "ProjectRequestResponse",
    "ProjectCreateRequest",
    "ProjectResponse",
    "ProjectImageResponse",
    "TicketCreateRequest",
    "SupportTicketResponse",
    "SystemHealthResponse",
    "TenantResponse",
    "UserResponse",
]
