from src.core.repositories.base import Page, TenantContextMissingError, TenantRepository
from src.core.repositories.billing import StripeBillingRepository
from src.core.repositories.company import CompanyRepository
from src.core.repositories.crm_leads import CrmLeadRepository, JourneyStepRepository, LeadFilters
from src.core.repositories.customers import CustomerRepository
from src.core.repositories.enphase_configs import EnphaseConfigRepository
from src.core.repositories.invitations import InvitationRepository
from src.core.repositories.monitoring import MonitoringDataRepository, MonitoringFilters
from src.core.repositories.notifications import NotificationRepository
from src.core.repositories.project_requests import ProjectRequestFilters, ProjectRequestRepository
from src.core.repositories.projects import ProjectFilters, ProjectImageRepository, ProjectRepository
from src.core.repositories.support import SupportTicketRepository, TicketFilters, TicketResponseRepository
from src.core.repositories.tenants import TenantAccountRepository
from src.core.repositories.users import UserRepository

__all__ = [
    "Page",
    "TenantContextMissingError",
    "TenantRepository",
    "StripeBillingRepository",
    "CompanyRepository",
    "CrmLeadRepository",
    "JourneyStepRepository",
    "LeadFilters",
    "CustomerRepository",
    "EnphaseConfigRepository",
    "InvitationRepository",
    "MonitoringDataRepository",
    "MonitoringFilters",
    "NotificationRepository",
    "ProjectRequestFilters",
    "ProjectRequestRepository",
    "ProjectFilters",
    "ProjectImageRepository",
    "ProjectRepository",
    "SupportTicketRepository",
    "TicketFilters",
    "TicketResponseRepository",
    "TenantAccountRepository",
    "UserRepository",
]
