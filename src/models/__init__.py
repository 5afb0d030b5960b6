from src.models.base import Base, TenantScopedBase, TimestampedBase
from src.models.billing import StripeCustomer, StripeSubscription
from src.models.company import Company
from src.models.crm_lead import CrmLead, UserJourneyStep
from src.models.customer import Customer
from src.models.enphase_config import EnphaseConfig
from src.models.invitation import Invitation
from src.models.monitoring import MonitoringData
from src.models.notification import Notification
from src.models.project import Project, ProjectImage
from src.models.project_request import ProjectRequest
from src.models.support import SupportTicket, TicketResponse
from src.models.tenant import Tenant
from src.models.user import User

__all__ = [
    "Base",
    "TimestampedBase",
    "TenantScopedBase",
    "Tenant",
    "User",
    "CrmLead",
    "UserJourneyStep",
    "Customer",
    "Project",
    "ProjectImage",
    "MonitoringData",
    "Invitation",
    "SupportTicket",
    "TicketResponse",
    "Notification",
    "Company",
    "StripeCustomer",
    "StripeSubscription",
    "EnphaseConfig",
    "ProjectRequest",
]
