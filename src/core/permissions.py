from __future__ import annotations

import enum
from dataclasses import asdict, dataclass

from src.models.user import UserRole


class Permission(str, enum.Enum):
    CREATE_USER = "CREATE_USER"
    READ_USERS = "READ_USERS"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"
    INVITE_USER = "INVITE_USER"

    CREATE_CUSTOMER = "CREATE_CUSTOMER"
    READ_CUSTOMERS = "READ_CUSTOMERS"
    UPDATE_CUSTOMER = "UPDATE_CUSTOMER"
    DELETE_CUSTOMER = "DELETE_CUSTOMER"

    CREATE_PROJECT = "CREATE_PROJECT"
    READ_PROJECTS = "READ_PROJECTS"
    UPDATE_PROJECT = "UPDATE_PROJECT"
    DELETE_PROJECT = "DELETE_PROJECT"

    READ_EQUIPMENT = "READ_EQUIPMENT"
    UPDATE_EQUIPMENT = "UPDATE_EQUIPMENT"

    VIEW_ANALYTICS = "VIEW_ANALYTICS"
    MANAGE_TENANT = "MANAGE_TENANT"
    MANAGE_PERMISSIONS = "MANAGE_PERMISSIONS"

    CREATE_PROJECT_REQUEST = "CREATE_PROJECT_REQUEST"
    READ_PROJECT_REQUESTS = "READ_PROJECT_REQUESTS"


ROLE_HIERARCHY: dict[str, int] = {
    UserRole.VIEWER.value: 1,
    UserRole.TECHNICIAN.value: 2,
    UserRole.SALES_REP.value: 3,
    UserRole.MANAGER.value: 4,
    UserRole.ADMIN.value: 5,
}

ROLE_PERMISSIONS: dict[str, frozenset[Permission]] = {
    UserRole.ADMIN.value: frozenset(
        {
            Permission.CREATE_USER,
            Permission.READ_USERS,
            Permission.UPDATE_USER,
            Permission.DELETE_USER,
            Permission.INVITE_USER,
            Permission.CREATE_CUSTOMER,
            Permission.READ_CUSTOMERS,
            Permission.UPDATE_CUSTOMER,
            Permission.DELETE_CUSTOMER,
            Permission.CREATE_PROJECT,
            Permission.READ_PROJECTS,
            Permission.UPDATE_PROJECT,
            Permission.DELETE_PROJECT,
            Permission.READ_EQUIPMENT,
            Permission.UPDATE_EQUIPMENT,
            Permission.VIEW_ANALYTICS,
            Permission.MANAGE_TENANT,
            Permission.MANAGE_PERMISSIONS,
        }
    ),
    UserRole.MANAGER.value: frozenset(
        {
            Permission.READ_USERS,
            Permission.INVITE_USER,
            Permission.CREATE_CUSTOMER,
            Permission.READ_CUSTOMERS,
            Permission.UPDATE_CUSTOMER,
            Permission.CREATE_PROJECT,
            Permission.READ_PROJECTS,
            Permission.UPDATE_PROJECT,
            Permission.READ_EQUIPMENT,
            Permission.UPDATE_EQUIPMENT,
            Permission.VIEW_ANALYTICS,
        }
    ),
    UserRole.SALES_REP.value: frozenset(
        {
            Permission.CREATE_CUSTOMER,
            Permission.READ_CUSTOMERS,
            Permission.UPDATE_CUSTOMER,
            Permission.READ_PROJECTS,
            Permission.CREATE_PROJECT,
            Permission.READ_EQUIPMENT,
            Permission.VIEW_ANALYTICS,
        }
    ),
    UserRole.TECHNICIAN.value: frozenset(
        {
            Permission.READ_PROJECTS,
            Permission.UPDATE_PROJECT,
            Permission.READ_EQUIPMENT,
            Permission.READ_CUSTOMERS,
        }
    ),
    UserRole.VIEWER.value: frozenset(
        {
            Permission.READ_CUSTOMERS,
            Permission.READ_PROJECTS,
            Permission.READ_EQUIPMENT,
            Permission.CREATE_PROJECT_REQUEST,
            Permission.READ_PROJECT_REQUESTS,
        }
    ),
}

MONITORING_ROLES = frozenset({"ADMIN", "MANAGER", "TECHNICIAN", "VIEWER"})
CRM_ROLES = frozenset({"ADMIN", "MANAGER", "SALES_REP"})
PROJECT_ROLES = frozenset({"ADMIN", "MANAGER", "SALES_REP", "TECHNICIAN"})
COMPANY_ROLES = frozenset({"ADMIN", "MANAGER"})
BILLING_ROLES = frozenset({"ADMIN"})


@dataclass(slots=True)
class NavigationPermissions:
    can_view_monitoring: bool
    can_view_leads: bool
    can_view_crm: bool
    can_view_projects: bool
    can_view_reports: bool
    can_manage_company: bool
    can_manage_billing: bool

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)


def role_level(role: str) -> int:
    return ROLE_HIERARCHY.get(role, 0)


def permissions_for_role(role: str) -> frozenset[Permission]:
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role: str, permission: Permission | str, extra: list[str] | None = None) -> bool:
    value = permission.value if isinstance(permission, Permission) else permission
    if extra and value in extra:
        return True
    return any(p.value == value for p in permissions_for_role(role))


def can_manage_role(requester_role: str, target_role: str) -> bool:
    if requester_role == UserRole.ADMIN.value:
        return True
    return role_level(requester_role) > role_level(target_role)


def navigation_for_role(role: str) -> NavigationPermissions:
    return NavigationPermissions(
        can_view_monitoring=role in MONITORING_ROLES,
        can_view_leads=role in CRM_ROLES,
        can_view_crm=role in CRM_ROLES,
        can_view_projects=role in PROJECT_ROLES,
        can_view_reports=role in PROJECT_ROLES,
        can_manage_company=role in COMPANY_ROLES,
        can_manage_billing=role in BILLING_ROLES,
    )
