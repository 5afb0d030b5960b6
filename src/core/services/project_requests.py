from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import HTTPException, status

from src.core.auth import AuthContext
from src.core.repositories.base import Page
from src.core.repositories.project_requests import ProjectRequestFilters, ProjectRequestRepository
from src.core.repositories.users import UserRepository
from src.core.services.notifications import NotificationService
from src.models.notification import NotificationType
from src.models.project_request import ProjectRequest, ProjectRequestPriority, ProjectRequestStatus
from src.models.user import UserRole

logger = logging.getLogger(__name__)

REVIEWER_ROLES = frozenset({UserRole.ADMIN.value, UserRole.MANAGER.value})
MIN_REJECTION_REASON_LENGTH = 10
MIN_SEARCH_LENGTH = 2

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    ProjectRequestStatus.PENDING.value: frozenset(
        {
            ProjectRequestStatus.UNDER_REVIEW.value,
            ProjectRequestStatus.APPROVED.value,
            ProjectRequestStatus.REJECTED.value,
        }
    ),
    ProjectRequestStatus.UNDER_REVIEW.value: frozenset(
        {
            ProjectRequestStatus.APPROVED.value,
            ProjectRequestStatus.REJECTED.value,
            ProjectRequestStatus.PENDING.value,
        }
    ),
    ProjectRequestStatus.APPROVED.value: frozenset({ProjectRequestStatus.CONVERTED_TO_PROJECT.value}),
    ProjectRequestStatus.REJECTED.value: frozenset(),
    ProjectRequestStatus.CONVERTED_TO_PROJECT.value: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ProjectRequestService:
    def __init__(
        self,
        requests: ProjectRequestRepository,
        users: UserRepository,
        notifications: NotificationService,
    ) -> None:
        self.requests = requests
        self.users = users
        self.notifications = notifications

    async def _require_request(self, request_id: UUID) -> ProjectRequest:
        project_request = await self.requests.get(request_id)
        if project_request is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Project request not found",
            )
        return project_request

    async def create_request(self, auth: AuthContext, **values: object) -> ProjectRequest:
        if auth.role != UserRole.VIEWER.value:
            raise _forbidden("Only clients can submit project requests")

        values.setdefault("priority", ProjectRequestPriority.NORMAL.value)
        project_request = await self.requests.create(
            status=ProjectRequestStatus.PENDING.value,
            created_by_id=auth.user_id,
            **values,
        )
        logger.info("Created project request %s", project_request.id)

        await self.notifications.notify_roles(
            REVIEWER_ROLES,
            exclude_user_id=auth.user_id,
            title="New project request",
            message=f"{project_request.client_name} requested: {project_request.title}",
            notification_type=NotificationType.PROJECT_REQUEST_CREATED,
            data={"project_request_id": str(project_request.id), "service_type": project_request.service_type},
        )
        return project_request

    async def get_request(self, auth: AuthContext, request_id: UUID) -> ProjectRequest:
        project_request = await self._require_request(request_id)
        if auth.role == UserRole.VIEWER.value and project_request.created_by_id != auth.user_id:
            raise _forbidden("You can only view your own project requests")
        if auth.role != UserRole.VIEWER.value and auth.role not in REVIEWER_ROLES:
            raise _forbidden("Insufficient permissions")
        return project_request

    async def list_requests(
        self,
        auth: AuthContext,
        filters: ProjectRequestFilters,
        *,
        page: int = 1,
        limit: int = 20,
    ) -> Page[ProjectRequest]:
        if filters.search is not None and len(filters.search.strip()) < MIN_SEARCH_LENGTH:
            raise _bad_request("Search term must be at least 2 characters")
        if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
            raise _bad_request("Start date must be before end date")

        if auth.role == UserRole.VIEWER.value:
            filters.created_by_id = auth.user_id
        elif auth.role not in REVIEWER_ROLES:
            raise _forbidden("Insufficient permissions")

        return await self.requests.list_requests(filters, page=page, limit=limit)

    async def assign_request(self, auth: AuthContext, request_id: UUID, assignee_id: UUID) -> ProjectRequest:
        if auth.role not in REVIEWER_ROLES:
            raise _forbidden("Only administrators and managers can assign project requests")
        project_request = await self._require_request(request_id)
        if project_request.status != ProjectRequestStatus.PENDING.value:
            raise _bad_request("Only pending project requests can be assigned")

        assignee = await self.users.get(assignee_id)
        if assignee is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Assignee not found",
            )

        updated = await self.requests.update(
            project_request.id,
            assigned_to_id=assignee.id,
            assigned_at=datetime.now(timezone.utc),
            status=ProjectRequestStatus.UNDER_REVIEW.value,
        )
        updated = updated or project_request

        await self.notifications.notify_users(
            [assignee.id],
            title="Project request assigned",
            message=f"You have been assigned the project request: {updated.title}",
            notification_type=NotificationType.PROJECT_REQUEST_ASSIGNED,
            data={"project_request_id": str(updated.id)},
        )
        return updated

    async def update_status(
        self,
        auth: AuthContext,
        request_id: UUID,
        *,
        new_status: str,
        rejection_reason: str | None = None,
        admin_notes: str | None = None,
        converted_to_project_id: UUID | None = None,
    ) -> ProjectRequest:
        if auth.role not in REVIEWER_ROLES:
            raise _forbidden("Only administrators and managers can review project requests")
        project_request = await self._require_request(request_id)

        if not can_transition(project_request.status, new_status):
            raise _bad_request(f"Cannot change status from {project_request.status} to {new_status}")

        now = datetime.now(timezone.utc)
        values: dict[str, object] = {
            "status": new_status,
            "reviewed_by_id": auth.user_id,
            "reviewed_at": now,
        }
        if new_status == ProjectRequestStatus.REJECTED.value:
            reason = (rejection_reason or "").strip()
            if len(reason) < MIN_REJECTION_REASON_LENGTH:
                raise _bad_request("Rejection reason must be at least 10 characters")
            values["rejection_reason"] = reason
        if new_status == ProjectRequestStatus.CONVERTED_TO_PROJECT.value:
            values["converted_at"] = now
            values["converted_to_project_id"] = converted_to_project_id
        if admin_notes is not None:
            values["admin_notes"] = admin_notes

        updated = await self.requests.update(project_request.id, **values) or project_request
        logger.info("Project request %s moved to %s", updated.id, new_status)

        if new_status == ProjectRequestStatus.APPROVED.value:
            await self.notifications.notify_users(
                [updated.created_by_id],
                title="Project request approved",
                message=f"Your project request '{updated.title}' has been approved",
                notification_type=NotificationType.PROJECT_REQUEST_APPROVED,
                data={"project_request_id": str(updated.id)},
            )
        elif new_status == ProjectRequestStatus.REJECTED.value:
            await self.notifications.notify_users(
                [updated.created_by_id],
                title="Project request rejected",
                message=f"Your project request '{updated.title}' was rejected: {updated.rejection_reason}",
                notification_type=NotificationType.PROJECT_REQUEST_REJECTED,
                data={"project_request_id": str(updated.id)},
            )
        return updated
