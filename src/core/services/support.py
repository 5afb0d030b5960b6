from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import HTTPException, status

from src.core.auth import AuthContext
from src.core.repositories.support import SupportTicketRepository, TicketFilters, TicketResponseRepository
from src.core.repositories.users import UserRepository
from src.core.services.notifications import NotificationService
from src.models.notification import NotificationType
from src.models.support import SupportTicket, TicketCategory, TicketPriority, TicketResponse, TicketStatus
from src.models.user import UserRole

logger = logging.getLogger(__name__)

TICKET_CREATOR_ROLES = frozenset(
    {UserRole.VIEWER.value, UserRole.ADMIN.value, UserRole.MANAGER.value, UserRole.TECHNICIAN.value}
)
SUPPORT_STAFF_ROLES = frozenset({UserRole.ADMIN.value, UserRole.MANAGER.value, UserRole.TECHNICIAN.value})
SUPPORT_MANAGER_ROLES = frozenset({UserRole.ADMIN.value, UserRole.MANAGER.value})

VIEWER_STATUS_TARGETS = frozenset({TicketStatus.OPEN.value, TicketStatus.CLOSED.value})
TECHNICIAN_STATUS_TARGETS = frozenset(
    {TicketStatus.OPEN.value, TicketStatus.IN_PROGRESS.value, TicketStatus.RESOLVED.value}
)


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class SupportTicketService:
    def __init__(
        self,
        tickets: SupportTicketRepository,
        responses: TicketResponseRepository,
        users: UserRepository,
        notifications: NotificationService,
    ) -> None:
        self.tickets = tickets
        self.responses = responses
        self.users = users
        self.notifications = notifications

    async def _require_ticket(self, ticket_id: UUID) -> SupportTicket:
        ticket = await self.tickets.get(ticket_id)
        if ticket is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Ticket not found",
            )
        return ticket

    @staticmethod
    def _ensure_can_view(auth: AuthContext, ticket: SupportTicket) -> None:
        if auth.role == UserRole.VIEWER.value and ticket.created_by_id != auth.user_id:
            raise _forbidden("You can only access your own tickets")
        if auth.role == UserRole.TECHNICIAN.value and ticket.assigned_to_id not in (None, auth.user_id):
            raise _forbidden("This ticket is assigned to another technician")
        if auth.role not in TICKET_CREATOR_ROLES:
            raise _forbidden("Insufficient permissions")

    async def create_ticket(
        self,
        auth: AuthContext,
        *,
        subject: str,
        description: str,
        priority: str | None = None,
        category: str | None = None,
    ) -> SupportTicket:
        if auth.role not in TICKET_CREATOR_ROLES:
            raise _forbidden("Your role cannot create support tickets")
        if not subject.strip() or not description.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Subject and description are required",
            )

        ticket = await self.tickets.create(
            subject=subject.strip(),
            description=description.strip(),
            status=TicketStatus.OPEN.value,
            priority=priority or TicketPriority.MEDIUM.value,
            category=category or TicketCategory.OTHER.value,
            created_by_id=auth.user_id,
        )
        logger.info("Created support ticket %s", ticket.id)

        await self.notifications.notify_roles(
            [UserRole.TECHNICIAN.value, UserRole.ADMIN.value, UserRole.MANAGER.value],
            exclude_user_id=auth.user_id,
            title="New support ticket",
            message=f"{auth.name or auth.email} opened ticket: {ticket.subject}",
            notification_type=NotificationType.TICKET_CREATED,
            data={"ticket_id": str(ticket.id), "priority": ticket.priority},
        )
        return ticket

    async def assign_ticket(self, auth: AuthContext, ticket_id: UUID, technician_id: UUID) -> SupportTicket:
        if auth.role not in SUPPORT_MANAGER_ROLES:
            raise _forbidden("Only administrators and managers can assign tickets")
        ticket = await self._require_ticket(ticket_id)
        if ticket.assigned_to_id is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ticket is already assigned to a technician",
            )

        technician = await self.users.get(technician_id)
        if technician is None or technician.role != UserRole.TECHNICIAN.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Tickets can only be assigned to technicians of this tenant",
            )

        values: dict[str, object] = {"assigned_to_id": technician.id}
        if ticket.status == TicketStatus.OPEN.value:
            values["status"] = TicketStatus.IN_PROGRESS.value
        updated = await self.tickets.update(ticket.id, **values) or ticket

        await self.notifications.notify_users(
            [technician.id],
            title="Ticket assigned to you",
            message=f"You have been assigned ticket: {updated.subject}",
            notification_type=NotificationType.TICKET_ASSIGNED,
            data={"ticket_id": str(updated.id)},
        )
        return updated

    async def update_status(self, auth: AuthContext, ticket_id: UUID, new_status: str) -> SupportTicket:
        ticket = await self._require_ticket(ticket_id)

        if auth.role == UserRole.VIEWER.value:
            if ticket.created_by_id != auth.user_id:
                raise _forbidden("You can only update your own tickets")
            if new_status not in VIEWER_STATUS_TARGETS:
                raise _forbidden("You can only reopen or close your tickets")
        elif auth.role == UserRole.TECHNICIAN.value:
            if ticket.assigned_to_id != auth.user_id:
                raise _forbidden("You can only update tickets assigned to you")
            if new_status not in TECHNICIAN_STATUS_TARGETS:
                raise _forbidden("Technicians cannot set this status")
        elif auth.role not in SUPPORT_MANAGER_ROLES:
            raise _forbidden("Insufficient permissions")

        values: dict[str, object] = {"status": new_status}
        if new_status == TicketStatus.RESOLVED.value:
            values["resolved_at"] = datetime.now(timezone.utc)
        elif ticket.status == TicketStatus.RESOLVED.value:
            values["resolved_at"] = None
        updated = await self.tickets.update(ticket.id, **values) or ticket

        if updated.created_by_id != auth.user_id:
            await self.notifications.notify_users(
                [updated.created_by_id],
                title="Ticket status updated",
                message=f"Ticket '{updated.subject}' is now {new_status}",
                notification_type=NotificationType.TICKET_STATUS_CHANGED,
                data={"ticket_id": str(updated.id), "status": new_status},
            )
        return updated

    async def update_category(self, auth: AuthContext, ticket_id: UUID, category: str) -> SupportTicket:
        if auth.role != UserRole.ADMIN.value:
            raise _forbidden("Only administrators can change ticket categories")
        ticket = await self._require_ticket(ticket_id)
        return await self.tickets.update(ticket.id, category=category) or ticket

    async def add_response(
        self,
        auth: AuthContext,
        ticket_id: UUID,
        *,
        content: str,
        is_internal: bool = False,
    ) -> TicketResponse:
        if not content or not content.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Response content is required",
            )
        if is_internal and auth.role not in SUPPORT_STAFF_ROLES:
            raise _forbidden("Only support staff can add internal notes")

        ticket = await self._require_ticket(ticket_id)
        if auth.role == UserRole.VIEWER.value and ticket.created_by_id != auth.user_id:
            raise _forbidden("You can only respond to your own tickets")
        if auth.role == UserRole.TECHNICIAN.value and ticket.assigned_to_id != auth.user_id:
            raise _forbidden("You can only respond to tickets assigned to you")
        if auth.role not in TICKET_CREATOR_ROLES:
            raise _forbidden("Insufficient permissions")

        response = await self.responses.create(
            ticket_id=ticket.id,
            user_id=auth.user_id,
            content=content.strip(),
            is_internal=is_internal,
        )

        recipients = {ticket.assigned_to_id} if is_internal else {ticket.created_by_id, ticket.assigned_to_id}
        recipients.discard(None)
        recipients.discard(auth.user_id)
        if recipients:
            await self.notifications.notify_users(
                recipients,
                title="New ticket response",
                message=f"New response on ticket: {ticket.subject}",
                notification_type=NotificationType.TICKET_RESPONSE,
                data={"ticket_id": str(ticket.id), "response_id": str(response.id)},
            )
        return response

    async def get_ticket(self, auth: AuthContext, ticket_id: UUID) -> tuple[SupportTicket, list[TicketResponse]]:
        ticket = await self._require_ticket(ticket_id)
        self._ensure_can_view(auth, ticket)
        responses = await self.responses.list_for_ticket(
            ticket.id,
            include_internal=auth.role != UserRole.VIEWER.value,
        )
        return ticket, responses

    async def list_tickets(
        self,
        auth: AuthContext,
        filters: TicketFilters,
        *,
        limit: int = 10,
        offset: int = 0,
    ) -> list[SupportTicket]:
        if auth.role == UserRole.VIEWER.value:
            return await self.tickets.list_tickets(filters, created_by_id=auth.user_id, limit=limit, offset=offset)
        if auth.role == UserRole.TECHNICIAN.value:
            return await self.tickets.list_for_technician(auth.user_id, filters, limit=limit, offset=offset)
        if auth.role in SUPPORT_MANAGER_ROLES:
            return await self.tickets.list_tickets(filters, limit=limit, offset=offset)
        raise _forbidden("Insufficient permissions")

    async def stats(self, auth: AuthContext) -> dict[str, int]:
        created_by_id = auth.user_id if auth.role == UserRole.VIEWER.value else None
        return await self.tickets.stats(user_id=auth.user_id, created_by_id=created_by_id)
