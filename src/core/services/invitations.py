from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from fastapi import HTTPException, status

from src.core.auth import AuthContext, create_access_token
from src.core.config import settings
from src.core.context import set_current_tenant_id
from src.core.email import EmailDeliveryError, InvitationEmail, ResendEmailClient, invitation_url
from src.core.repositories.invitations import InvitationRepository
from src.core.repositories.tenants import TenantAccountRepository
from src.core.repositories.users import UserRepository
from src.core.security.crypto import PasswordHasher
from src.core.services.users import ensure_can_assign_role
from src.models.invitation import Invitation, InvitationStatus
from src.models.user import User, UserRole, UserStatus

logger = logging.getLogger(__name__)


def generate_invitation_token() -> str:
    return secrets.token_hex(32)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _is_expired(invitation: Invitation) -> bool:
    expires_at = invitation.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < _now()


@dataclass(slots=True)
class InvitationCheck:
    status: str
    invitation: Invitation
    tenant_name: str | None


@dataclass(slots=True)
class AcceptedInvitation:
    user: User
    access_token: str
    tenant_name: str | None


class InvitationService:
    def __init__(
        self,
        invitations: InvitationRepository,
        users: UserRepository,
        tenants: TenantAccountRepository,
        email_client: ResendEmailClient,
        password_hasher: PasswordHasher,
    ) -> None:
        self.invitations = invitations
        self.users = users
        self.tenants = tenants
        self.email_client = email_client
        self.password_hasher = password_hasher

    def _new_expiry(self) -> datetime:
        return _now() + timedelta(days=settings.invitation_expiry_days)

    async def _send_email(self, invitation: Invitation, inviter_name: str) -> bool:
        tenant = await self.tenants.get(invitation.tenant_id)
        message = InvitationEmail(
            to=invitation.email,
            invite_url=invitation_url(invitation.token),
            role_name=invitation.role,
            inviter_name=inviter_name or "A teammate",
            tenant_name=tenant.name if tenant else "your team",
            expiry_days=settings.invitation_expiry_days,
        )
        try:
            await self.email_client.send_invitation(message)
        except EmailDeliveryError:
            logger.warning("Invitation %s stored but email delivery failed", invitation.id)
            return False
        return True

    async def invite(self, auth: AuthContext, *, email: str, role: str) -> tuple[Invitation, bool]:
        email = email.strip().lower()
        if await self.users.get_by_email(email) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A user with this email already exists",
            )
        if await self.invitations.get_pending_by_email(email) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A pending invitation already exists for this email",
            )
        ensure_can_assign_role(auth.role, role)

        invitation = await self.invitations.create(
            email=email,
            role=role,
            token=generate_invitation_token(),
            status=InvitationStatus.PENDING.value,
            expires_at=self._new_expiry(),
            invited_by_id=auth.user_id,
        )
        logger.info("Created invitation %s for role %s", invitation.id, role)
        email_sent = await self._send_email(invitation, auth.name)
        return invitation, email_sent

    async def _require_by_token(self, token: str, *, detail: str) -> Invitation:
        invitation = await self.invitations.get_by_token(token)
        if invitation is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
        set_current_tenant_id(invitation.tenant_id)
        return invitation

    async def _expire(self, invitation: Invitation) -> None:
        await self.invitations.update(invitation.id, status=InvitationStatus.EXPIRED.value)

    async def validate(self, token: str) -> InvitationCheck:
        invitation = await self._require_by_token(token, detail="Invitation not found")

        if _is_expired(invitation):
            await self._expire(invitation)
            raise HTTPException(status_code=status.HTTP_410_GONE, detail="Invitation has expired")

        tenant = await self.tenants.get(invitation.tenant_id)
        tenant_name = tenant.name if tenant else None

        if invitation.status == InvitationStatus.ACCEPTED.value:
            return InvitationCheck(status="accepted", invitation=invitation, tenant_name=tenant_name)
        if invitation.status == InvitationStatus.CANCELLED.value:
            raise HTTPException(status_code=status.HTTP_410_GONE, detail="Invitation has been cancelled")
        return InvitationCheck(status="valid", invitation=invitation, tenant_name=tenant_name)

    async def accept(self, *, token: str, name: str, password: str) -> AcceptedInvitation:
        if not token or not name or not password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Token, name, and password are required",
            )

        invitation = await self._require_by_token(token, detail="Invalid invitation")
        if invitation.status != InvitationStatus.PENDING.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invitation is no longer valid",
            )
        if _is_expired(invitation):
            await self._expire(invitation)
            raise HTTPException(status_code=status.HTTP_410_GONE, detail="Invitation has expired")
        if await self.users.get_by_email(invitation.email) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An account with this email already exists",
            )

        now = _now()
        user = await self.users.create(
            tenant_id=invitation.tenant_id,
            name=name.strip(),
            email=invitation.email,
            role=invitation.role,
            status=UserStatus.ACTIVE.value,
            permissions=[],
            password_hash=self.password_hasher.hash(password),
            last_login=now,
        )
        await self.invitations.update(
            invitation.id,
            status=InvitationStatus.ACCEPTED.value,
            accepted_at=now,
        )
        logger.info("Invitation %s accepted by user %s", invitation.id, user.id)

        tenant = await self.tenants.get(invitation.tenant_id)
        return AcceptedInvitation(
            user=user,
            access_token=create_access_token(user),
            tenant_name=tenant.name if tenant else None,
        )

    async def _require_pending(self, invitation_id: UUID) -> Invitation:
        invitation = await self.invitations.get(invitation_id)
        if invitation is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")
        if invitation.status != InvitationStatus.PENDING.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only pending invitations can be changed",
            )
        return invitation

    async def cancel(self, auth: AuthContext, invitation_id: UUID) -> Invitation:
        tenant = await self.tenants.get(auth.tenant_id)
        is_owner = tenant is not None and tenant.owner_id == auth.user_id
        if not is_owner and auth.role != UserRole.ADMIN.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the tenant owner or an administrator can cancel invitations",
            )
        invitation = await self._require_pending(invitation_id)
        updated = await self.invitations.update(invitation.id, status=InvitationStatus.CANCELLED.value)
        logger.info("Cancelled invitation %s", invitation.id)
        return updated or invitation

    async def resend(self, auth: AuthContext, invitation_id: UUID) -> tuple[Invitation, bool]:
        invitation = await self._require_pending(invitation_id)
        updated = await self.invitations.update(
            invitation.id,
            token=generate_invitation_token(),
            expires_at=self._new_expiry(),
        )
        invitation = updated or invitation
        email_sent = await self._send_email(invitation, auth.name)
        return invitation, email_sent

    async def list_pending(self) -> list[Invitation]:
        return await self.invitations.list_pending()
