from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from html import escape

import requests

from src.core.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    pass


@dataclass(slots=True)
class InvitationEmail:
    to: str
    invite_url: str
    role_name: str
    inviter_name: str
    tenant_name: str
    expiry_days: int

    @property
    def subject(self) -> str:
        return f"You're invited to join {self.tenant_name} on Solarfy"

    def text(self) -> str:
        return (
            f"{self.inviter_name} has invited you to join {self.tenant_name} as a {self.role_name}.\n\n"
            f"Click here to accept the invitation: {self.invite_url}\n\n"
            f"This invitation will expire in {self.expiry_days} days.\n\n"
            "If you weren't expecting this invitation, you can safely ignore this email."
        )

    def html(self) -> str:
        return (
            "<h2>You're Invited to Join the Team!</h2>"
            f"<p>{escape(self.inviter_name)} has invited you to join <strong>{escape(self.tenant_name)}</strong> "
            f"as a <strong>{escape(self.role_name)}</strong>.</p>"
            f'<p><a href="{escape(self.invite_url)}">Accept Invitation</a></p>'
            f"<p>This invitation will expire in {self.expiry_days} days.</p>"
        )


def invitation_url(token: str) -> str:
    return f"{settings.app_base_url.rstrip('/')}/invite?token={token}"


class ResendEmailClient:
    def __init__(
        self,
        *,
        api_key: str | None = None,
        api_url: str | None = None,
        sender: str | None = None,
        timeout_seconds: int = 10,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.api_url = api_url or settings.resend_api_url
        self.sender = sender or settings.email_from
        self.timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send(self, *, to: str, subject: str, html: str, text: str | None = None) -> str | None:
        if not self.enabled:
            logger.info("Email delivery disabled; skipping message to %s with subject %r", to, subject)
            return None

        payload: dict[str, object] = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        if text:
            payload["text"] = text

        def _post() -> dict:
            response = requests.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            return response.json()

        try:
            body = await asyncio.to_thread(_post)
        except requests.RequestException as exc:
            logger.exception("Failed to send email to %s", to)
            raise EmailDeliveryError(f"Failed to send email: {exc}") from exc

        message_id = str(body.get("id", "")) or None
        logger.info("Sent email %s to %s", message_id, to)
        return message_id

    async def send_invitation(self, email: InvitationEmail) -> str | None:
        return await self.send(to=email.to, subject=email.subject, html=email.html(), text=email.text())


def get_email_client() -> ResendEmailClient:
    return ResendEmailClient()
