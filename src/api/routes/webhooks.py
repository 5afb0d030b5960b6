from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.billing import HANDLED_EVENTS, StripeBillingService, verify_and_parse_event
from src.core.config import settings
from src.core.db import get_db_session
from src.core.repositories.billing import StripeBillingRepository
from src.schemas.billing import StripeWebhookInfoResponse, StripeWebhookResponse

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.get("/stripe", response_model=StripeWebhookInfoResponse)
async def stripe_webhook_info() -> StripeWebhookInfoResponse:
    return StripeWebhookInfoResponse(
        message="Stripe webhook endpoint",
        endpoint="/api/v1/webhooks/stripe",
        configured=bool(settings.stripe_webhook_secret),
        handled_events=list(HANDLED_EVENTS),
    )


@router.post("/stripe", response_model=StripeWebhookResponse)
async def stripe_webhook(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
) -> StripeWebhookResponse:
    raw_body = await request.body()
    event = verify_and_parse_event(raw_body, stripe_signature)

    result = await StripeBillingService(StripeBillingRepository(session)).process_event(event)
    await session.commit()
    return StripeWebhookResponse(
        event_id=result.event_id,
        event_type=result.event_type,
        processed_at=result.processed_at,
        processing_time_ms=result.processing_time_ms,
    )
