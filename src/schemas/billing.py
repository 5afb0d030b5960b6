from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CheckoutSessionRequest(BaseModel):
    price_id: str = Field(min_length=1, max_length=255)
    success_url: str = Field(min_length=1, max_length=2048)
    cancel_url: str = Field(min_length=1, max_length=2048)


class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: str | None = None


class PortalSessionRequest(BaseModel):
    return_url: str = Field(min_length=1, max_length=2048)


class PortalSessionResponse(BaseModel):
    url: str


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    stripe_subscription_id: str
    stripe_price_id: str | None = None
    status: str
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool
    created_at: datetime


class SubscriptionSyncResponse(BaseModel):
    synced: bool
    message: str
    subscription: SubscriptionResponse | None = None


class StripeWebhookResponse(BaseModel):
    success: bool = True
    received: bool = True
    event_id: str | None = None
    event_type: str
    processed_at: datetime
    processing_time_ms: int


class StripeWebhookInfoResponse(BaseModel):
    success: bool = True
    message: str
    endpoint: str
    method: str = "POST"
    configured: bool
    handled_events: list[str]
