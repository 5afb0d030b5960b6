from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

import redis.asyncio as redis
import stripe
from fastapi import HTTPException, status
from redis.exceptions import RedisError

from src.core.auth import AuthContext
from src.core.config import settings
from src.core.repositories.billing import StripeBillingRepository
from src.models.billing import StripeCustomer, StripeSubscription

logger = logging.getLogger(__name__)

HANDLED_EVENTS = (
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
    "invoice.payment_succeeded",
    "invoice.payment_failed",
    "checkout.session.completed",
)


def _require_stripe_key() -> str:
    if not settings.stripe_secret_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Stripe is not configured",
        )
    return settings.stripe_secret_key


def _timestamp(value: object) -> datetime | None:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def subscription_values(subscription: dict) -> dict[str, object]:
    items = ((subscription.get("items") or {}).get("data")) or [{}]
    first_item = items[0] or {}
    price = first_item.get("price") or {}
    return {
        "stripe_price_id": price.get("id"),
        "status": subscription.get("status") or "incomplete",
        "current_period_start": _timestamp(
            subscription.get("current_period_start") or first_item.get("current_period_start")
        ),
        "current_period_end": _timestamp(
            subscription.get("current_period_end") or first_item.get("current_period_end")
        ),
        "cancel_at_period_end": bool(subscription.get("cancel_at_period_end")),
    }


async def publish_subscription_status(user_id: UUID, subscription_status: str) -> None:
    redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    try:
        await redis_client.publish(f"billing:subscription_status:{user_id}", subscription_status)
    except RedisError:
        logger.warning("Failed to publish subscription status for user %s", user_id, exc_info=True)
    finally:
        await redis_client.aclose()


def verify_and_parse_event(raw_body: bytes, stripe_signature: str | None) -> dict:
    if not stripe_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature",
        )
    if not settings.stripe_webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Stripe webhook secret is not configured",
        )

    try:
        stripe.Webhook.construct_event(
            payload=raw_body,
            sig_header=stripe_signature,
            secret=settings.stripe_webhook_secret,
        )
    except (ValueError, stripe.SignatureVerificationError) as exc:
        logger.warning("Rejected Stripe webhook: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Stripe signature",
        ) from exc

    return json.loads(raw_body.decode("utf-8"))


@dataclass(slots=True)
class WebhookResult:
    event_id: str | None
    event_type: str
    processed_at: datetime
    processing_time_ms: int


class StripeBillingService:
    def __init__(self, repository: StripeBillingRepository) -> None:
        self.repository = repository

    async def get_or_create_customer(self, auth: AuthContext) -> StripeCustomer:
        customer = await self.repository.get_customer_by_user_id(auth.user_id)
        if customer is not None:
            return customer

        api_key = _require_stripe_key()
        created = await asyncio.to_thread(
            stripe.Customer.create,
            api_key=api_key,
            email=auth.email,
            name=auth.name or None,
            metadata={"userId": str(auth.user_id), "source": "solarfy_app"},
        )
        logger.info("Created Stripe customer %s for user %s", created["id"], auth.user_id)
        return await self.repository.create_customer(user_id=auth.user_id, stripe_customer_id=created["id"])

    async def create_checkout_session(
        self,
        auth: AuthContext,
        *,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> dict[str, str | None]:
        customer = await self.get_or_create_customer(auth)
        api_key = _require_stripe_key()
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=api_key,
                mode="subscription",
                customer=customer.stripe_customer_id,
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=success_url,
                cancel_url=cancel_url,
                allow_promotion_codes=True,
                billing_address_collection="auto",
                locale="en",
                currency="usd",
                metadata={"userId": str(auth.user_id), "tenantId": str(auth.tenant_id)},
            )
        except stripe.StripeError as exc:
            logger.exception("Stripe checkout session failed for user %s", auth.user_id)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to create checkout session",
            ) from exc
        return {"session_id": session["id"], "url": session.get("url")}

    async def create_portal_session(self, auth: AuthContext, *, return_url: str) -> dict[str, str]:
        customer = await self.repository.get_customer_by_user_id(auth.user_id)
        if customer is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Stripe customer not found",
            )
        api_key = _require_stripe_key()
        try:
            session = await asyncio.to_thread(
                stripe.billing_portal.Session.create,
                api_key=api_key,
                customer=customer.stripe_customer_id,
                return_url=return_url,
            )
        except stripe.StripeError as exc:
            logger.exception("Stripe billing portal session failed for user %s", auth.user_id)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to create billing portal session",
            ) from exc
        return {"url": session["url"]}

    async def list_subscriptions(self, user_id: UUID) -> list[StripeSubscription]:
        return await self.repository.list_subscriptions(user_id)

    async def sync_subscription(self, auth: AuthContext) -> tuple[bool, str, StripeSubscription | None]:
        customer = await self.repository.get_customer_by_user_id(auth.user_id)
        if customer is None:
            return False, "No Stripe customer found for this user", None

        api_key = _require_stripe_key()
        result = await asyncio.to_thread(
            stripe.Subscription.list,
            api_key=api_key,
            customer=customer.stripe_customer_id,
            status="active",
            limit=1,
        )
        remote = list(result.get("data") or [])
        if not remote:
            return False, "No active subscription found in Stripe", None

        subscription = remote[0]
        existing = await self.repository.get_subscription(subscription["id"])
        if existing is not None:
            return True, "Subscription already synced", existing

        stored = await self.repository.upsert_subscription(
            subscription["id"],
            user_id=auth.user_id,
            **subscription_values(subscription),
        )
        logger.info("Synced Stripe subscription %s for user %s", subscription["id"], auth.user_id)
        return True, "Subscription synced successfully", stored

    async def _user_for_subscription(self, subscription: dict) -> UUID | None:
        customer = await self.repository.get_customer_by_stripe_id(str(subscription.get("customer") or ""))
        if customer is None:
            logger.error("No local customer for Stripe customer %s", subscription.get("customer"))
            return None
        return customer.user_id

    async def _subscription_created(self, subscription: dict) -> None:
        user_id = await self._user_for_subscription(subscription)
        if user_id is None:
            return
        stored = await self.repository.upsert_subscription(
            subscription["id"],
            user_id=user_id,
            **subscription_values(subscription),
        )
        await publish_subscription_status(user_id, stored.status)

    async def _subscription_updated(self, subscription: dict) -> None:
        existing = await self.repository.get_subscription(subscription["id"])
        if existing is None:
            await self._subscription_created(subscription)
            return
        stored = await self.repository.upsert_subscription(subscription["id"], **subscription_values(subscription))
        await publish_subscription_status(stored.user_id, stored.status)

    async def _subscription_deleted(self, subscription: dict) -> None:
        existing = await self.repository.get_subscription(subscription["id"])
        if existing is None:
            logger.warning("Deleted subscription %s is not stored locally", subscription["id"])
            return
        stored = await self.repository.upsert_subscription(subscription["id"], status="canceled")
        await publish_subscription_status(stored.user_id, stored.status)

    async def process_event(self, event: dict) -> WebhookResult:
        started = time.perf_counter()
        event_type = str(event.get("type") or "unknown")
        obj = (event.get("data") or {}).get("object") or {}

        if event_type == "customer.subscription.created":
            await self._subscription_created(obj)
        elif event_type == "customer.subscription.updated":
            await self._subscription_updated(obj)
        elif event_type == "customer.subscription.deleted":
            await self._subscription_deleted(obj)
        elif event_type == "invoice.payment_succeeded":
            logger.info("Invoice %s paid for customer %s", obj.get("id"), obj.get("customer"))
        elif event_type == "invoice.payment_failed":
            logger.warning("Invoice %s payment failed for customer %s", obj.get("id"), obj.get("customer"))
        elif event_type == "checkout.session.completed":
            logger.info("Checkout session %s completed", obj.get("id"))
        else:
            logger.info("Ignoring unhandled Stripe event %s", event_type)

        return WebhookResult(
            event_id=event.get("id"),
            event_type=event_type,
            processed_at=datetime.now(timezone.utc),
            processing_time_ms=int((time.perf_counter() - started) * 1000),
        )
