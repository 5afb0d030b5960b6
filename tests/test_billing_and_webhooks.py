from __future__ import annotations

import json
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi import HTTPException
from redis.exceptions import ConnectionError as RedisConnectionError

from src.core import billing
from src.core.auth import AuthContext
from src.core.billing import StripeBillingService, subscription_values, verify_and_parse_event


def _auth() -> AuthContext:
    return AuthContext(tenant_id=uuid4(), user_id=uuid4(), role="ADMIN", email="owner@example.com", name="Owner")


class _FakeBillingRepo:
    def __init__(self, *, customer=None, subscriptions: dict | None = None) -> None:  # noqa: ANN001
        self.customer = customer
        self.subscriptions = dict(subscriptions or {})
        self.created_customers: list[dict] = []

    async def get_customer_by_user_id(self, user_id):  # noqa: ANN001
        return self.customer

    async def get_customer_by_stripe_id(self, stripe_customer_id):  # noqa: ANN001
        if self.customer and self.customer.stripe_customer_id == stripe_customer_id:
            return self.customer
        return None

    async def create_customer(self, *, user_id, stripe_customer_id):  # noqa: ANN001
        self.customer = SimpleNamespace(user_id=user_id, stripe_customer_id=stripe_customer_id)
        self.created_customers.append({"user_id": user_id, "stripe_customer_id": stripe_customer_id})
        return self.customer

    async def get_subscription(self, stripe_subscription_id):  # noqa: ANN001
        return self.subscriptions.get(stripe_subscription_id)

    async def list_subscriptions(self, user_id):  # noqa: ANN001
        return list(self.subscriptions.values())

    async def upsert_subscription(self, stripe_subscription_id, **values):  # noqa: ANN001
        existing = self.subscriptions.get(stripe_subscription_id)
        if existing is None:
            existing = SimpleNamespace(stripe_subscription_id=stripe_subscription_id, **values)
            self.subscriptions[stripe_subscription_id] = existing
        else:
            for field, value in values.items():
                setattr(existing, field, value)
        return existing


def _subscription_payload(**overrides) -> dict:  # noqa: ANN003
    payload = {
        "id": "sub_123",
        "customer": "cus_123",
        "status": "active",
        "cancel_at_period_end": False,
        "items": {
            "data": [
                {
                    "price": {"id": "price_pro"},
                    "current_period_start": 1_700_000_000,
                    "current_period_end": 1_702_592_000,
                }
            ]
        },
    }
    payload.update(overrides)
    return payload


def test_subscription_values_reads_item_periods() -> None:
    values = subscription_values(_subscription_payload())

    assert values["stripe_price_id"] == "price_pro"
    assert values["status"] == "active"
    assert values["current_period_start"] == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
    assert values["current_period_end"] == datetime.fromtimestamp(1_702_592_000, tz=timezone.utc)
    assert values["cancel_at_period_end"] is False


def test_subscription_values_defaults_when_fields_missing() -> None:
    values = subscription_values({"id": "sub_empty"})

    assert values["stripe_price_id"] is None
    assert values["status"] == "incomplete"
    assert values["current_period_start"] is None
    assert values["current_period_end"] is None


def test_verify_and_parse_event_requires_signature(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(billing.settings, "stripe_webhook_secret", "whsec_test")
    with pytest.raises(HTTPException) as exc:
        verify_and_parse_event(b"{}", None)
    assert exc.value.status_code == 400


def test_verify_and_parse_event_requires_configured_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(billing.settings, "stripe_webhook_secret", "")
    with pytest.raises(HTTPException) as exc:
        verify_and_parse_event(b"{}", "t=1,v1=abc")
    assert exc.value.status_code == 503


def test_verify_and_parse_event_rejects_bad_signature(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(billing.settings, "stripe_webhook_secret", "whsec_test")

    def _reject(**kwargs):  # noqa: ANN003
        raise ValueError("No signatures found matching the expected signature for payload")

    monkeypatch.setattr(billing.stripe.Webhook, "construct_event", _reject)
    with pytest.raises(HTTPException) as exc:
        verify_and_parse_event(b"{}", "t=1,v1=bad")
    assert exc.value.status_code == 401


def test_verify_and_parse_event_returns_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(billing.settings, "stripe_webhook_secret", "whsec_test")
    monkeypatch.setattr(billing.stripe.Webhook, "construct_event", lambda **kwargs: object())

    payload = {"id": "evt_1", "type": "invoice.payment_succeeded"}
    assert verify_and_parse_event(json.dumps(payload).encode(), "t=1,v1=ok") == payload


@pytest.mark.asyncio
async def test_process_subscription_created_stores_and_publishes(monkeypatch: pytest.MonkeyPatch) -> None:
    user_id = uuid4()
    repo = _FakeBillingRepo(customer=SimpleNamespace(user_id=user_id, stripe_customer_id="cus_123"))
    publish = AsyncMock()
    monkeypatch.setattr(billing, "publish_subscription_status", publish)

    result = await StripeBillingService(repo).process_event(
        {"id": "evt_1", "type": "customer.subscription.created", "data": {"object": _subscription_payload()}}
    )

    stored = repo.subscriptions["sub_123"]
    assert stored.user_id == user_id
    assert stored.stripe_price_id == "price_pro"
    assert result.event_id == "evt_1"
    assert result.event_type == "customer.subscription.created"
    assert result.processing_time_ms >= 0
    publish.assert_awaited_once_with(user_id, "active")


@pytest.mark.asyncio
async def test_subscription_is_stored_when_redis_is_down(monkeypatch: pytest.MonkeyPatch) -> None:
    user_id = uuid4()
    repo = _FakeBillingRepo(customer=SimpleNamespace(user_id=user_id, stripe_customer_id="cus_123"))
    redis_client = SimpleNamespace(
        publish=AsyncMock(side_effect=RedisConnectionError("connection refused")),
        aclose=AsyncMock(),
    )
    monkeypatch.setattr(billing.redis, "from_url", lambda url, **kwargs: redis_client)

    result = await StripeBillingService(repo).process_event(
        {"id": "evt_2", "type": "customer.subscription.created", "data": {"object": _subscription_payload()}}
    )

    assert result.event_id == "evt_2"
    assert repo.subscriptions["sub_123"].status == "active"
    redis_client.publish.assert_awaited_once_with(f"billing:subscription_status:{user_id}", "active")
    redis_client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_process_subscription_created_without_customer_is_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    repo = _FakeBillingRepo()
    publish = AsyncMock()
    monkeypatch.setattr(billing, "publish_subscription_status", publish)

    await StripeBillingService(repo).process_event(
        {"type": "customer.subscription.created", "data": {"object": _subscription_payload()}}
    )

    assert repo.subscriptions == {}
    publish.assert_not_awaited()


@pytest.mark.asyncio
async def test_process_subscription_updated_and_deleted(monkeypatch: pytest.MonkeyPatch) -> None:
    user_id = uuid4()
    existing = SimpleNamespace(stripe_subscription_id="sub_123", user_id=user_id, status="active")
    repo = _FakeBillingRepo(subscriptions={"sub_123": existing})
    publish = AsyncMock()
    monkeypatch.setattr(billing, "publish_subscription_status", publish)
    service = StripeBillingService(repo)

    await service.process_event(
        {
            "type": "customer.subscription.updated",
            "data": {"object": _subscription_payload(status="past_due", cancel_at_period_end=True)},
        }
    )
    assert existing.status == "past_due"
    assert existing.cancel_at_period_end is True

    await service.process_event(
        {"type": "customer.subscription.deleted", "data": {"object": _subscription_payload()}}
    )
    assert existing.status == "canceled"
    assert [call.args for call in publish.await_args_list] == [(user_id, "past_due"), (user_id, "canceled")]


@pytest.mark.asyncio
async def test_process_unhandled_event_is_acknowledged() -> None:
    result = await StripeBillingService(_FakeBillingRepo()).process_event({"id": "evt_9", "type": "charge.refunded"})

    assert result.event_type == "charge.refunded"
    assert result.event_id == "evt_9"


@pytest.mark.asyncio
async def test_get_or_create_customer_reuses_existing() -> None:
    customer = SimpleNamespace(user_id=uuid4(), stripe_customer_id="cus_existing")
    repo = _FakeBillingRepo(customer=customer)

    assert await StripeBillingService(repo).get_or_create_customer(_auth()) is customer
    assert repo.created_customers == []


@pytest.mark.asyncio
async def test_get_or_create_customer_creates_in_stripe(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(billing.settings, "stripe_secret_key", "sk_test")
    monkeypatch.setattr(billing.stripe.Customer, "create", lambda **kwargs: {"id": "cus_new"})
    repo = _FakeBillingRepo()
    auth = _auth()

    customer = await StripeBillingService(repo).get_or_create_customer(auth)

    assert customer.stripe_customer_id == "cus_new"
    assert repo.created_customers == [{"user_id": auth.user_id, "stripe_customer_id": "cus_new"}]


@pytest.mark.asyncio
async def test_checkout_requires_stripe_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(billing.settings, "stripe_secret_key", "")
    customer = SimpleNamespace(user_id=uuid4(), stripe_customer_id="cus_1")

    with pytest.raises(HTTPException) as exc:
        await StripeBillingService(_FakeBillingRepo(customer=customer)).create_checkout_session(
            _auth(),
            price_id="price_pro",
            success_url="https://app.example.com/ok",
            cancel_url="https://app.example.com/cancel",
        )
    assert exc.value.status_code == 503


@pytest.mark.asyncio
async def test_portal_requires_existing_customer() -> None:
    with pytest.raises(HTTPException) as exc:
        await StripeBillingService(_FakeBillingRepo()).create_portal_session(
            _auth(), return_url="https://app.example.com/billing"
        )
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_sync_subscription_paths(monkeypatch: pytest.MonkeyPatch) -> None:
    synced, message, subscription = await StripeBillingService(_FakeBillingRepo()).sync_subscription(_auth())
    assert synced is False
    assert subscription is None
    assert "No Stripe customer" in message

    monkeypatch.setattr(billing.settings, "stripe_secret_key", "sk_test")
    monkeypatch.setattr(
        billing.stripe.Subscription,
        "list",
        lambda **kwargs: {"data": [_subscription_payload(id="sub_remote")]},
    )
    auth = _auth()
    repo = _FakeBillingRepo(customer=SimpleNamespace(user_id=auth.user_id, stripe_customer_id="cus_123"))

    synced, message, subscription = await StripeBillingService(repo).sync_subscription(auth)
    assert synced is True
    assert message == "Subscription synced successfully"
    assert subscription.user_id == auth.user_id

    synced, message, again = await StripeBillingService(repo).sync_subscription(auth)
    assert message == "Subscription already synced"
    assert again is subscription
