from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.billing import StripeCustomer, StripeSubscription


class StripeBillingRepository:
    """Stripe mirror rows are keyed by user rather than tenant."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_customer_by_user_id(self, user_id: UUID) -> StripeCustomer | None:
        return await self.session.scalar(select(StripeCustomer).where(StripeCustomer.user_id == user_id))

    async def get_customer_by_stripe_id(self, stripe_customer_id: str) -> StripeCustomer | None:
        return await self.session.scalar(
            select(StripeCustomer).where(StripeCustomer.stripe_customer_id == stripe_customer_id)
        )

    async def create_customer(self, *, user_id: UUID, stripe_customer_id: str) -> StripeCustomer:
        customer = StripeCustomer(user_id=user_id, stripe_customer_id=stripe_customer_id)
        self.session.add(customer)
        await self.session.flush()
        return customer

    async def get_subscription(self, stripe_subscription_id: str) -> StripeSubscription | None:
        return await self.session.scalar(
            select(StripeSubscription).where(StripeSubscription.stripe_subscription_id == stripe_subscription_id)
        )

    async def list_subscriptions(self, user_id: UUID) -> list[StripeSubscription]:
        result = await self.session.scalars(
            select(StripeSubscription)
            .where(StripeSubscription.user_id == user_id)
            .order_by(StripeSubscription.created_at.desc())
        )
        return list(result.all())

    async def upsert_subscription(self, stripe_subscription_id: str, **values: object) -> StripeSubscription:
        subscription = await self.get_subscription(stripe_subscription_id)
        if subscription is None:
            subscription = StripeSubscription(stripe_subscription_id=stripe_subscription_id, **values)
            self.session.add(subscription)
        else:
            for field, value in values.items():
                setattr(subscription, field, value)
        await self.session.flush()
        return subscription
