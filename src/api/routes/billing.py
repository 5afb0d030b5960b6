from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context
from src.core.billing import StripeBillingService
from src.core.db import get_db_session
from src.core.repositories.billing import StripeBillingRepository
from src.schemas.billing import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PortalSessionRequest,
    PortalSessionResponse,
    SubscriptionResponse,
    SubscriptionSyncResponse,
)

router = APIRouter(prefix="/stripe", tags=["billing"])


def _build_service(session: AsyncSession) -> StripeBillingService:
    return StripeBillingService(StripeBillingRepository(session))


@router.post("/checkout", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    payload: CheckoutSessionRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> CheckoutSessionResponse:
    result = await _build_service(session).create_checkout_session(
        auth,
        price_id=payload.price_id,
        success_url=payload.success_url,
        cancel_url=payload.cancel_url,
    )
    await session.commit()
    return CheckoutSessionResponse(**result)


@router.post("/portal", response_model=PortalSessionResponse)
async def create_portal_session(
    payload: PortalSessionRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> PortalSessionResponse:
    result = await _build_service(session).create_portal_session(auth, return_url=payload.return_url)
    return PortalSessionResponse(**result)


@router.get("/subscriptions", response_model=list[SubscriptionResponse])
async def list_subscriptions(
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> list[SubscriptionResponse]:
    subscriptions = await _build_service(session).list_subscriptions(auth.user_id)
    return [SubscriptionResponse.model_validate(subscription) for subscription in subscriptions]


@router.post("/subscriptions/sync", response_model=SubscriptionSyncResponse)
async def sync_subscription(
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> SubscriptionSyncResponse:
    synced, message, subscription = await _build_service(session).sync_subscription(auth)
    await session.commit()
    return SubscriptionSyncResponse(
        synced=synced,
        message=message,
        subscription=SubscriptionResponse.model_validate(subscription) if subscription else None,
    )
