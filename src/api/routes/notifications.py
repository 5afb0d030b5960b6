from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context
from src.core.db import get_db_session
from src.core.repositories.notifications import NotificationRepository
from src.core.repositories.users import UserRepository
from src.core.services.notifications import NotificationService
from src.schemas.notifications import MarkAllReadResponse, NotificationResponse, UnreadCountResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _build_service(session: AsyncSession) -> NotificationService:
    return NotificationService(NotificationRepository(session), UserRepository(session))


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    limit: int = Query(default=20, ge=1, le=100),
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> list[NotificationResponse]:
    notifications = await _build_service(session).list_for_user(auth.user_id, unread_only=unread_only, limit=limit)
    return [NotificationResponse.model_validate(notification) for notification in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=await _build_service(session).unread_count(auth.user_id))


@router.patch("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> MarkAllReadResponse:
    updated = await _build_service(session).mark_all_as_read(auth.user_id)
    await session.commit()
    return MarkAllReadResponse(updated=updated)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> NotificationResponse:
    notification = await _build_service(session).mark_as_read(notification_id, auth.user_id)
    await session.commit()
    return NotificationResponse.model_validate(notification)
