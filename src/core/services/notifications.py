from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from uuid import UUID

from fastapi import HTTPException, status

from src.core.repositories.notifications import NotificationRepository
from src.core.repositories.users import UserRepository
from src.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, notifications: NotificationRepository, users: UserRepository) -> None:
        self.notifications = notifications
        self.users = users

    async def notify_users(
        self,
        user_ids: Iterable[UUID],
        *,
        title: str,
        message: str,
        notification_type: NotificationType,
        data: dict | None = None,
    ) -> list[Notification]:
        created: list[Notification] = []
        for user_id in dict.fromkeys(user_ids):
            try:
                async with self.notifications.savepoint():
                    notification = await self.notifications.create(
                        user_id=user_id,
                        title=title,
                        message=message,
                        type=notification_type.value,
                        data=data,
                        is_read=False,
                    )
            except Exception:
                logger.exception("Failed to create %s notification for user %s", notification_type.value, user_id)
                continue
            created.append(notification)
        return created

    async def notify_roles(
        self,
        roles: Iterable[str],
        *,
        exclude_user_id: UUID | None,
        title: str,
        message: str,
        notification_type: NotificationType,
        data: dict | None = None,
    ) -> list[Notification]:
        user_ids = await self.users.list_ids_by_roles(roles, exclude_user_id=exclude_user_id)
        if not user_ids:
            logger.info("No recipients for %s notification", notification_type.value)
            return []
        return await self.notify_users(
            user_ids,
            title=title,
            message=message,
            notification_type=notification_type,
            data=data,
        )

    async def list_for_user(self, user_id: UUID, *, unread_only: bool = False, limit: int = 20) -> list[Notification]:
        return await self.notifications.list_for_user(user_id, unread_only=unread_only, limit=limit)

    async def unread_count(self, user_id: UUID) -> int:
        return await self.notifications.count_unread(user_id)

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self.notifications.get_for_user(notification_id, user_id)
        if notification is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Notification not found",
            )
        if notification.is_read:
            return notification

        updated = await self.notifications.update(
            notification.id,
            is_read=True,
            read_at=datetime.now(timezone.utc),
        )
        return updated or notification

    async def mark_all_as_read(self, user_id: UUID) -> int:
        return await self.notifications.mark_all_read(user_id)
