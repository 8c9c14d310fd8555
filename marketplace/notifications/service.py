import logging
from typing import List, Optional, Tuple

from marketplace.notifications.config import NOTIFICATION_STATUS_READ, NOTIFICATION_STATUS_UNREAD
from marketplace.notifications.exceptions import (
    NotificationNotFoundException,
    NotificationOwnershipException,
    NotificationRecipientNotFoundException,
)
from marketplace.notifications.models import Notification, NotificationCreate, NotificationRead
from marketplace.notifications.repositories import NotificationRepository
from marketplace.users.models import User, utcnow

logger = logging.getLogger(__name__)

READ_FILTER = {NOTIFICATION_STATUS_READ: True, NOTIFICATION_STATUS_UNREAD: False}


class NotificationService:
    """Consultation et gestion des notifications in-app d'un utilisateur."""

    def __init__(self, notification_repository: NotificationRepository):
        self.notification_repository = notification_repository
        self.db = notification_repository.db

    async def _get_owned(self, notification_id: int, user_id: int) -> Notification:
        notification = await self.notification_repository.get_by_id(notification_id)
        if not notification:
            raise NotificationNotFoundException(notification_id)
        if notification.user_id != user_id:
            logger.warning(f"[NotificationService] User {user_id} n'est pas destinataire de {notification_id}.")
            raise NotificationOwnershipException(notification_id)
        return notification

    async def create_notification(self, notification_in: NotificationCreate) -> NotificationRead:
        if await self.db.get(User, notification_in.user_id) is None:
            raise NotificationRecipientNotFoundException(notification_in.user_id)
        notification = await self.notification_repository.add(Notification(**notification_in.model_dump()))
        await self.db.commit()
        logger.info(f"[NotificationService] Notification {notification.id} créée pour user {notification.user_id}")
        return NotificationRead.model_validate(notification)

    async def list_notifications(
        self,
        user_id: int,
        limit: int,
        offset: int,
        notification_type: Optional[str] = None,
        read_status: Optional[str] = None,
        priority: Optional[str] = None,
        search: Optional[str] = None,
        include_archived: bool = False,
    ) -> Tuple[List[NotificationRead], int]:
        notifications, total = await self.notification_repository.list_for_user(
            user_id,
            limit=limit,
            offset=offset,
            notification_type=notification_type,
            is_read=READ_FILTER.get(read_status),
            priority=priority,
            search=search,
            include_archived=include_archived,
        )
        return [NotificationRead.model_validate(n) for n in notifications], total

    async def mark_as_read(self, notification_id: int, user_id: int) -> NotificationRead:
        notification = await self._get_owned(notification_id, user_id)
        notification.is_read = True
        await self.db.commit()
        return NotificationRead.model_validate(notification)

    async def mark_all_as_read(self, user_id: int) -> int:
        count = await self.notification_repository.mark_all_as_read(user_id)
        await self.db.commit()
        logger.info(f"[NotificationService] {count} notification(s) marquée(s) lue(s) pour user {user_id}")
        return count

    async def archive(self, notification_id: int, user_id: int) -> NotificationRead:
        notification = await self._get_owned(notification_id, user_id)
        notification.archived = True
        await self.db.commit()
        return NotificationRead.model_validate(notification)

    async def delete_notification(self, notification_id: int, user_id: int) -> None:
        notification = await self._get_owned(notification_id, user_id)
        await self.notification_repository.delete(notification)
        await self.db.commit()

    async def delete_obsolete(self, user_id: int) -> int:
        """Supprime les notifications dont la date d'expiration est passée."""
        count = await self.notification_repository.delete_expired(user_id, utcnow())
        await self.db.commit()
        logger.info(f"[NotificationService] {count} notification(s) expirée(s) supprimée(s) pour user {user_id}")
        return count

    async def delete_all(self, user_id: int) -> int:
        count = await self.notification_repository.delete_all_for_user(user_id)
        await self.db.commit()
        logger.info(f"[NotificationService] {count} notification(s) supprimée(s) pour user {user_id}")
        return count
