import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.notifications.models import Notification

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Persistance des notifications in-app."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_by_id(self, notification_id: int) -> Optional[Notification]:
        return await self.db.get(Notification, notification_id)

    async def add(self, notification: Notification) -> Notification:
        self.db.add(notification)
        await self.db.flush()
        await self.db.refresh(notification)
        return notification

    async def list_for_user(
        self,
        user_id: int,
        limit: int,
        offset: int,
        notification_type: Optional[str] = None,
        is_read: Optional[bool] = None,
        priority: Optional[str] = None,
        search: Optional[str] = None,
        include_archived: bool = False,
    ) -> Tuple[List[Notification], int]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if not include_archived:
            stmt = stmt.where(Notification.archived.is_(False))
        if notification_type:
            stmt = stmt.where(Notification.notification_type == notification_type)
        if is_read is not None:
            stmt = stmt.where(Notification.is_read.is_(is_read))
        if priority:
            stmt = stmt.where(Notification.priority == priority)
        if search:
            stmt = stmt.where(Notification.message.ilike(f"%{search}%"))
        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery()))
        result = await self.db.execute(
            stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def mark_all_as_read(self, user_id: int) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def delete(self, notification: Notification) -> None:
        await self.db.delete(notification)
        await self.db.flush()

    async def delete_expired(self, user_id: int, now: datetime) -> int:
        stmt = (
            delete(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.expires_at.is_not(None),
                Notification.expires_at <= now,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def delete_all_for_user(self, user_id: int) -> int:
        stmt = (
            delete(Notification)
            .where(Notification.user_id == user_id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        return result.rowcount
