from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import settings
from marketplace.database import AsyncSessionLocal, get_db_session
from marketplace.notifications.config import SENDER_LOG
from marketplace.notifications.dispatcher import NotificationDispatcher
from marketplace.notifications.repositories import NotificationRepository
from marketplace.notifications.sender import (
    AbstractNotificationSender,
    DatabaseNotificationSender,
    LoggingNotificationSender,
)
from marketplace.notifications.service import NotificationService


def build_notification_sender(kind: str) -> AbstractNotificationSender:
    if kind == SENDER_LOG:
        return LoggingNotificationSender()
    return DatabaseNotificationSender(AsyncSessionLocal)


_dispatcher = NotificationDispatcher(sender=build_notification_sender(settings.NOTIFICATION_SENDER))


def get_notification_dispatcher() -> NotificationDispatcher:
    """Fournit le dispatcher de notifications partagé par l'application."""
    return _dispatcher


NotificationDispatcherDep = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]


def get_notification_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> NotificationRepository:
    return NotificationRepository(session)


NotificationRepositoryDep = Annotated[NotificationRepository, Depends(get_notification_repository)]


def get_notification_service(notification_repository: NotificationRepositoryDep) -> NotificationService:
    return NotificationService(notification_repository=notification_repository)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
