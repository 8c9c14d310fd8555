import logging
from abc import ABC, abstractmethod

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketplace.notifications.models import Notification

logger = logging.getLogger(__name__)


class AbstractNotificationSender(ABC):
    """Interface d'envoi d'une notification (in-app, push, email, SMS)."""

    @abstractmethod
    async def send(self, user_id: int, message: str, notification_type: str) -> None:
        raise NotImplementedError


class LoggingNotificationSender(AbstractNotificationSender):
    """Journalise la notification sans la conserver."""

    async def send(self, user_id: int, message: str, notification_type: str) -> None:
        logger.info(f"[Notification:{notification_type}] user={user_id} message={message}")


class DatabaseNotificationSender(AbstractNotificationSender):
    """
    Enregistre la notification in-app en base.

    L'envoi s'exécute hors de la requête qui l'a déclenché : il ouvre donc
    sa propre session au lieu de partager celle du service appelant.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def send(self, user_id: int, message: str, notification_type: str) -> None:
        async with self.session_factory() as session:
            session.add(Notification(user_id=user_id, message=message, notification_type=notification_type))
            await session.commit()
        logger.debug(f"[Notification:{notification_type}] enregistrée pour user={user_id}")
