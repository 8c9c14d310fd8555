"""
Émission des notifications en tâche de fond.

`emit` planifie l'envoi et rend la main immédiatement : un échec du sender
est journalisé et n'atteint jamais le workflow appelant.
"""
import asyncio
import logging
from typing import Set

from marketplace.notifications.sender import AbstractNotificationSender

logger = logging.getLogger(__name__)


class NotificationDispatcher:

    def __init__(self, sender: AbstractNotificationSender):
        self.sender = sender
        self._pending: Set[asyncio.Task] = set()

    def emit(self, user_id: int, message: str, notification_type: str = "info") -> None:
        try:
            task = asyncio.get_running_loop().create_task(
                self._send(user_id, message, notification_type)
            )
        except RuntimeError:
            logger.error(f"[Notification] Pas de boucle asyncio active, notification perdue pour user {user_id}")
            return
        # Garder une référence pour que la tâche ne soit pas collectée
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, user_id: int, message: str, notification_type: str) -> None:
        try:
            await self.sender.send(user_id, message, notification_type)
        except Exception as e:
            logger.error(f"[Notification] Échec envoi à user {user_id} ({notification_type}): {e}", exc_info=True)

    async def drain(self) -> None:
        """Attend la fin des envois en cours (arrêt de l'application, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
