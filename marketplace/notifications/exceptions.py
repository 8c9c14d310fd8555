"""Exceptions spécifiques au domaine Notification."""
from marketplace.core.exceptions import ForbiddenException, NotFoundException


class NotificationNotFoundException(NotFoundException):
    def __init__(self, notification_id: int):
        super().__init__(f"Notification introuvable : ID={notification_id}")
        self.notification_id = notification_id


class NotificationRecipientNotFoundException(NotFoundException):
    def __init__(self, user_id: int):
        super().__init__(f"Destinataire introuvable : ID={user_id}")
        self.user_id = user_id


class NotificationOwnershipException(ForbiddenException):
    def __init__(self, notification_id: int):
        super().__init__(f"La notification ID={notification_id} n'appartient pas à cet utilisateur.")
        self.notification_id = notification_id
