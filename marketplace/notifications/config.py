"""
Configuration spécifique au module Notifications.
"""
NOTIFICATION_STATUS_READ: str = "read"
NOTIFICATION_STATUS_UNREAD: str = "unread"

DEFAULT_NOTIFICATION_TYPE: str = "system"
DEFAULT_NOTIFICATION_PRIORITY: str = "medium"

SENDER_DATABASE: str = "database"
SENDER_LOG: str = "log"
