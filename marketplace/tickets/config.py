"""
Configuration spécifique au module Tickets (support client).
"""
from typing import Tuple

TICKET_STATUS_OPEN: str = "open"
TICKET_STATUS_IN_PROGRESS: str = "in_progress"
TICKET_STATUS_RESOLVED: str = "resolved"
TICKET_STATUS_CLOSED: str = "closed"

ALLOWED_TICKET_STATUS: Tuple[str, ...] = (
    TICKET_STATUS_OPEN,
    TICKET_STATUS_IN_PROGRESS,
    TICKET_STATUS_RESOLVED,
    TICKET_STATUS_CLOSED,
)

# Statuts qui occupent encore un agent
ACTIVE_TICKET_STATUS: Tuple[str, ...] = (TICKET_STATUS_OPEN, TICKET_STATUS_IN_PROGRESS)

TICKET_PRIORITY_HIGH: str = "high"
DEFAULT_TICKET_PRIORITY: str = "medium"

ESCALATION_LEVELS: Tuple[str, ...] = ("level_1", "level_2", "level_3")
DEFAULT_ESCALATION_LEVEL: str = ESCALATION_LEVELS[0]

MAX_KEYWORD_LENGTH: int = 20
PRIORITY_TICKETS_LIMIT: int = 5
