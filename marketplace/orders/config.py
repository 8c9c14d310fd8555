"""
Configuration spécifique au module Orders : statuts et transitions autorisées.
"""
from typing import Dict, FrozenSet

ORDER_STATUS_PENDING: str = "pending"
ORDER_STATUS_ACCEPTED: str = "accepted"
ORDER_STATUS_IN_PROGRESS: str = "in_progress"
ORDER_STATUS_COMPLETED: str = "completed"
ORDER_STATUS_CANCELLED: str = "cancelled"

ALLOWED_ORDER_STATUS = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_ACCEPTED,
    ORDER_STATUS_IN_PROGRESS,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_CANCELLED,
)

TERMINAL_ORDER_STATUS: FrozenSet[str] = frozenset({ORDER_STATUS_COMPLETED, ORDER_STATUS_CANCELLED})

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    ORDER_STATUS_PENDING: frozenset({ORDER_STATUS_ACCEPTED, ORDER_STATUS_IN_PROGRESS, ORDER_STATUS_CANCELLED}),
    ORDER_STATUS_ACCEPTED: frozenset({ORDER_STATUS_IN_PROGRESS, ORDER_STATUS_CANCELLED}),
    ORDER_STATUS_IN_PROGRESS: frozenset({ORDER_STATUS_COMPLETED, ORDER_STATUS_CANCELLED}),
    ORDER_STATUS_COMPLETED: frozenset(),
    ORDER_STATUS_CANCELLED: frozenset(),
}
