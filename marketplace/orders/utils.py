from decimal import Decimal
from typing import Iterable

from marketplace.orders.config import ALLOWED_ORDER_STATUS, ALLOWED_TRANSITIONS
from marketplace.orders.exceptions import InvalidOrderStatusException, InvalidOrderTransitionException


def calculate_order_total(items: Iterable) -> Decimal:
    """Somme quantité x prix des lignes."""
    return sum((Decimal(str(item.price)) * item.quantity for item in items), Decimal("0"))


def check_transition(current: str, target: str) -> None:
    """Lève une exception si `target` n'est pas un statut valide ou pas atteignable depuis `current`."""
    if target not in ALLOWED_ORDER_STATUS:
        raise InvalidOrderStatusException(target)
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidOrderTransitionException(current, target)
