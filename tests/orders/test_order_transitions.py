"""
Tests unitaires de la machine à états des commandes et du calcul de total.
"""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from marketplace.orders.config import ALLOWED_ORDER_STATUS, ALLOWED_TRANSITIONS, TERMINAL_ORDER_STATUS
from marketplace.orders.exceptions import InvalidOrderStatusException, InvalidOrderTransitionException
from marketplace.orders.utils import calculate_order_total, check_transition


@pytest.mark.parametrize("current, target", [
    ("pending", "accepted"),
    ("pending", "in_progress"),
    ("pending", "cancelled"),
    ("accepted", "in_progress"),
    ("accepted", "cancelled"),
    ("in_progress", "completed"),
    ("in_progress", "cancelled"),
])
def test_allowed_transitions(current, target):
    check_transition(current, target)


@pytest.mark.parametrize("current, target", [
    ("pending", "completed"),
    ("accepted", "pending"),
    ("in_progress", "accepted"),
    ("completed", "cancelled"),
    ("cancelled", "pending"),
    ("pending", "pending"),
])
def test_forbidden_transitions(current, target):
    with pytest.raises(InvalidOrderTransitionException):
        check_transition(current, target)


@pytest.mark.parametrize("target", ["shipped", "", "PENDING"])
def test_unknown_status_is_rejected(target):
    with pytest.raises(InvalidOrderStatusException):
        check_transition("pending", target)


def test_terminal_states_have_no_exit():
    for status in TERMINAL_ORDER_STATUS:
        assert ALLOWED_TRANSITIONS[status] == frozenset()
    assert set(ALLOWED_TRANSITIONS) == set(ALLOWED_ORDER_STATUS)


def test_calculate_order_total():
    lines = [
        SimpleNamespace(quantity=2, price=Decimal("12.50")),
        SimpleNamespace(quantity=1, price=Decimal("8.00")),
    ]
    assert calculate_order_total(lines) == Decimal("33.00")
    assert calculate_order_total([]) == Decimal("0")
