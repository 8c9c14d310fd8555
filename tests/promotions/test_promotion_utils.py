"""
Tests unitaires des règles de promotion (validité, remise, meilleure promotion).
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from marketplace.promotions.utils import (
    applies_to_products,
    compute_discount,
    is_promotion_valid,
    period_keys,
    select_best_promotion,
)

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_promo(**overrides):
    values = dict(
        code="PROMO",
        is_active=True,
        used_count=0,
        usage_limit=10,
        expiration_date=None,
        discount_type="percentage",
        discount_value=Decimal("10"),
        applicable_products=[],
    )
    values.update(overrides)
    return SimpleNamespace(**values)

# --- Validité ---

def test_valid_promotion():
    assert is_promotion_valid(make_promo(), NOW) is True


def test_invalid_when_usage_limit_reached():
    assert is_promotion_valid(make_promo(used_count=10, usage_limit=10), NOW) is False


def test_invalid_when_expired():
    assert is_promotion_valid(make_promo(expiration_date=NOW - timedelta(seconds=1)), NOW) is False


def test_invalid_when_inactive():
    assert is_promotion_valid(make_promo(is_active=False), NOW) is False


def test_valid_until_expiration_instant():
    assert is_promotion_valid(make_promo(expiration_date=NOW), NOW) is True


def test_naive_expiration_is_read_as_utc():
    naive = (NOW + timedelta(days=1)).replace(tzinfo=None)
    assert is_promotion_valid(make_promo(expiration_date=naive), NOW) is True

# --- Remise ---

def test_percentage_discount_is_rounded_to_cents():
    promo = make_promo(discount_value=Decimal("15"))
    assert compute_discount(promo, Decimal("33.33")) == Decimal("5.00")


def test_fixed_discount():
    promo = make_promo(discount_type="fixed", discount_value=Decimal("7.50"))
    assert compute_discount(promo, Decimal("100")) == Decimal("7.50")


def test_period_keys():
    assert period_keys(datetime(2024, 3, 15)) == ("2024-W3", "2024-3", "2024")
    assert period_keys(datetime(2024, 12, 1)) == ("2024-W1", "2024-12", "2024")
    assert period_keys(datetime(2024, 1, 31)) == ("2024-W5", "2024-1", "2024")

# --- Applicabilité ---

def test_promotion_without_product_filter_applies_everywhere():
    assert applies_to_products(make_promo(), [1, 2]) is True


def test_promotion_with_product_filter():
    promo = make_promo(applicable_products=[3, 4])
    assert applies_to_products(promo, [1, 4]) is True
    assert applies_to_products(promo, [1, 2]) is False


def test_select_best_promotion_picks_max_discount():
    small = make_promo(code="SMALL", discount_value=Decimal("5"), applicable_products=[1])
    big = make_promo(code="BIG", discount_type="fixed", discount_value=Decimal("20"), applicable_products=[1])
    best, discount = select_best_promotion([small, big], [1], Decimal("100"))
    assert best is big
    assert discount == Decimal("20")


def test_select_best_promotion_tie_keeps_first():
    first = make_promo(code="FIRST", discount_value=Decimal("10"), applicable_products=[1])
    second = make_promo(code="SECOND", discount_type="fixed", discount_value=Decimal("10"), applicable_products=[1])
    best, _ = select_best_promotion([first, second], [1], Decimal("100"))
    assert best is first


def test_select_best_promotion_ignores_non_matching_products():
    promo = make_promo(applicable_products=[99])
    best, discount = select_best_promotion([promo], [1, 2], Decimal("100"))
    assert best is None
    assert discount == Decimal("0")
