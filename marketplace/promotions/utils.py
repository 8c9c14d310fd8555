"""
Règles de calcul des promotions : validité, remise, clés de période.
"""
import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Tuple

from marketplace.promotions.config import DISCOUNT_TYPE_FIXED, DISCOUNT_TYPE_PERCENTAGE

CENT = Decimal("0.01")


def as_utc(value: datetime) -> datetime:
    """Les dates relues depuis SQLite sont naïves : on les considère en UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_promotion_valid(promotion, now: Optional[datetime] = None) -> bool:
    """Active, sous sa limite d'utilisation et non expirée."""
    now = now or datetime.now(timezone.utc)
    if not promotion.is_active:
        return False
    if promotion.used_count >= promotion.usage_limit:
        return False
    return promotion.expiration_date is None or as_utc(now) <= as_utc(promotion.expiration_date)


def compute_discount(promotion, subtotal: Decimal) -> Decimal:
    """Remise brute qu'apporterait la promotion sur ce sous-total."""
    value = Decimal(str(promotion.discount_value))
    if promotion.discount_type == DISCOUNT_TYPE_PERCENTAGE:
        return (subtotal * value / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)
    if promotion.discount_type == DISCOUNT_TYPE_FIXED:
        return value
    return Decimal("0")


def period_keys(now: datetime) -> Tuple[str, str, str]:
    """Clés (semaine, mois, année) : 'YYYY-Wn' avec n = ceil(jour/7), 'YYYY-M', 'YYYY'."""
    week = f"{now.year}-W{math.ceil(now.day / 7)}"
    month = f"{now.year}-{now.month}"
    year = f"{now.year}"
    return week, month, year


def applies_to_products(promotion, product_ids: Iterable[int]) -> bool:
    """Une promotion sans filtre produit s'applique à tout."""
    if not promotion.applicable_products:
        return True
    return bool(set(promotion.applicable_products) & set(product_ids))


def select_best_promotion(promotions, product_ids: Iterable[int], subtotal: Decimal):
    """
    Parmi les promotions dont les produits ciblés croisent ceux de la commande,
    retourne (promotion, remise) offrant la plus forte remise.
    Égalité : la première rencontrée l'emporte.
    """
    product_ids = set(product_ids)
    best = None
    max_discount = Decimal("0")
    for promo in promotions:
        if not set(promo.applicable_products or []) & product_ids:
            continue
        discount = compute_discount(promo, subtotal)
        if discount > max_discount:
            max_discount = discount
            best = promo
    return best, max_discount
