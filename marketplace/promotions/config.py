"""
Configuration spécifique au module Promotions.
"""
from typing import List

DISCOUNT_TYPE_PERCENTAGE: str = "percentage"
DISCOUNT_TYPE_FIXED: str = "fixed"
ALLOWED_DISCOUNT_TYPES: List[str] = [DISCOUNT_TYPE_PERCENTAGE, DISCOUNT_TYPE_FIXED]

DEFAULT_USAGE_LIMIT: int = 1
DEFAULT_EXPIRING_WINDOW_DAYS: int = 7
