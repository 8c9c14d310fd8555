"""
Configuration spécifique au module Deliveries.
"""
DELIVERY_STATUS_PENDING: str = "pending"
DELIVERY_STATUS_IN_PROGRESS: str = "in_progress"
DELIVERY_STATUS_DELIVERED: str = "delivered"
DELIVERY_STATUS_CANCELLED: str = "cancelled"

ALLOWED_DELIVERY_STATUS = (
    DELIVERY_STATUS_PENDING,
    DELIVERY_STATUS_IN_PROGRESS,
    DELIVERY_STATUS_DELIVERED,
    DELIVERY_STATUS_CANCELLED,
)

EARTH_RADIUS_KM: float = 6371.0

DELIVERY_CACHE_KEY_PREFIX: str = "delivery:"
