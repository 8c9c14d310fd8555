"""
Configuration spécifique au module Products.
"""
# Seuil par défaut pour l'alerte de stock bas
LOW_STOCK_THRESHOLD: int = 5

STOCK_REASON_ORDER_PLACED: str = "order_placed"
STOCK_REASON_ORDER_CANCELLED: str = "order_cancelled"
STOCK_REASON_MANUAL: str = "manual_adjustment"
