"""
Configuration spécifique au module Payments.
"""
PAYMENT_STATUS_PENDING: str = "pending"
PAYMENT_STATUS_COMPLETED: str = "completed"
PAYMENT_STATUS_FAILED: str = "failed"
ALLOWED_PAYMENT_STATUS = {PAYMENT_STATUS_PENDING, PAYMENT_STATUS_COMPLETED, PAYMENT_STATUS_FAILED}

PAYMENT_TYPE_PAYMENT: str = "payment"
PAYMENT_TYPE_REFUND: str = "refund"
PAYMENT_TYPE_FEE: str = "fee"

REFUND_TRANSACTION_PREFIX: str = "REFUND-"
