import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.auth.dependencies import CurrentUser, require_permissions
from marketplace.core.exceptions import to_http_exception
from marketplace.payments.dependencies import PaymentServiceDep
from marketplace.payments.models import PaymentCreate, PaymentRead, PaymentStatus, PaymentStatusStat

logger = logging.getLogger(__name__)

payment_router = APIRouter()


def handle_payment_service_errors(e: Exception):
    raise to_http_exception(e, "Payment API")


@payment_router.post("/", response_model=PaymentRead, status_code=status.HTTP_201_CREATED, summary="Payer une commande")
async def make_payment(service: PaymentServiceDep, payment_in: PaymentCreate, current_user: CurrentUser):
    try:
        return await service.make_payment(payment_in, current_user.id, is_admin=current_user.role == "admin")
    except Exception as e:
        handle_payment_service_errors(e)


@payment_router.get("/history", response_model=List[PaymentRead])
async def get_payment_history(
    service: PaymentServiceDep,
    status_filter: Optional[PaymentStatus] = Query(default=None, alias="status"),
    current_user=Depends(require_permissions("viewPaymentHistory")),
):
    return await service.get_payment_history(current_user.id, status_filter)


@payment_router.get("/stats", response_model=List[PaymentStatusStat])
async def get_transaction_stats(
    service: PaymentServiceDep,
    current_user=Depends(require_permissions("managePayments")),
):
    return await service.get_transaction_stats()


@payment_router.get("/{payment_id}", response_model=PaymentRead)
async def get_payment(service: PaymentServiceDep, payment_id: int, current_user: CurrentUser):
    try:
        return await service.get_payment(payment_id)
    except Exception as e:
        handle_payment_service_errors(e)


@payment_router.post("/{payment_id}/complete", response_model=PaymentRead)
async def complete_payment(
    service: PaymentServiceDep,
    payment_id: int,
    current_user=Depends(require_permissions("managePayments")),
):
    try:
        return await service.complete_payment(payment_id)
    except Exception as e:
        handle_payment_service_errors(e)


@payment_router.post("/{payment_id}/cancel", response_model=PaymentRead)
async def cancel_payment(
    service: PaymentServiceDep,
    payment_id: int,
    current_user=Depends(require_permissions("managePayments")),
):
    try:
        return await service.cancel_payment(payment_id)
    except Exception as e:
        handle_payment_service_errors(e)


@payment_router.post("/refund/{order_id}", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
async def initiate_refund(
    service: PaymentServiceDep,
    order_id: int,
    current_user=Depends(require_permissions("managePayments")),
):
    try:
        return await service.initiate_refund(order_id)
    except Exception as e:
        handle_payment_service_errors(e)
