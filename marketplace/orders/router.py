import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status

from marketplace.auth.dependencies import CurrentUser, require_any_permission, require_permissions
from marketplace.core.exceptions import to_http_exception
from marketplace.core.pagination import PaginationParams
from marketplace.core.schemas import PaginatedResponse
from marketplace.orders.dependencies import OrderServiceDep
from marketplace.orders.models import (
    OrderAvailability,
    OrderCreate,
    OrderRead,
    OrderReceipt,
    OrderStatusUpdate,
    OrderTotal,
    PriceLine,
)
from marketplace.orders.utils import calculate_order_total

logger = logging.getLogger(__name__)

order_router = APIRouter()


def handle_order_service_errors(e: Exception):
    raise to_http_exception(e, "Order API")


@order_router.post("/",
                   response_model=OrderRead,
                   status_code=status.HTTP_201_CREATED,
                   summary="Passer une commande")
async def create_order(
    service: OrderServiceDep,
    order_in: OrderCreate,
    current_user=Depends(require_permissions("placeOrder")),
):
    """Crée une commande pour le client authentifié. Le total est recalculé côté serveur."""
    try:
        return await service.place_order(client_id=current_user.id, order_in=order_in)
    except Exception as e:
        handle_order_service_errors(e)


@order_router.get("/history", response_model=PaginatedResponse[OrderRead], summary="Historique des commandes du client")
async def get_order_history(
    service: OrderServiceDep,
    response: Response,
    pagination: PaginationParams,
    current_user=Depends(require_permissions("viewOrderHistory")),
):
    limit, offset = pagination
    orders, total = await service.get_order_history(current_user.id, limit=limit, offset=offset)
    end_range = offset + len(orders) - 1 if orders else offset
    response.headers["Content-Range"] = f"orders {offset}-{end_range}/{total}"
    return PaginatedResponse[OrderRead](items=orders, total=total)


@order_router.post("/calculate-total", response_model=OrderTotal)
async def calculate_total(
    lines: List[PriceLine],
    current_user=Depends(require_any_permission("calculateOrderTotal", "manageOrders")),
):
    return OrderTotal(total=calculate_order_total(lines))


@order_router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    service: OrderServiceDep,
    order_id: int,
    current_user=Depends(require_permissions("viewOrderDetails")),
):
    try:
        return await service.get_order(order_id, current_user.id, current_user.role)
    except Exception as e:
        handle_order_service_errors(e)


@order_router.get("/{order_id}/receipt", response_model=OrderReceipt)
async def generate_receipt(
    service: OrderServiceDep,
    order_id: int,
    current_user=Depends(require_any_permission("generateOrderReceipt", "manageOrders")),
):
    try:
        return await service.generate_receipt(order_id, current_user.id, current_user.role)
    except Exception as e:
        handle_order_service_errors(e)


@order_router.get("/{order_id}/availability", response_model=OrderAvailability)
async def is_order_available(service: OrderServiceDep, order_id: int, current_user: CurrentUser):
    return await service.is_order_available(order_id)


@order_router.patch("/{order_id}/status", response_model=OrderRead, summary="Changer le statut d'une commande")
async def update_order_status(
    service: OrderServiceDep,
    order_id: int,
    status_update: OrderStatusUpdate,
    current_user=Depends(require_permissions("updateOrderStatus")),
):
    try:
        order = await service.update_status(order_id, status_update.status, current_user.id, current_user.role)
        logger.info(f"Statut commande {order_id} mis à jour à '{status_update.status}' par user {current_user.id}.")
        return order
    except Exception as e:
        handle_order_service_errors(e)


@order_router.post("/{order_id}/cancel", response_model=OrderRead, summary="Annuler une commande")
async def cancel_order(
    service: OrderServiceDep,
    order_id: int,
    current_user=Depends(require_any_permission("cancelOrder", "managePendingOrders")),
):
    try:
        return await service.cancel_order(order_id, current_user.id, current_user.role)
    except Exception as e:
        handle_order_service_errors(e)
