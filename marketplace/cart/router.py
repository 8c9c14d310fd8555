import logging

from fastapi import APIRouter, Depends

from marketplace.auth.dependencies import require_permissions
from marketplace.cart.dependencies import CartServiceDep
from marketplace.cart.models import CartContains, CartItemAdd, CartItemUpdate, CartRead
from marketplace.core.exceptions import to_http_exception

logger = logging.getLogger(__name__)

cart_router = APIRouter()


def handle_cart_service_errors(e: Exception):
    raise to_http_exception(e, "Cart API")


@cart_router.get("/", response_model=CartRead, summary="Détails du panier")
async def get_cart(service: CartServiceDep, current_user=Depends(require_permissions("viewCart"))):
    try:
        return await service.get_cart(current_user.id)
    except Exception as e:
        handle_cart_service_errors(e)


@cart_router.delete("/", response_model=CartRead, summary="Vider le panier")
async def clear_cart(service: CartServiceDep, current_user=Depends(require_permissions("clearCart"))):
    try:
        return await service.clear_cart(current_user.id)
    except Exception as e:
        handle_cart_service_errors(e)


@cart_router.post("/items", response_model=CartRead, summary="Ajouter un produit au panier")
async def add_to_cart(
    service: CartServiceDep,
    item_in: CartItemAdd,
    current_user=Depends(require_permissions("addToCart")),
):
    try:
        return await service.add_item(current_user.id, item_in.product_id, item_in.quantity)
    except Exception as e:
        handle_cart_service_errors(e)


@cart_router.get("/items/{product_id}", response_model=CartContains)
async def contains_product(
    service: CartServiceDep,
    product_id: int,
    current_user=Depends(require_permissions("viewCart")),
):
    try:
        return await service.contains_product(current_user.id, product_id)
    except Exception as e:
        handle_cart_service_errors(e)


@cart_router.patch("/items/{product_id}", response_model=CartRead, summary="Changer la quantité d'un produit")
async def update_cart_item(
    service: CartServiceDep,
    product_id: int,
    item_update: CartItemUpdate,
    current_user=Depends(require_permissions("updateCartItem")),
):
    try:
        return await service.update_item(current_user.id, product_id, item_update.quantity)
    except Exception as e:
        handle_cart_service_errors(e)


@cart_router.delete("/items/{product_id}", response_model=CartRead)
async def remove_from_cart(
    service: CartServiceDep,
    product_id: int,
    current_user=Depends(require_permissions("removeFromCart")),
):
    try:
        return await service.remove_item(current_user.id, product_id)
    except Exception as e:
        handle_cart_service_errors(e)
