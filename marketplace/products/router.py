import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from marketplace.auth.dependencies import require_any_permission, require_permissions
from marketplace.core.exceptions import to_http_exception
from marketplace.core.pagination import PaginationParams
from marketplace.core.schemas import PaginatedResponse
from marketplace.products.config import LOW_STOCK_THRESHOLD
from marketplace.products.dependencies import ProductServiceDep
from marketplace.products.models import (
    ProductCreate,
    ProductRead,
    ProductUpdate,
    ProductVisibilityUpdate,
    StockAdjust,
    StockMovementRead,
)

logger = logging.getLogger(__name__)

product_router = APIRouter()


def handle_product_service_errors(e: Exception):
    raise to_http_exception(e, "Product API")


@product_router.get("/", response_model=PaginatedResponse[ProductRead], summary="Lister les produits actifs")
async def list_products(
    service: ProductServiceDep,
    response: Response,
    pagination: PaginationParams,
    merchant_id: Optional[int] = Query(default=None),
):
    limit, offset = pagination
    products, total = await service.list_products(limit=limit, offset=offset, merchant_id=merchant_id)
    end_range = offset + len(products) - 1 if products else offset
    response.headers["Content-Range"] = f"products {offset}-{end_range}/{total}"
    return PaginatedResponse[ProductRead](items=products, total=total)


@product_router.post("/",
                     response_model=ProductRead,
                     status_code=status.HTTP_201_CREATED,
                     summary="Ajouter un produit (commerçant)")
async def create_product(
    service: ProductServiceDep,
    product_in: ProductCreate,
    current_user=Depends(require_permissions("addProduct")),
):
    try:
        return await service.create_product(merchant_id=current_user.id, product_in=product_in)
    except Exception as e:
        handle_product_service_errors(e)


@product_router.get("/low-stock", response_model=List[ProductRead], summary="Produits en stock bas")
async def list_low_stock(
    service: ProductServiceDep,
    threshold: int = Query(default=LOW_STOCK_THRESHOLD, ge=0),
    current_user=Depends(require_permissions("receiveStockAlerts")),
):
    return await service.list_low_stock(threshold=threshold, merchant_id=current_user.id)


@product_router.get("/{product_id}", response_model=ProductRead)
async def get_product(service: ProductServiceDep, product_id: int):
    try:
        return await service.get_product(product_id)
    except Exception as e:
        handle_product_service_errors(e)


@product_router.patch("/{product_id}", response_model=ProductRead)
async def update_product(
    service: ProductServiceDep,
    product_id: int,
    product_in: ProductUpdate,
    current_user=Depends(require_any_permission("updateProduct", "manageProducts")),
):
    try:
        return await service.update_product(product_id, product_in, current_user.id, is_admin=current_user.role == "admin")
    except Exception as e:
        handle_product_service_errors(e)


@product_router.patch("/{product_id}/visibility", response_model=ProductRead)
async def set_product_visibility(
    service: ProductServiceDep,
    product_id: int,
    visibility: ProductVisibilityUpdate,
    current_user=Depends(require_any_permission("setProductVisibility", "manageProducts")),
):
    try:
        return await service.set_visibility(product_id, visibility.is_active, current_user.id, is_admin=current_user.role == "admin")
    except Exception as e:
        handle_product_service_errors(e)


@product_router.post("/{product_id}/stock", response_model=ProductRead, summary="Ajuster le stock")
async def adjust_stock(
    service: ProductServiceDep,
    product_id: int,
    adjustment: StockAdjust,
    current_user=Depends(require_any_permission("updateProductStock", "manageProducts")),
):
    try:
        return await service.adjust_stock(product_id, adjustment, current_user.id, is_admin=current_user.role == "admin")
    except Exception as e:
        handle_product_service_errors(e)


@product_router.get("/{product_id}/stock-history", response_model=List[StockMovementRead])
async def get_stock_history(
    service: ProductServiceDep,
    product_id: int,
    current_user=Depends(require_permissions("updateProductStock")),
):
    try:
        return await service.get_stock_history(product_id)
    except Exception as e:
        handle_product_service_errors(e)
