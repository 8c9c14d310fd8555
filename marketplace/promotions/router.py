import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from marketplace.auth.dependencies import CurrentUser, require_any_permission, require_permissions
from marketplace.core.exceptions import to_http_exception
from marketplace.core.pagination import PaginationParams
from marketplace.core.schemas import PaginatedResponse
from marketplace.promotions.config import DEFAULT_EXPIRING_WINDOW_DAYS
from marketplace.promotions.dependencies import PromotionServiceDep
from marketplace.promotions.models import (
    BestPromotionItem,
    BestPromotionResponse,
    PromotionCreate,
    PromotionRead,
    PromotionReport,
    PromotionStats,
    PromotionStatusUpdate,
    PromotionUpdate,
)

logger = logging.getLogger(__name__)

promotion_router = APIRouter()

ManagePromotion = Depends(require_any_permission("createPromotion", "managePromotions"))


def handle_promotion_service_errors(e: Exception):
    raise to_http_exception(e, "Promotion API")


@promotion_router.post("/",
                       response_model=PromotionRead,
                       status_code=status.HTTP_201_CREATED,
                       summary="Créer une promotion")
async def create_promotion(
    service: PromotionServiceDep,
    promotion_in: PromotionCreate,
    current_user=Depends(require_permissions("createPromotion")),
):
    try:
        return await service.create_promotion(merchant_id=current_user.id, promotion_in=promotion_in)
    except Exception as e:
        handle_promotion_service_errors(e)


async def _list(service, response, pagination, merchant_id, active_only, region, product_id):
    limit, offset = pagination
    try:
        promotions, total = await service.list_promotions(
            merchant_id=merchant_id, limit=limit, offset=offset,
            active_only=active_only, region=region, product_id=product_id,
        )
    except Exception as e:
        handle_promotion_service_errors(e)
    end_range = offset + len(promotions) - 1 if promotions else offset
    response.headers["Content-Range"] = f"promotions {offset}-{end_range}/{total}"
    return PaginatedResponse[PromotionRead](items=promotions, total=total)


@promotion_router.get("/active", response_model=PaginatedResponse[PromotionRead], summary="Promotions actives d'un commerçant")
async def list_active_promotions(
    service: PromotionServiceDep,
    response: Response,
    pagination: PaginationParams,
    current_user: CurrentUser,
    merchant_id: Optional[int] = Query(default=None),
    region: Optional[str] = Query(default=None),
    product_id: Optional[int] = Query(default=None),
):
    return await _list(service, response, pagination, merchant_id or current_user.id, True, region, product_id)


@promotion_router.get("/history", response_model=PaginatedResponse[PromotionRead], summary="Historique des promotions")
async def list_promotion_history(
    service: PromotionServiceDep,
    response: Response,
    pagination: PaginationParams,
    current_user=ManagePromotion,
    region: Optional[str] = Query(default=None),
    product_id: Optional[int] = Query(default=None),
):
    return await _list(service, response, pagination, current_user.id, False, region, product_id)


@promotion_router.get("/expiring", response_model=List[PromotionRead])
async def get_expiring_promotions(
    service: PromotionServiceDep,
    days: int = Query(default=DEFAULT_EXPIRING_WINDOW_DAYS, ge=1),
    current_user=ManagePromotion,
):
    return await service.get_expiring_promotions(days)


@promotion_router.post("/expiring/notify", summary="Notifier les commerçants des promotions bientôt expirées")
async def notify_expiring_promotions(
    service: PromotionServiceDep,
    days: int = Query(default=DEFAULT_EXPIRING_WINDOW_DAYS, ge=1),
    current_user=Depends(require_permissions("managePromotions")),
):
    count = await service.notify_expiring_promotions(days)
    return {"notified": count}


@promotion_router.post("/best", response_model=BestPromotionResponse, summary="Meilleure promotion pour un panier")
async def find_best_promotion(
    service: PromotionServiceDep,
    items: List[BestPromotionItem],
    current_user: CurrentUser,
):
    promotion, discount = await service.find_best_promotion(items)
    return BestPromotionResponse(promotion=promotion, discount=discount)


@promotion_router.get("/report", response_model=PromotionReport)
async def generate_promotion_report(
    service: PromotionServiceDep,
    current_user=Depends(require_any_permission("viewReports", "managePromotions")),
):
    return await service.generate_promotion_report()


@promotion_router.get("/{promotion_id}", response_model=PromotionRead)
async def get_promotion(service: PromotionServiceDep, promotion_id: int, current_user: CurrentUser):
    try:
        return await service.get_promotion(promotion_id)
    except Exception as e:
        handle_promotion_service_errors(e)


@promotion_router.patch("/{promotion_id}", response_model=PromotionRead)
async def update_promotion(
    service: PromotionServiceDep,
    promotion_id: int,
    promotion_in: PromotionUpdate,
    current_user=ManagePromotion,
):
    try:
        return await service.update_promotion(
            promotion_id, promotion_in, current_user.id, is_admin=current_user.role == "admin"
        )
    except Exception as e:
        handle_promotion_service_errors(e)


@promotion_router.patch("/{promotion_id}/status", response_model=PromotionRead, summary="Activer / désactiver")
async def toggle_promotion_status(
    service: PromotionServiceDep,
    promotion_id: int,
    status_update: PromotionStatusUpdate,
    current_user=ManagePromotion,
):
    try:
        return await service.toggle_promotion_status(
            promotion_id, status_update.is_active, current_user.id, is_admin=current_user.role == "admin"
        )
    except Exception as e:
        handle_promotion_service_errors(e)


@promotion_router.delete("/{promotion_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_promotion(service: PromotionServiceDep, promotion_id: int, current_user=ManagePromotion):
    try:
        await service.delete_promotion(promotion_id, current_user.id, is_admin=current_user.role == "admin")
    except Exception as e:
        handle_promotion_service_errors(e)


@promotion_router.get("/{promotion_id}/stats", response_model=PromotionStats)
async def get_promotion_stats(
    service: PromotionServiceDep,
    promotion_id: int,
    current_user=Depends(require_any_permission("viewPromotionPerformance", "managePromotions")),
):
    try:
        return await service.get_promotion_stats(promotion_id)
    except Exception as e:
        handle_promotion_service_errors(e)


@promotion_router.post("/{promotion_id}/redeem", response_model=PromotionRead, summary="Utiliser une promotion")
async def redeem_promotion(service: PromotionServiceDep, promotion_id: int, current_user: CurrentUser):
    try:
        return await service.redeem(promotion_id, user_id=current_user.id)
    except Exception as e:
        handle_promotion_service_errors(e)
