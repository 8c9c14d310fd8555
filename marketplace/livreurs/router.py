import logging
from typing import List

from fastapi import APIRouter, Depends

from marketplace.auth.dependencies import require_any_permission, require_permissions
from marketplace.core.exceptions import to_http_exception
from marketplace.core.schemas import Coordinates
from marketplace.deliveries.models import DeliveryRead
from marketplace.livreurs.dependencies import LivreurServiceDep
from marketplace.livreurs.models import AvailabilityUpdate, AvailableDelivery, CourierStatusUpdate, Earnings, LivreurRead

logger = logging.getLogger(__name__)

livreur_router = APIRouter()

# Toutes les routes concernent le livreur authentifié
Courier = Depends(require_any_permission("assignOrder", "pickUpOrder"))


def handle_livreur_service_errors(e: Exception):
    raise to_http_exception(e, "Livreur API")


@livreur_router.get("/me", response_model=LivreurRead)
async def get_profile(service: LivreurServiceDep, current_user=Courier):
    try:
        return LivreurRead.model_validate(await service.get_profile(current_user.id))
    except Exception as e:
        handle_livreur_service_errors(e)


@livreur_router.get("/me/available-deliveries", response_model=List[AvailableDelivery],
                    summary="Livraisons en attente triées par distance")
async def get_available_deliveries(service: LivreurServiceDep, current_user=Courier):
    try:
        return await service.get_available_deliveries(current_user.id)
    except Exception as e:
        handle_livreur_service_errors(e)


@livreur_router.post("/me/deliveries/{delivery_id}/accept", response_model=DeliveryRead)
async def accept_delivery(service: LivreurServiceDep, delivery_id: int, current_user=Courier):
    try:
        return await service.accept_delivery(current_user.id, delivery_id)
    except Exception as e:
        handle_livreur_service_errors(e)


@livreur_router.get("/me/deliveries", response_model=List[DeliveryRead])
async def get_assigned_deliveries(service: LivreurServiceDep, current_user=Courier):
    try:
        return await service.get_assigned_deliveries(current_user.id)
    except Exception as e:
        handle_livreur_service_errors(e)


@livreur_router.patch("/me/deliveries/{delivery_id}/status", response_model=DeliveryRead)
async def update_delivery_status(
    service: LivreurServiceDep,
    delivery_id: int,
    status_update: CourierStatusUpdate,
    current_user=Depends(require_permissions("updateDeliveryStatus")),
):
    try:
        return await service.update_delivery_status(current_user.id, delivery_id, status_update.status)
    except Exception as e:
        handle_livreur_service_errors(e)


@livreur_router.get("/me/earnings", response_model=Earnings)
async def calculate_earnings(
    service: LivreurServiceDep,
    current_user=Depends(require_permissions("viewEarnings")),
):
    try:
        return await service.calculate_earnings(current_user.id)
    except Exception as e:
        handle_livreur_service_errors(e)


@livreur_router.patch("/me/availability", response_model=LivreurRead)
async def set_availability(service: LivreurServiceDep, body: AvailabilityUpdate, current_user=Courier):
    try:
        return await service.set_availability(current_user.id, body.is_available)
    except Exception as e:
        handle_livreur_service_errors(e)


@livreur_router.patch("/me/location", response_model=LivreurRead)
async def update_location(service: LivreurServiceDep, coordinates: Coordinates, current_user=Courier):
    try:
        return await service.update_location(current_user.id, coordinates)
    except Exception as e:
        handle_livreur_service_errors(e)


@livreur_router.get("/me/history", response_model=List[DeliveryRead])
async def get_delivery_history(
    service: LivreurServiceDep,
    current_user=Depends(require_permissions("viewDeliveryHistory")),
):
    try:
        return await service.get_delivery_history(current_user.id)
    except Exception as e:
        handle_livreur_service_errors(e)
