import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.auth.dependencies import CurrentUser, require_any_permission, require_permissions
from marketplace.core.exceptions import to_http_exception
from marketplace.deliveries.dependencies import DeliveryServiceDep
from marketplace.deliveries.models import (
    AssignDeliveryRequest,
    DeliveryCreate,
    DeliveryRead,
    DeliveryStats,
    DeliveryStatusUpdate,
    DistanceRequest,
    DistanceResponse,
)
from marketplace.deliveries.service import calculate_distance

logger = logging.getLogger(__name__)

delivery_router = APIRouter()

ManageDeliveries = Depends(require_permissions("manageDeliveries"))


def handle_delivery_service_errors(e: Exception):
    raise to_http_exception(e, "Delivery API")


@delivery_router.post("/", response_model=DeliveryRead, status_code=status.HTTP_201_CREATED)
async def create_delivery(service: DeliveryServiceDep, delivery_in: DeliveryCreate, current_user=ManageDeliveries):
    try:
        return await service.create_delivery(delivery_in)
    except Exception as e:
        handle_delivery_service_errors(e)


@delivery_router.post("/calculate-distance", response_model=DistanceResponse, summary="Distance entre deux points (km)")
async def calculate_distance_endpoint(body: DistanceRequest, current_user: CurrentUser):
    try:
        return DistanceResponse(distance=calculate_distance(body.start_coords, body.end_coords))
    except Exception as e:
        handle_delivery_service_errors(e)


@delivery_router.get("/stats", response_model=DeliveryStats)
async def get_delivery_stats(
    service: DeliveryServiceDep,
    livreur_id: Optional[int] = Query(default=None),
    current_user=Depends(require_any_permission("manageDeliveries", "viewReports")),
):
    return await service.get_delivery_stats(livreur_id)


@delivery_router.get("/{delivery_id}", response_model=DeliveryRead)
async def get_delivery(
    service: DeliveryServiceDep,
    delivery_id: int,
    current_user=Depends(require_any_permission("manageDeliveries", "trackDelivery", "trackDeliveryStatus", "trackOrder")),
):
    try:
        return await service.get_delivery(delivery_id)
    except Exception as e:
        handle_delivery_service_errors(e)


@delivery_router.patch("/{delivery_id}/status", response_model=DeliveryRead)
async def update_delivery_status(
    service: DeliveryServiceDep,
    delivery_id: int,
    status_update: DeliveryStatusUpdate,
    current_user=ManageDeliveries,
):
    try:
        return await service.update_delivery_status(delivery_id, status_update.status)
    except Exception as e:
        handle_delivery_service_errors(e)


@delivery_router.post("/{delivery_id}/distance", response_model=DeliveryRead, summary="Calculer et enregistrer la distance")
async def calculate_delivery_distance(
    service: DeliveryServiceDep,
    delivery_id: int,
    body: DistanceRequest,
    current_user=ManageDeliveries,
):
    try:
        return await service.calculate_delivery_distance(delivery_id, body.start_coords, body.end_coords)
    except Exception as e:
        handle_delivery_service_errors(e)


@delivery_router.post("/{delivery_id}/assign", response_model=DeliveryRead, summary="Assigner à un livreur")
async def assign_delivery(
    service: DeliveryServiceDep,
    delivery_id: int,
    body: AssignDeliveryRequest,
    current_user=Depends(require_any_permission("manageDeliveries", "assignOrderToLivreur")),
):
    try:
        return await service.assign_delivery(delivery_id, body.livreur_id)
    except Exception as e:
        handle_delivery_service_errors(e)


@delivery_router.delete("/{delivery_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_delivery(service: DeliveryServiceDep, delivery_id: int, current_user=ManageDeliveries):
    try:
        await service.delete_delivery(delivery_id)
    except Exception as e:
        handle_delivery_service_errors(e)
