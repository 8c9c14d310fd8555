import logging
from typing import Optional

from marketplace.core.schemas import Coordinates
from marketplace.deliveries.cache import DeliveryCache
from marketplace.deliveries.config import (
    ALLOWED_DELIVERY_STATUS,
    DELIVERY_STATUS_DELIVERED,
    DELIVERY_STATUS_PENDING,
)
from marketplace.deliveries.exceptions import (
    DeliveryNotAvailableException,
    DeliveryNotFoundException,
    InvalidDeliveryStatusException,
)
from marketplace.deliveries.models import Delivery, DeliveryCreate, DeliveryRead, DeliveryStats
from marketplace.deliveries.repositories import DeliveryRepository
from marketplace.deliveries.utils import haversine, validate_coordinates
from marketplace.livreurs.exceptions import LivreurNotFoundException
from marketplace.livreurs.models import Livreur, LivreurAssignment
from marketplace.notifications.dispatcher import NotificationDispatcher
from marketplace.orders.exceptions import OrderNotFoundException
from marketplace.orders.models import Order
from marketplace.users.models import utcnow

logger = logging.getLogger(__name__)


def append_status(delivery: Delivery, new_status: str) -> None:
    """Change le statut et ajoute l'entrée correspondante à l'historique."""
    now = utcnow()
    delivery.status = new_status
    delivery.status_history = [*delivery.status_history, {"status": new_status, "updated_at": now.isoformat()}]
    delivery.updated_at = now
    if new_status == DELIVERY_STATUS_DELIVERED:
        delivery.delivered_at = now


def calculate_distance(start: Coordinates, end: Coordinates) -> float:
    validate_coordinates(start.latitude, start.longitude)
    validate_coordinates(end.latitude, end.longitude)
    return haversine(start.latitude, start.longitude, end.latitude, end.longitude)


class DeliveryService:
    """Service applicatif pour les livraisons."""

    def __init__(self, delivery_repository: DeliveryRepository, cache: DeliveryCache, notifier: NotificationDispatcher):
        self.delivery_repository = delivery_repository
        self.cache = cache
        self.notifier = notifier
        self.db = delivery_repository.db

    async def _get(self, delivery_id: int) -> Delivery:
        delivery = await self.delivery_repository.get_by_id(delivery_id)
        if not delivery:
            raise DeliveryNotFoundException(delivery_id)
        return delivery

    async def _get_livreur(self, livreur_id: int) -> Livreur:
        livreur = await self.db.get(Livreur, livreur_id)
        if not livreur:
            raise LivreurNotFoundException(livreur_id)
        return livreur

    async def create_delivery(self, delivery_in: DeliveryCreate) -> DeliveryRead:
        logger.info(f"[DeliveryService] Création livraison pour commande {delivery_in.order_id}")
        order = await self.db.get(Order, delivery_in.order_id)
        if not order:
            raise OrderNotFoundException(delivery_in.order_id)
        livreur = await self._get_livreur(delivery_in.livreur_id) if delivery_in.livreur_id else None

        delivery = Delivery(
            order_id=order.id,
            livreur_id=livreur.id if livreur else None,
            payment=delivery_in.payment,
            status=DELIVERY_STATUS_PENDING,
            status_history=[{"status": DELIVERY_STATUS_PENDING, "updated_at": utcnow().isoformat()}],
        )
        if delivery_in.start:
            delivery.start_latitude, delivery.start_longitude = delivery_in.start.latitude, delivery_in.start.longitude
        if delivery_in.end:
            delivery.end_latitude, delivery.end_longitude = delivery_in.end.latitude, delivery_in.end.longitude
        if delivery_in.start and delivery_in.end:
            delivery.distance = calculate_distance(delivery_in.start, delivery_in.end)

        try:
            delivery = await self.delivery_repository.add(delivery)
            order.delivery_id = delivery.id
            order.updated_at = utcnow()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"[DeliveryService] Livraison {delivery.id} créée.")
        if livreur:
            self.notifier.emit(livreur.user_id, f"Une nouvelle livraison vous a été attribuée : #{delivery.id}", "delivery")
        return DeliveryRead.model_validate(delivery)

    async def get_delivery(self, delivery_id: int) -> DeliveryRead:
        cached = await self.cache.get(delivery_id)
        if cached is not None:
            return cached
        delivery = DeliveryRead.model_validate(await self._get(delivery_id))
        await self.cache.set(delivery)
        return delivery

    async def update_delivery_status(self, delivery_id: int, new_status: str) -> DeliveryRead:
        if new_status not in ALLOWED_DELIVERY_STATUS:
            raise InvalidDeliveryStatusException(new_status)
        delivery = await self._get(delivery_id)
        logger.info(f"[DeliveryService] Livraison {delivery_id} : {delivery.status} -> {new_status}")
        append_status(delivery, new_status)
        await self.db.commit()
        await self.cache.invalidate(delivery_id)

        if new_status == DELIVERY_STATUS_DELIVERED:
            order = await self.db.get(Order, delivery.order_id)
            if order:
                self.notifier.emit(order.client_id, f"Votre commande #{order.id} a été livrée.", "delivery")
        return DeliveryRead.model_validate(delivery)

    async def delete_delivery(self, delivery_id: int) -> None:
        """Supprime la livraison et détache la commande, en une seule transaction."""
        await self._get(delivery_id)
        try:
            await self.delivery_repository.delete_with_references(delivery_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.cache.invalidate(delivery_id)
        logger.info(f"[DeliveryService] Livraison {delivery_id} supprimée.")

    async def calculate_delivery_distance(self, delivery_id: int, start: Coordinates, end: Coordinates) -> DeliveryRead:
        delivery = await self._get(delivery_id)
        delivery.distance = calculate_distance(start, end)
        delivery.start_latitude, delivery.start_longitude = start.latitude, start.longitude
        delivery.end_latitude, delivery.end_longitude = end.latitude, end.longitude
        delivery.updated_at = utcnow()
        await self.db.commit()
        await self.cache.invalidate(delivery_id)
        logger.info(f"[DeliveryService] Distance livraison {delivery_id} : {delivery.distance:.2f} km")
        return DeliveryRead.model_validate(delivery)

    async def assign_delivery(self, delivery_id: int, livreur_id: int) -> DeliveryRead:
        """Assigne une livraison en attente à un livreur ; Conflict si elle ne l'est plus."""
        delivery = await self._get(delivery_id)
        livreur = await self._get_livreur(livreur_id)
        livreur_user_id = livreur.user_id
        try:
            if not await self.delivery_repository.claim_if_pending(delivery_id, livreur_id):
                raise DeliveryNotAvailableException(delivery_id)
            self.db.add(LivreurAssignment(livreur_id=livreur_id, delivery_id=delivery_id, payment_amount=delivery.payment))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.cache.invalidate(delivery_id)
        await self.db.refresh(delivery)
        logger.info(f"[DeliveryService] Livraison {delivery_id} assignée au livreur {livreur_id}.")
        self.notifier.emit(livreur_user_id, f"La livraison #{delivery_id} vous a été assignée.", "delivery")
        return DeliveryRead.model_validate(delivery)

    async def get_delivery_stats(self, livreur_id: Optional[int] = None) -> DeliveryStats:
        total, delivered, average = await self.delivery_repository.stats(livreur_id)
        return DeliveryStats(
            total_deliveries=total or 0,
            delivered=int(delivered or 0),
            average_distance=float(average or 0.0),
        )
