import logging
from decimal import Decimal
from typing import List

from marketplace.core.schemas import Coordinates
from marketplace.deliveries.cache import DeliveryCache
from marketplace.deliveries.config import DELIVERY_STATUS_CANCELLED, DELIVERY_STATUS_DELIVERED
from marketplace.deliveries.exceptions import DeliveryNotAvailableException, DeliveryNotFoundException
from marketplace.deliveries.models import DeliveryRead
from marketplace.deliveries.repositories import DeliveryRepository
from marketplace.deliveries.service import append_status
from marketplace.deliveries.utils import haversine, validate_coordinates
from marketplace.livreurs.config import (
    ASSIGNMENT_STATUS_CANCELLED,
    ASSIGNMENT_STATUS_COMPLETED,
    ASSIGNMENT_STATUS_IN_PROGRESS,
    COURIER_ALLOWED_STATUS,
)
from marketplace.livreurs.exceptions import (
    DeliveryNotAssignedException,
    InvalidCourierStatusException,
    LivreurProfileMissingException,
)
from marketplace.livreurs.models import AvailableDelivery, Earnings, Livreur, LivreurAssignment, LivreurRead
from marketplace.livreurs.repositories import LivreurRepository
from marketplace.notifications.dispatcher import NotificationDispatcher
from marketplace.orders.models import Order
from marketplace.promotions.utils import as_utc
from marketplace.users.models import utcnow

logger = logging.getLogger(__name__)

ASSIGNMENT_STATUS_BY_DELIVERY_STATUS = {
    "in_progress": ASSIGNMENT_STATUS_IN_PROGRESS,
    DELIVERY_STATUS_DELIVERED: ASSIGNMENT_STATUS_COMPLETED,
    DELIVERY_STATUS_CANCELLED: ASSIGNMENT_STATUS_CANCELLED,
}


def sort_by_distance(items: List[AvailableDelivery]) -> List[AvailableDelivery]:
    """Tri croissant par distance ; les livraisons sans point de départ passent en dernier."""
    return sorted(items, key=lambda i: (i.distance_from_livreur is None, i.distance_from_livreur or 0.0))


class LivreurService:
    """Opérations côté livreur : prise en charge, suivi, gains, disponibilité."""

    def __init__(
        self,
        livreur_repository: LivreurRepository,
        delivery_repository: DeliveryRepository,
        cache: DeliveryCache,
        notifier: NotificationDispatcher,
    ):
        self.livreur_repository = livreur_repository
        self.delivery_repository = delivery_repository
        self.cache = cache
        self.notifier = notifier
        self.db = livreur_repository.db

    async def get_profile(self, user_id: int) -> Livreur:
        livreur = await self.livreur_repository.get_by_user_id(user_id)
        if not livreur:
            raise LivreurProfileMissingException(user_id)
        return livreur

    async def get_available_deliveries(self, user_id: int) -> List[AvailableDelivery]:
        livreur = await self.get_profile(user_id)
        items = []
        for delivery in await self.delivery_repository.list_pending():
            distance = None
            if delivery.start_latitude is not None and delivery.start_longitude is not None:
                distance = haversine(
                    livreur.latitude, livreur.longitude, delivery.start_latitude, delivery.start_longitude
                )
            items.append(AvailableDelivery(delivery=DeliveryRead.model_validate(delivery), distance_from_livreur=distance))
        return sort_by_distance(items)

    async def accept_delivery(self, user_id: int, delivery_id: int) -> DeliveryRead:
        livreur = await self.get_profile(user_id)
        livreur_id = livreur.id
        delivery = await self.delivery_repository.get_by_id(delivery_id)
        if not delivery:
            raise DeliveryNotFoundException(delivery_id)
        payment = delivery.payment

        logger.info(f"[LivreurService] Livreur {livreur_id} accepte la livraison {delivery_id}")
        try:
            if not await self.delivery_repository.claim_if_pending(delivery_id, livreur_id):
                logger.warning(f"[LivreurService] Livraison {delivery_id} déjà prise, refus pour livreur {livreur_id}")
                raise DeliveryNotAvailableException(delivery_id)
            self.livreur_repository.add_assignment(
                LivreurAssignment(livreur_id=livreur_id, delivery_id=delivery_id, payment_amount=payment)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.cache.invalidate(delivery_id)
        await self.db.refresh(delivery)
        return DeliveryRead.model_validate(delivery)

    async def get_assigned_deliveries(self, user_id: int) -> List[DeliveryRead]:
        livreur = await self.get_profile(user_id)
        deliveries = await self.livreur_repository.list_assigned_deliveries(livreur.id)
        return [DeliveryRead.model_validate(d) for d in deliveries]

    async def update_delivery_status(self, user_id: int, delivery_id: int, new_status: str) -> DeliveryRead:
        if new_status not in COURIER_ALLOWED_STATUS:
            raise InvalidCourierStatusException(new_status)
        livreur = await self.get_profile(user_id)
        delivery = await self.delivery_repository.get_by_id(delivery_id)
        if not delivery:
            raise DeliveryNotFoundException(delivery_id)
        if delivery.livreur_id != livreur.id:
            raise DeliveryNotAssignedException(delivery_id)
        if delivery.status in (DELIVERY_STATUS_DELIVERED, DELIVERY_STATUS_CANCELLED):
            raise InvalidCourierStatusException(new_status)

        logger.info(f"[LivreurService] Livreur {livreur.id} : livraison {delivery_id} -> {new_status}")
        append_status(delivery, new_status)
        assignment = await self.livreur_repository.get_assignment(livreur.id, delivery_id)
        if assignment:
            assignment.status = ASSIGNMENT_STATUS_BY_DELIVERY_STATUS[new_status]
            assignment.updated_at = utcnow()

        if new_status == DELIVERY_STATUS_DELIVERED:
            started = delivery.accepted_at or delivery.created_at
            minutes = (as_utc(delivery.delivered_at) - as_utc(started)).total_seconds() / 60
            completed = livreur.deliveries_completed + 1
            livreur.average_delivery_time = (livreur.average_delivery_time * livreur.deliveries_completed + minutes) / completed
            livreur.deliveries_completed = completed
            livreur.total_earnings = Decimal(str(livreur.total_earnings)) + Decimal(str(delivery.payment))
            livreur.updated_at = utcnow()

        await self.db.commit()
        await self.cache.invalidate(delivery_id)

        if new_status == DELIVERY_STATUS_DELIVERED:
            order = await self.db.get(Order, delivery.order_id)
            if order:
                self.notifier.emit(order.client_id, f"Votre commande #{order.id} a été livrée.", "delivery")
        return DeliveryRead.model_validate(delivery)

    async def calculate_earnings(self, user_id: int) -> Earnings:
        """Somme des rémunérations des livraisons terminées."""
        livreur = await self.get_profile(user_id)
        assignments = await self.livreur_repository.list_assignments(livreur.id, ASSIGNMENT_STATUS_COMPLETED)
        total = sum((Decimal(str(a.payment_amount)) for a in assignments), Decimal("0"))
        livreur.total_earnings = total
        await self.db.commit()
        return Earnings(total=total)

    async def set_availability(self, user_id: int, is_available: bool) -> LivreurRead:
        livreur = await self.get_profile(user_id)
        livreur.is_available = is_available
        livreur.updated_at = utcnow()
        await self.db.commit()
        logger.info(f"[LivreurService] Livreur {livreur.id} {'disponible' if is_available else 'indisponible'}.")
        return LivreurRead.model_validate(livreur)

    async def update_location(self, user_id: int, coordinates: Coordinates) -> LivreurRead:
        validate_coordinates(coordinates.latitude, coordinates.longitude)
        livreur = await self.get_profile(user_id)
        livreur.latitude = coordinates.latitude
        livreur.longitude = coordinates.longitude
        livreur.updated_at = utcnow()
        await self.db.commit()
        logger.debug(f"[LivreurService] Position livreur {livreur.id} : {coordinates.latitude}, {coordinates.longitude}")
        return LivreurRead.model_validate(livreur)

    async def get_delivery_history(self, user_id: int) -> List[DeliveryRead]:
        livreur = await self.get_profile(user_id)
        deliveries = await self.livreur_repository.list_assigned_deliveries(
            livreur.id, statuses=(ASSIGNMENT_STATUS_COMPLETED, ASSIGNMENT_STATUS_CANCELLED)
        )
        return [DeliveryRead.model_validate(d) for d in deliveries]
