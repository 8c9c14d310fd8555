import logging
from typing import List, Optional

from sqlalchemy import case, delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.deliveries.config import DELIVERY_STATUS_DELIVERED, DELIVERY_STATUS_IN_PROGRESS, DELIVERY_STATUS_PENDING
from marketplace.deliveries.models import Delivery
from marketplace.livreurs.models import LivreurAssignment
from marketplace.orders.models import Order
from marketplace.users.models import utcnow

logger = logging.getLogger(__name__)


class DeliveryRepository:
    """Persistance des livraisons."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_by_id(self, delivery_id: int) -> Optional[Delivery]:
        return await self.db.get(Delivery, delivery_id)

    async def add(self, delivery: Delivery) -> Delivery:
        self.db.add(delivery)
        await self.db.flush()
        await self.db.refresh(delivery)
        return delivery

    async def list_pending(self) -> List[Delivery]:
        result = await self.db.execute(
            select(Delivery).where(Delivery.status == DELIVERY_STATUS_PENDING).order_by(Delivery.id)
        )
        return list(result.scalars().all())

    async def claim_if_pending(self, delivery_id: int, livreur_id: int) -> bool:
        """Passe la livraison en cours pour ce livreur seulement si elle est encore en attente."""
        now = utcnow()
        stmt = (
            update(Delivery)
            .where(Delivery.id == delivery_id, Delivery.status == DELIVERY_STATUS_PENDING)
            .values(
                status=DELIVERY_STATUS_IN_PROGRESS,
                livreur_id=livreur_id,
                accepted_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def delete_with_references(self, delivery_id: int) -> None:
        """Supprime la livraison, ses affectations et la référence portée par la commande."""
        await self.db.execute(
            update(Order)
            .where(Order.delivery_id == delivery_id)
            .values(delivery_id=None, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await self.db.execute(
            delete(LivreurAssignment)
            .where(LivreurAssignment.delivery_id == delivery_id)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.execute(
            delete(Delivery)
            .where(Delivery.id == delivery_id)
            .execution_options(synchronize_session="fetch")
        )

    async def stats(self, livreur_id: Optional[int] = None):
        """Retourne (total, livrées, distance moyenne)."""
        stmt = select(
            func.count(Delivery.id),
            func.coalesce(func.sum(case((Delivery.status == DELIVERY_STATUS_DELIVERED, 1), else_=0)), 0),
            func.avg(Delivery.distance),
        )
        if livreur_id is not None:
            stmt = stmt.where(Delivery.livreur_id == livreur_id)
        result = await self.db.execute(stmt)
        return result.one()
