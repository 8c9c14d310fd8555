import logging
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.deliveries.models import Delivery
from marketplace.livreurs.models import Livreur, LivreurAssignment

logger = logging.getLogger(__name__)


class LivreurRepository:
    """Persistance des profils livreurs et de leurs affectations."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_by_user_id(self, user_id: int) -> Optional[Livreur]:
        result = await self.db.execute(select(Livreur).where(Livreur.user_id == user_id))
        return result.scalars().first()

    async def get_assignment(self, livreur_id: int, delivery_id: int) -> Optional[LivreurAssignment]:
        result = await self.db.execute(
            select(LivreurAssignment).where(
                LivreurAssignment.livreur_id == livreur_id,
                LivreurAssignment.delivery_id == delivery_id,
            )
        )
        return result.scalars().first()

    def add_assignment(self, assignment: LivreurAssignment) -> None:
        self.db.add(assignment)

    async def list_assigned_deliveries(self, livreur_id: int, statuses: Optional[Iterable[str]] = None) -> List[Delivery]:
        stmt = (
            select(Delivery)
            .join(LivreurAssignment, LivreurAssignment.delivery_id == Delivery.id)
            .where(LivreurAssignment.livreur_id == livreur_id)
        )
        if statuses:
            stmt = stmt.where(LivreurAssignment.status.in_(list(statuses)))
        result = await self.db.execute(stmt.order_by(LivreurAssignment.assigned_at.desc(), Delivery.id.desc()))
        return list(result.scalars().all())

    async def list_assignments(self, livreur_id: int, status: Optional[str] = None) -> List[LivreurAssignment]:
        stmt = select(LivreurAssignment).where(LivreurAssignment.livreur_id == livreur_id)
        if status:
            stmt = stmt.where(LivreurAssignment.status == status)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
