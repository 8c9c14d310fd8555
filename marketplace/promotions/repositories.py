import logging
from datetime import datetime
from typing import List, Optional

from fastcrud import FastCRUD
from sqlalchemy import and_, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.orders.models import Order
from marketplace.promotions.models import Promotion, PromotionCreate, PromotionRead, PromotionRedemption, PromotionUpdate
from marketplace.users.models import utcnow

logger = logging.getLogger(__name__)


class PromotionRepository:
    """Persistance des promotions et de leurs redemptions."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.crud = FastCRUD[Promotion, PromotionCreate, PromotionUpdate, PromotionUpdate, None, PromotionRead](Promotion)

    async def get_by_id(self, promotion_id: int) -> Optional[Promotion]:
        return await self.db.get(Promotion, promotion_id)

    async def code_exists(self, code: str) -> bool:
        return await self.crud.exists(db=self.db, code=code)

    async def add(self, promotion: Promotion) -> Promotion:
        self.db.add(promotion)
        await self.db.flush()
        await self.db.refresh(promotion)
        return promotion

    async def is_referenced(self, promotion_id: int) -> bool:
        """Vrai si une redemption ou une commande pointe encore sur la promotion."""
        redemption = await self.db.scalar(
            select(PromotionRedemption.id).where(PromotionRedemption.promotion_id == promotion_id).limit(1)
        )
        if redemption is not None:
            return True
        order = await self.db.scalar(select(Order.id).where(Order.promotion_id == promotion_id).limit(1))
        return order is not None

    async def delete(self, promotion: Promotion) -> None:
        await self.db.delete(promotion)
        await self.db.flush()

    async def list_for_merchant(self, merchant_id: int, active_only: bool) -> List[Promotion]:
        stmt = select(Promotion).where(Promotion.merchant_id == merchant_id)
        if active_only:
            stmt = stmt.where(Promotion.is_active.is_(True))
        result = await self.db.execute(stmt.order_by(Promotion.id))
        return list(result.scalars().all())

    async def list_active(self) -> List[Promotion]:
        result = await self.db.execute(
            select(Promotion).where(Promotion.is_active.is_(True)).order_by(Promotion.id)
        )
        return list(result.scalars().all())

    async def list_expiring(self, now: datetime, threshold: datetime) -> List[Promotion]:
        result = await self.db.execute(
            select(Promotion).where(
                Promotion.is_active.is_(True),
                Promotion.expiration_date.is_not(None),
                Promotion.expiration_date >= now,
                Promotion.expiration_date <= threshold,
            ).order_by(Promotion.expiration_date)
        )
        return list(result.scalars().all())

    async def increment_usage_if_available(self, promotion_id: int) -> bool:
        """Incrémente used_count seulement si la promotion est active et sous sa limite."""
        stmt = (
            update(Promotion)
            .where(
                Promotion.id == promotion_id,
                Promotion.is_active.is_(True),
                Promotion.used_count < Promotion.usage_limit,
            )
            .values(used_count=Promotion.used_count + 1, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    def add_redemption(self, promotion_id: int, user_id: int, order_id: Optional[int]) -> None:
        self.db.add(PromotionRedemption(promotion_id=promotion_id, user_id=user_id, order_id=order_id))

    async def count_all(self) -> int:
        return await self.db.scalar(select(func.count()).select_from(Promotion))

    async def count_active(self) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(Promotion).where(Promotion.is_active.is_(True))
        )

    async def count_expired(self, now: datetime) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(Promotion).where(
                and_(Promotion.is_active.is_(False), Promotion.expiration_date <= now)
            )
        )
