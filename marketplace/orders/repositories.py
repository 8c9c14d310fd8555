import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.orders.models import Order

logger = logging.getLogger(__name__)


class OrderRepository:
    """Persistance des commandes et de leurs lignes."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        logger.debug(f"[OrderRepository] Getting order by ID: {order_id}")
        result = await self.db.execute(
            select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def add(self, order: Order) -> Order:
        self.db.add(order)
        await self.db.flush()
        return order

    async def list_by_client(self, client_id: int, limit: int, offset: int) -> Tuple[List[Order], int]:
        logger.debug(f"[OrderRepository] Listing orders for client {client_id}, limit={limit}, offset={offset}")
        total = await self.db.scalar(
            select(func.count()).select_from(Order).where(Order.client_id == client_id)
        )
        result = await self.db.execute(
            select(Order)
            .where(Order.client_id == client_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total
