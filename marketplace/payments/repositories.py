import logging
from typing import List, Optional

from fastcrud import FastCRUD
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.orders.models import Order
from marketplace.payments.models import Payment, PaymentCreate, PaymentRead

logger = logging.getLogger(__name__)


class PaymentRepository:
    """Persistance des paiements."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.crud = FastCRUD[Payment, PaymentCreate, PaymentCreate, PaymentCreate, None, PaymentRead](Payment)

    async def get_by_id(self, payment_id: int) -> Optional[Payment]:
        return await self.db.get(Payment, payment_id)

    async def transaction_id_exists(self, transaction_id: str) -> bool:
        return await self.crud.exists(db=self.db, transaction_id=transaction_id)

    async def add(self, payment: Payment) -> Payment:
        self.db.add(payment)
        await self.db.flush()
        await self.db.refresh(payment)
        return payment

    async def list_for_client(self, client_id: int, status: Optional[str] = None) -> List[Payment]:
        stmt = (
            select(Payment)
            .join(Order, Order.id == Payment.order_id)
            .where(Order.client_id == client_id)
        )
        if status:
            stmt = stmt.where(Payment.status == status)
        result = await self.db.execute(stmt.order_by(Payment.created_at.desc(), Payment.id.desc()))
        return list(result.scalars().all())

    async def stats_by_status(self) -> list:
        result = await self.db.execute(
            select(Payment.status, func.count(Payment.id), func.coalesce(func.sum(Payment.amount), 0))
            .group_by(Payment.status)
            .order_by(Payment.status)
        )
        return list(result.all())
