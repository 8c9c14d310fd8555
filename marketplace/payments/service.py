import logging
from decimal import Decimal
from typing import List, Optional

from marketplace.core.exceptions import ForbiddenException
from marketplace.orders.config import TERMINAL_ORDER_STATUS
from marketplace.orders.exceptions import OrderNotFoundException
from marketplace.orders.models import Order
from marketplace.payments.config import (
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_FAILED,
    PAYMENT_STATUS_PENDING,
    PAYMENT_TYPE_REFUND,
    REFUND_TRANSACTION_PREFIX,
)
from marketplace.payments.exceptions import DuplicateTransactionException, PaymentNotFoundException, PaymentStateException
from marketplace.payments.models import Payment, PaymentCreate, PaymentRead, PaymentStatusStat
from marketplace.payments.repositories import PaymentRepository
from marketplace.users.models import utcnow

logger = logging.getLogger(__name__)


def set_payment_status(payment: Payment, new_status: str) -> None:
    """Change le statut en archivant l'ancien dans l'historique."""
    payment.history = [*payment.history, {"status": payment.status, "changed_at": utcnow().isoformat()}]
    payment.status = new_status
    payment.updated_at = utcnow()


class PaymentService:
    """Service applicatif pour les paiements et remboursements."""

    def __init__(self, payment_repository: PaymentRepository):
        self.payment_repository = payment_repository
        self.db = payment_repository.db

    async def _get(self, payment_id: int) -> Payment:
        payment = await self.payment_repository.get_by_id(payment_id)
        if not payment:
            raise PaymentNotFoundException(payment_id)
        return payment

    async def make_payment(self, payment_in: PaymentCreate, requesting_user_id: int, is_admin: bool = False) -> PaymentRead:
        logger.info(f"[PaymentService] Paiement de {payment_in.amount} pour commande {payment_in.order_id}")
        order = await self.db.get(Order, payment_in.order_id)
        if not order:
            raise OrderNotFoundException(payment_in.order_id)
        if not is_admin and order.client_id != requesting_user_id:
            raise ForbiddenException(f"La commande ID={order.id} n'appartient pas à cet utilisateur.")
        if order.status in TERMINAL_ORDER_STATUS:
            raise PaymentStateException(f"La commande ID={order.id} est clôturée ({order.status}), paiement refusé.")
        if payment_in.transaction_id and await self.payment_repository.transaction_id_exists(payment_in.transaction_id):
            raise DuplicateTransactionException(payment_in.transaction_id)

        payment = Payment(**payment_in.model_dump(), net_revenue=payment_in.amount - payment_in.fees)
        try:
            payment = await self.payment_repository.add(payment)
            order.payment_id = payment.id
            order.updated_at = utcnow()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"[PaymentService] Paiement créé : ID={payment.id}")
        return PaymentRead.model_validate(payment)

    async def get_payment(self, payment_id: int) -> PaymentRead:
        return PaymentRead.model_validate(await self._get(payment_id))

    async def complete_payment(self, payment_id: int) -> PaymentRead:
        payment = await self._get(payment_id)
        if payment.status != PAYMENT_STATUS_PENDING:
            raise PaymentStateException(f"Le paiement ID={payment_id} n'est pas en attente ({payment.status}).")
        set_payment_status(payment, PAYMENT_STATUS_COMPLETED)
        await self.db.commit()
        logger.info(f"[PaymentService] Paiement {payment_id} confirmé.")
        return PaymentRead.model_validate(payment)

    async def cancel_payment(self, payment_id: int) -> PaymentRead:
        payment = await self._get(payment_id)
        if payment.status == PAYMENT_STATUS_COMPLETED:
            raise PaymentStateException("Impossible d'annuler un paiement déjà effectué.")
        set_payment_status(payment, PAYMENT_STATUS_FAILED)
        await self.db.commit()
        logger.info(f"[PaymentService] Paiement {payment_id} annulé.")
        return PaymentRead.model_validate(payment)

    async def build_refund(self, order: Order) -> Payment:
        """
        Prépare le remboursement du paiement effectué d'une commande.

        Le remboursement est ajouté à la session sans commit.
        """
        payment = await self.payment_repository.get_by_id(order.payment_id) if order.payment_id else None
        if payment is None or payment.status != PAYMENT_STATUS_COMPLETED:
            raise PaymentStateException("Impossible de rembourser un paiement non effectué.")
        reference = payment.transaction_id or str(payment.id)
        refund = Payment(
            order_id=order.id,
            amount=payment.amount,
            fees=Decimal("0"),
            net_revenue=-payment.amount,
            payment_method=payment.payment_method,
            transaction_id=f"{REFUND_TRANSACTION_PREFIX}{reference}",
            payment_type=PAYMENT_TYPE_REFUND,
            status=PAYMENT_STATUS_COMPLETED,
        )
        return await self.payment_repository.add(refund)

    async def initiate_refund(self, order_id: int) -> PaymentRead:
        order = await self.db.get(Order, order_id)
        if not order:
            raise OrderNotFoundException(order_id)
        try:
            refund = await self.build_refund(order)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"[PaymentService] Remboursement {refund.id} initié pour commande {order_id}.")
        return PaymentRead.model_validate(refund)

    async def get_payment_history(self, client_id: int, status: Optional[str] = None) -> List[PaymentRead]:
        payments = await self.payment_repository.list_for_client(client_id, status)
        return [PaymentRead.model_validate(p) for p in payments]

    async def get_transaction_stats(self) -> List[PaymentStatusStat]:
        rows = await self.payment_repository.stats_by_status()
        return [PaymentStatusStat(status=s, count=c, total_amount=Decimal(str(t))) for s, c, t in rows]
