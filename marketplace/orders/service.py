import logging
from decimal import Decimal
from typing import Dict, List, Tuple

from marketplace.notifications.dispatcher import NotificationDispatcher
from marketplace.orders.config import (
    ORDER_STATUS_CANCELLED,
    ORDER_STATUS_PENDING,
    TERMINAL_ORDER_STATUS,
)
from marketplace.orders.exceptions import (
    MixedMerchantOrderException,
    OrderAccessForbiddenException,
    OrderCannotBeCancelledException,
    OrderMerchantMismatchException,
    OrderNotFoundException,
)
from marketplace.orders.models import (
    Order,
    OrderAvailability,
    OrderCreate,
    OrderItem,
    OrderRead,
    OrderReceipt,
    OrderItemRead,
)
from marketplace.orders.repositories import OrderRepository
from marketplace.orders.utils import calculate_order_total, check_transition
from marketplace.payments.config import PAYMENT_STATUS_COMPLETED
from marketplace.payments.service import PaymentService
from marketplace.products.config import STOCK_REASON_ORDER_CANCELLED, STOCK_REASON_ORDER_PLACED
from marketplace.products.exceptions import (
    InsufficientStockException,
    ProductInactiveException,
    ProductNotFoundException,
)
from marketplace.products.repositories import ProductRepository
from marketplace.promotions.exceptions import (
    PromotionNotApplicableException,
    PromotionNotFoundException,
    PromotionNotValidException,
)
from marketplace.promotions.service import PromotionService
from marketplace.promotions.utils import applies_to_products, compute_discount, is_promotion_valid
from marketplace.users.models import utcnow

logger = logging.getLogger(__name__)

# Rôles autorisés à consulter n'importe quelle commande
ORDER_READER_ROLES = {"admin", "support", "livreur"}


class OrderService:
    """
    Placement et cycle de vie des commandes.

    Le placement et l'annulation s'exécutent dans une seule transaction :
    le stock et l'usage des promotions sont modifiés par des UPDATE
    conditionnels, et tout échec annule l'ensemble.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        product_repository: ProductRepository,
        promotion_service: PromotionService,
        payment_service: PaymentService,
        notifier: NotificationDispatcher,
    ):
        self.order_repository = order_repository
        self.product_repository = product_repository
        self.promotion_service = promotion_service
        self.payment_service = payment_service
        self.notifier = notifier
        self.db = order_repository.db

    async def _get(self, order_id: int) -> Order:
        order = await self.order_repository.get_by_id(order_id)
        if not order:
            raise OrderNotFoundException(order_id)
        return order

    @staticmethod
    def _check_access(order: Order, user_id: int, role: str) -> None:
        if role in ORDER_READER_ROLES:
            return
        if user_id not in (order.client_id, order.merchant_id):
            raise OrderAccessForbiddenException(order.id)

    # --- Placement ---

    async def place_order(self, client_id: int, order_in: OrderCreate) -> OrderRead:
        logger.info(f"[OrderService] Placement commande client {client_id} ({len(order_in.items)} ligne(s))")

        # 1. Produits : existence, disponibilité, stock (quantités cumulées par produit)
        requested: Dict[int, int] = {}
        for item in order_in.items:
            requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
        products = await self.product_repository.get_many(requested.keys())
        for product_id, quantity in requested.items():
            product = products.get(product_id)
            if product is None:
                raise ProductNotFoundException(product_id)
            if not product.is_active:
                raise ProductInactiveException(product_id)
            if product.stock < quantity:
                raise InsufficientStockException(product_id, quantity, product.stock)

        # Le commerçant est celui des produits, jamais celui déclaré par le client
        merchant_ids = {p.merchant_id for p in products.values()}
        if len(merchant_ids) > 1:
            raise MixedMerchantOrderException(merchant_ids)
        merchant_id = merchant_ids.pop()
        if order_in.merchant_id is not None and order_in.merchant_id != merchant_id:
            raise OrderMerchantMismatchException(order_in.merchant_id, merchant_id)

        lines = [
            OrderItem(product_id=item.product_id, quantity=item.quantity, price=products[item.product_id].price)
            for item in order_in.items
        ]
        subtotal = calculate_order_total(lines)

        # 2. Promotion
        promotion = None
        discount = Decimal("0")
        if order_in.promotion_id is not None:
            promotion = await self.promotion_service.promotion_repository.get_by_id(order_in.promotion_id)
            if promotion is None:
                raise PromotionNotFoundException(order_in.promotion_id)
            if not is_promotion_valid(promotion):
                raise PromotionNotValidException(promotion.code)
            if not applies_to_products(promotion, requested.keys()):
                raise PromotionNotApplicableException(promotion.code)
            discount = min(compute_discount(promotion, subtotal), subtotal)

        # 3. Total
        total = subtotal - discount
        stock_before = {pid: p.stock for pid, p in products.items()}

        # 4-5. Persistance, décrément du stock et redemption en une transaction
        try:
            order = await self.order_repository.add(Order(
                client_id=client_id,
                merchant_id=merchant_id,
                promotion_id=promotion.id if promotion else None,
                status=ORDER_STATUS_PENDING,
                total_price=total,
                revenue=subtotal,
                discount_amount=discount,
                delivery_address=order_in.delivery_address,
                notes=order_in.notes,
                items=lines,
            ))
            order_id = order.id
            for product_id, quantity in requested.items():
                if not await self.product_repository.decrement_stock_if_available(product_id, quantity):
                    # Stock consommé par une commande concurrente depuis la vérification
                    raise InsufficientStockException(product_id, quantity, stock_before[product_id])
                self.product_repository.record_movement(product_id, -quantity, STOCK_REASON_ORDER_PLACED, order_id)
            if promotion is not None:
                await self.promotion_service.apply_promotion(promotion, client_id, order_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.warning(f"[OrderService] Placement annulé pour client {client_id}, rollback effectué.")
            raise

        logger.info(f"[OrderService] Commande {order_id} créée, total {total} (remise {discount}).")
        self.notifier.emit(merchant_id, f"Nouvelle commande reçue : #{order_id}", "order")
        return OrderRead.model_validate(await self._get(order_id))

    # --- Consultation ---

    async def get_order(self, order_id: int, user_id: int, role: str) -> OrderRead:
        order = await self._get(order_id)
        self._check_access(order, user_id, role)
        return OrderRead.model_validate(order)

    async def get_order_history(self, client_id: int, limit: int, offset: int) -> Tuple[List[OrderRead], int]:
        orders, total = await self.order_repository.list_by_client(client_id, limit, offset)
        return [OrderRead.model_validate(o) for o in orders], total

    async def generate_receipt(self, order_id: int, user_id: int, role: str) -> OrderReceipt:
        order = await self._get(order_id)
        self._check_access(order, user_id, role)
        return OrderReceipt(
            order_id=order.id,
            client_id=order.client_id,
            merchant_id=order.merchant_id,
            items=[OrderItemRead.model_validate(i) for i in order.items],
            total_price=order.total_price,
            revenue=order.revenue,
            discount_amount=order.discount_amount,
            status=order.status,
            created_at=order.created_at,
        )

    async def is_order_available(self, order_id: int) -> OrderAvailability:
        """Une commande est disponible pour un livreur tant qu'elle est en attente."""
        order = await self.order_repository.get_by_id(order_id)
        return OrderAvailability(order_id=order_id, available=bool(order and order.status == ORDER_STATUS_PENDING))

    # --- Cycle de vie ---

    async def update_status(self, order_id: int, new_status: str, user_id: int, role: str) -> OrderRead:
        order = await self._get(order_id)
        if role != "admin" and order.merchant_id != user_id:
            raise OrderAccessForbiddenException(order_id)
        check_transition(order.status, new_status)
        if new_status == ORDER_STATUS_CANCELLED:
            return await self._cancel(order)

        logger.info(f"[OrderService] Commande {order_id} : {order.status} -> {new_status}")
        order.status = new_status
        order.updated_at = utcnow()
        await self.db.commit()
        self.notifier.emit(order.client_id, f"Votre commande #{order_id} est maintenant : {new_status}", "order")
        return OrderRead.model_validate(order)

    async def cancel_order(self, order_id: int, user_id: int, role: str) -> OrderRead:
        order = await self._get(order_id)
        if role != "admin" and user_id not in (order.client_id, order.merchant_id):
            raise OrderAccessForbiddenException(order_id)
        return await self._cancel(order)

    async def _cancel(self, order: Order) -> OrderRead:
        order_id, client_id = order.id, order.client_id
        if order.status in TERMINAL_ORDER_STATUS:
            raise OrderCannotBeCancelledException(order_id, order.status)

        logger.info(f"[OrderService] Annulation commande {order_id} (statut: {order.status})")
        refunded = False
        try:
            order.status = ORDER_STATUS_CANCELLED
            order.updated_at = utcnow()
            for item in order.items:
                await self.product_repository.increment_stock(item.product_id, item.quantity)
                self.product_repository.record_movement(
                    item.product_id, item.quantity, STOCK_REASON_ORDER_CANCELLED, order_id
                )
            if order.payment_id:
                payment = await self.payment_service.payment_repository.get_by_id(order.payment_id)
                if payment is not None and payment.status == PAYMENT_STATUS_COMPLETED:
                    await self.payment_service.build_refund(order)
                    refunded = True
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"[OrderService] Commande {order_id} annulée, stock restauré{', remboursement initié' if refunded else ''}.")
        self.notifier.emit(client_id, f"Votre commande #{order_id} a été annulée.", "order")
        return OrderRead.model_validate(await self._get(order_id))
