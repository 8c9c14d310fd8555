"""
Tests du service commandes : placement, annulation et cycle de vie.
"""
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import func
from sqlmodel import select

from marketplace.core.exceptions import InvalidRequestException, NotFoundException
from marketplace.orders.exceptions import (
    InvalidOrderStatusException,
    InvalidOrderTransitionException,
    MixedMerchantOrderException,
    OrderCannotBeCancelledException,
    OrderMerchantMismatchException,
)
from marketplace.orders.models import Order, OrderCreate, OrderItemCreate
from marketplace.payments.models import Payment
from marketplace.products.exceptions import InsufficientStockException, ProductInactiveException
from marketplace.products.models import Product, StockMovement
from marketplace.promotions.exceptions import PromotionNotValidException
from marketplace.promotions.models import Promotion, PromotionRedemption
from marketplace.users.models import User

pytestmark = pytest.mark.asyncio


def order_payload(*lines, promotion_id=None, merchant_id=None) -> OrderCreate:
    return OrderCreate(
        merchant_id=merchant_id,
        items=[OrderItemCreate(product_id=pid, quantity=qty, price=Decimal("1.00")) for pid, qty in lines],
        promotion_id=promotion_id,
        delivery_address="12 rue des Lilas, Lyon",
        total_price=Decimal("0.01"),
    )


async def count_orders(db_session) -> int:
    return await db_session.scalar(select(func.count()).select_from(Order))


@pytest_asyncio.fixture
async def promotion(db_session, merchant_user) -> Promotion:
    promo = Promotion(
        code="PRINTEMPS10",
        discount_type="percentage",
        discount_value=Decimal("10"),
        usage_limit=5,
        merchant_id=merchant_user.id,
    )
    db_session.add(promo)
    await db_session.commit()
    await db_session.refresh(promo)
    return promo

# --- Placement ---

async def test_place_order_decrements_stock_and_computes_total(order_service, db_session, product_a, product_b, client_user):
    order = await order_service.place_order(client_user.id, order_payload((product_a.id, 2), (product_b.id, 1)))

    assert order.status == "pending"
    # Prix catalogue, le prix annoncé par le client est ignoré
    assert order.total_price == Decimal("33.00")
    assert order.revenue == Decimal("33.00")
    assert order.merchant_id == product_a.merchant_id
    assert [(i.product_id, i.quantity, i.price) for i in order.items] == [
        (product_a.id, 2, Decimal("12.50")),
        (product_b.id, 1, Decimal("8.00")),
    ]

    await db_session.refresh(product_a)
    await db_session.refresh(product_b)
    assert product_a.stock == 8
    assert product_b.stock == 2


async def test_place_order_records_stock_movements(order_service, db_session, product_a, client_user):
    order = await order_service.place_order(client_user.id, order_payload((product_a.id, 3)))
    movements = (await db_session.execute(
        select(StockMovement).where(StockMovement.order_id == order.id)
    )).scalars().all()
    assert [(m.product_id, m.change, m.reason) for m in movements] == [(product_a.id, -3, "order_placed")]


async def test_place_order_with_promotion(order_service, db_session, product_a, product_b, client_user, promotion):
    order = await order_service.place_order(
        client_user.id, order_payload((product_a.id, 2), (product_b.id, 1), promotion_id=promotion.id)
    )

    assert order.revenue == Decimal("33.00")
    assert order.discount_amount == Decimal("3.30")
    assert order.total_price == Decimal("29.70")
    assert order.promotion_id == promotion.id

    await db_session.refresh(promotion)
    assert promotion.used_count == 1
    assert sum(promotion.stats["yearly"].values()) == 1
    redemptions = (await db_session.execute(select(PromotionRedemption))).scalars().all()
    assert [(r.user_id, r.order_id) for r in redemptions] == [(client_user.id, order.id)]


async def test_fixed_discount_is_capped_at_subtotal(order_service, db_session, product_b, client_user, merchant_user):
    promo = Promotion(code="GROS", discount_type="fixed", discount_value=Decimal("50"), merchant_id=merchant_user.id)
    db_session.add(promo)
    await db_session.commit()

    order = await order_service.place_order(client_user.id, order_payload((product_b.id, 1), promotion_id=promo.id))
    assert order.discount_amount == Decimal("8.00")
    assert order.total_price == Decimal("0")


async def test_place_order_insufficient_stock_leaves_stock_unchanged(order_service, db_session, product_a, product_b, client_user):
    with pytest.raises(InsufficientStockException) as exc_info:
        await order_service.place_order(client_user.id, order_payload((product_a.id, 1), (product_b.id, 5)))

    assert isinstance(exc_info.value, InvalidRequestException)
    await db_session.refresh(product_a)
    await db_session.refresh(product_b)
    assert product_a.stock == 10
    assert product_b.stock == 3
    assert await count_orders(db_session) == 0


async def test_duplicate_lines_are_checked_against_cumulated_quantity(order_service, product_b, client_user):
    with pytest.raises(InsufficientStockException):
        await order_service.place_order(client_user.id, order_payload((product_b.id, 2), (product_b.id, 2)))


async def test_place_order_unknown_product(order_service, client_user):
    with pytest.raises(NotFoundException):
        await order_service.place_order(client_user.id, order_payload((9999, 1)))


async def test_place_order_inactive_product(order_service, db_session, product_a, client_user):
    product_a.is_active = False
    await db_session.commit()
    with pytest.raises(ProductInactiveException):
        await order_service.place_order(client_user.id, order_payload((product_a.id, 1)))


async def test_place_order_unknown_promotion(order_service, product_a, client_user):
    with pytest.raises(NotFoundException):
        await order_service.place_order(client_user.id, order_payload((product_a.id, 1), promotion_id=4242))


async def test_place_order_exhausted_promotion(order_service, db_session, product_a, client_user, promotion):
    promotion.used_count = promotion.usage_limit
    await db_session.commit()
    with pytest.raises(PromotionNotValidException):
        await order_service.place_order(client_user.id, order_payload((product_a.id, 1), promotion_id=promotion.id))


async def test_failed_decrement_rolls_back_whole_order(order_service, db_session, product_a, product_b, client_user, monkeypatch):
    product_a_id, product_b_id, client_id = product_a.id, product_b.id, client_user.id
    repository = order_service.product_repository
    original = repository.decrement_stock_if_available

    async def racing_decrement(product_id, quantity):
        # Une commande concurrente a vidé le stock du second produit
        if product_id == product_b_id:
            return False
        return await original(product_id, quantity)

    monkeypatch.setattr(repository, "decrement_stock_if_available", racing_decrement)

    with pytest.raises(InsufficientStockException):
        await order_service.place_order(client_id, order_payload((product_a_id, 2), (product_b_id, 1)))

    stock_a = await db_session.scalar(select(Product.stock).where(Product.id == product_a_id))
    assert stock_a == 10
    assert await count_orders(db_session) == 0


async def test_declared_merchant_must_own_the_products(order_service, db_session, product_a, client_user, admin_user):
    product_a_id, client_id, admin_id = product_a.id, client_user.id, admin_user.id

    with pytest.raises(OrderMerchantMismatchException):
        await order_service.place_order(client_id, order_payload((product_a_id, 1), merchant_id=admin_id))

    assert await count_orders(db_session) == 0
    assert await db_session.scalar(select(Product.stock).where(Product.id == product_a_id)) == 10


async def test_declared_merchant_matching_the_products_is_accepted(order_service, product_a, client_user, merchant_user):
    order = await order_service.place_order(
        client_user.id, order_payload((product_a.id, 1), merchant_id=merchant_user.id)
    )
    assert order.merchant_id == merchant_user.id


async def test_order_cannot_mix_merchants(order_service, db_session, product_a, client_user):
    other_merchant = User(email="pepiniere@example.com", role="merchant", password_hash="x")
    db_session.add(other_merchant)
    await db_session.commit()
    other_product = Product(name="Olivier", price=Decimal("45.00"), stock=2, merchant_id=other_merchant.id)
    db_session.add(other_product)
    await db_session.commit()
    product_a_id, other_id, client_id = product_a.id, other_product.id, client_user.id

    with pytest.raises(MixedMerchantOrderException):
        await order_service.place_order(client_id, order_payload((product_a_id, 1), (other_id, 1)))

    assert await count_orders(db_session) == 0


async def test_merchant_is_notified_of_new_order(order_service, notifier, notification_sender, product_a, client_user, merchant_user):
    order = await order_service.place_order(client_user.id, order_payload((product_a.id, 1)))
    await notifier.drain()
    notification_sender.send.assert_awaited_once_with(merchant_user.id, f"Nouvelle commande reçue : #{order.id}", "order")


async def test_notification_failure_does_not_break_placement(order_service, notifier, notification_sender, product_a, client_user):
    notification_sender.send.side_effect = RuntimeError("push indisponible")
    order = await order_service.place_order(client_user.id, order_payload((product_a.id, 1)))
    await notifier.drain()
    assert order.id is not None

# --- Annulation ---

async def test_cancel_pending_order_restores_stock(order_service, db_session, product_a, product_b, client_user):
    order = await order_service.place_order(client_user.id, order_payload((product_a.id, 4), (product_b.id, 3)))

    cancelled = await order_service.cancel_order(order.id, client_user.id, "client")

    assert cancelled.status == "cancelled"
    await db_session.refresh(product_a)
    await db_session.refresh(product_b)
    assert product_a.stock == 10
    assert product_b.stock == 3


@pytest.mark.parametrize("terminal_status", ["completed", "cancelled"])
async def test_cancel_terminal_order_fails_without_change(order_service, db_session, product_a, client_user, terminal_status):
    order = await order_service.place_order(client_user.id, order_payload((product_a.id, 2)))
    stored = await db_session.get(Order, order.id)
    stored.status = terminal_status
    await db_session.commit()

    with pytest.raises(OrderCannotBeCancelledException):
        await order_service.cancel_order(order.id, client_user.id, "client")

    await db_session.refresh(stored)
    await db_session.refresh(product_a)
    assert stored.status == terminal_status
    assert product_a.stock == 8


async def test_cancel_with_completed_payment_creates_refund(order_service, db_session, product_a, client_user):
    order = await order_service.place_order(client_user.id, order_payload((product_a.id, 1)))
    payment = Payment(order_id=order.id, amount=Decimal("12.50"), payment_method="credit_card",
                      transaction_id="TX-1", status="completed")
    db_session.add(payment)
    await db_session.flush()
    stored = await db_session.get(Order, order.id)
    stored.payment_id = payment.id
    await db_session.commit()

    await order_service.cancel_order(order.id, client_user.id, "client")

    refund = (await db_session.execute(
        select(Payment).where(Payment.payment_type == "refund")
    )).scalars().one()
    assert refund.transaction_id == "REFUND-TX-1"
    assert refund.amount == Decimal("12.50")
    assert refund.order_id == order.id


async def test_cancel_with_pending_payment_does_not_refund(order_service, db_session, product_a, client_user):
    order = await order_service.place_order(client_user.id, order_payload((product_a.id, 1)))
    payment = Payment(order_id=order.id, amount=Decimal("12.50"), payment_method="cash")
    db_session.add(payment)
    await db_session.flush()
    stored = await db_session.get(Order, order.id)
    stored.payment_id = payment.id
    await db_session.commit()

    await order_service.cancel_order(order.id, client_user.id, "client")

    refunds = (await db_session.execute(select(Payment).where(Payment.payment_type == "refund"))).scalars().all()
    assert refunds == []

# --- Statuts ---

async def test_update_status_follows_transition_table(order_service, product_a, client_user, merchant_user):
    order = await order_service.place_order(client_user.id, order_payload((product_a.id, 1)))

    order = await order_service.update_status(order.id, "accepted", merchant_user.id, "merchant")
    assert order.status == "accepted"
    order = await order_service.update_status(order.id, "in_progress", merchant_user.id, "merchant")
    order = await order_service.update_status(order.id, "completed", merchant_user.id, "merchant")
    assert order.status == "completed"


async def test_update_status_rejects_unknown_value(order_service, pending_order, merchant_user):
    with pytest.raises(InvalidOrderStatusException):
        await order_service.update_status(pending_order.id, "shipped", merchant_user.id, "merchant")


async def test_update_status_rejects_forbidden_transition(order_service, pending_order, merchant_user):
    with pytest.raises(InvalidOrderTransitionException):
        await order_service.update_status(pending_order.id, "completed", merchant_user.id, "merchant")


async def test_update_status_to_cancelled_restores_stock(order_service, db_session, product_a, client_user, merchant_user):
    order = await order_service.place_order(client_user.id, order_payload((product_a.id, 5)))
    order = await order_service.update_status(order.id, "cancelled", merchant_user.id, "merchant")
    assert order.status == "cancelled"
    await db_session.refresh(product_a)
    assert product_a.stock == 10


async def test_is_order_available(order_service, pending_order):
    assert (await order_service.is_order_available(pending_order.id)).available is True
    assert (await order_service.is_order_available(12345)).available is False


async def test_generate_receipt(order_service, product_a, client_user):
    order = await order_service.place_order(client_user.id, order_payload((product_a.id, 2)))
    receipt = await order_service.generate_receipt(order.id, client_user.id, "client")
    assert receipt.order_id == order.id
    assert receipt.total_price == Decimal("25.00")
    assert len(receipt.items) == 1
