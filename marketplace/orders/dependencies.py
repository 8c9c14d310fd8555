from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.notifications.dependencies import NotificationDispatcherDep
from marketplace.orders.repositories import OrderRepository
from marketplace.orders.service import OrderService
from marketplace.payments.dependencies import PaymentServiceDep
from marketplace.products.dependencies import ProductRepositoryDep
from marketplace.promotions.dependencies import PromotionServiceDep


def get_order_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> OrderRepository:
    return OrderRepository(session)


OrderRepositoryDep = Annotated[OrderRepository, Depends(get_order_repository)]


def get_order_service(
    order_repository: OrderRepositoryDep,
    product_repository: ProductRepositoryDep,
    promotion_service: PromotionServiceDep,
    payment_service: PaymentServiceDep,
    notifier: NotificationDispatcherDep,
) -> OrderService:
    """Fournit une instance du service commandes (une seule session DB par requête)."""
    return OrderService(
        order_repository=order_repository,
        product_repository=product_repository,
        promotion_service=promotion_service,
        payment_service=payment_service,
        notifier=notifier,
    )


OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
