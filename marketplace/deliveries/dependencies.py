from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.deliveries.cache import DeliveryCacheDep
from marketplace.deliveries.repositories import DeliveryRepository
from marketplace.deliveries.service import DeliveryService
from marketplace.notifications.dependencies import NotificationDispatcherDep


def get_delivery_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> DeliveryRepository:
    return DeliveryRepository(session)


DeliveryRepositoryDep = Annotated[DeliveryRepository, Depends(get_delivery_repository)]


def get_delivery_service(
    delivery_repository: DeliveryRepositoryDep,
    cache: DeliveryCacheDep,
    notifier: NotificationDispatcherDep,
) -> DeliveryService:
    return DeliveryService(delivery_repository=delivery_repository, cache=cache, notifier=notifier)


DeliveryServiceDep = Annotated[DeliveryService, Depends(get_delivery_service)]
