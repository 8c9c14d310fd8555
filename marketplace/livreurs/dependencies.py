from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.deliveries.cache import DeliveryCacheDep
from marketplace.deliveries.dependencies import DeliveryRepositoryDep
from marketplace.livreurs.repositories import LivreurRepository
from marketplace.livreurs.service import LivreurService
from marketplace.notifications.dependencies import NotificationDispatcherDep


def get_livreur_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> LivreurRepository:
    return LivreurRepository(session)


LivreurRepositoryDep = Annotated[LivreurRepository, Depends(get_livreur_repository)]


def get_livreur_service(
    livreur_repository: LivreurRepositoryDep,
    delivery_repository: DeliveryRepositoryDep,
    cache: DeliveryCacheDep,
    notifier: NotificationDispatcherDep,
) -> LivreurService:
    return LivreurService(
        livreur_repository=livreur_repository,
        delivery_repository=delivery_repository,
        cache=cache,
        notifier=notifier,
    )


LivreurServiceDep = Annotated[LivreurService, Depends(get_livreur_service)]
