from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.notifications.dependencies import NotificationDispatcherDep
from marketplace.promotions.repositories import PromotionRepository
from marketplace.promotions.service import PromotionService


def get_promotion_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> PromotionRepository:
    return PromotionRepository(session)


PromotionRepositoryDep = Annotated[PromotionRepository, Depends(get_promotion_repository)]


def get_promotion_service(
    promotion_repository: PromotionRepositoryDep,
    notifier: NotificationDispatcherDep,
) -> PromotionService:
    return PromotionService(promotion_repository=promotion_repository, notifier=notifier)


PromotionServiceDep = Annotated[PromotionService, Depends(get_promotion_service)]
