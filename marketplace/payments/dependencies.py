from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.payments.repositories import PaymentRepository
from marketplace.payments.service import PaymentService


def get_payment_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> PaymentRepository:
    return PaymentRepository(session)


PaymentRepositoryDep = Annotated[PaymentRepository, Depends(get_payment_repository)]


def get_payment_service(payment_repository: PaymentRepositoryDep) -> PaymentService:
    return PaymentService(payment_repository=payment_repository)


PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
