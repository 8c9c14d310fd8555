from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.notifications.dependencies import NotificationDispatcherDep
from marketplace.tickets.repositories import TicketRepository
from marketplace.tickets.service import TicketService
from marketplace.users.dependencies import UserRepositoryDep


def get_ticket_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> TicketRepository:
    return TicketRepository(session)


TicketRepositoryDep = Annotated[TicketRepository, Depends(get_ticket_repository)]


def get_ticket_service(
    ticket_repository: TicketRepositoryDep,
    user_repository: UserRepositoryDep,
    notifier: NotificationDispatcherDep,
) -> TicketService:
    return TicketService(ticket_repository=ticket_repository, user_repository=user_repository, notifier=notifier)


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
