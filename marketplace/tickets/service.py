import logging
from collections import Counter
from typing import List, Optional, Tuple

from marketplace.config import settings
from marketplace.notifications.dispatcher import NotificationDispatcher
from marketplace.promotions.utils import as_utc, period_keys
from marketplace.tickets.config import (
    ESCALATION_LEVELS,
    PRIORITY_TICKETS_LIMIT,
    TICKET_PRIORITY_HIGH,
    TICKET_STATUS_CLOSED,
    TICKET_STATUS_OPEN,
    TICKET_STATUS_RESOLVED,
)
from marketplace.tickets.exceptions import (
    AgentOverloadedException,
    InvalidEscalationException,
    SupportAgentNotFoundException,
    TicketAccessDeniedException,
    TicketAlreadyAssignedException,
    TicketClosedException,
    TicketNotFoundException,
)
from marketplace.tickets.models import Ticket, TicketCreate, TicketRead, TicketStats
from marketplace.tickets.repositories import TicketRepository
from marketplace.users.models import utcnow
from marketplace.users.repositories import UserRepository

logger = logging.getLogger(__name__)

SUPPORT_ROLE = "support"


class TicketService:
    """
    Service applicatif du support client.

    Un ticket fermé est figé : ni statut, ni assignation, ni escalade ne
    peuvent plus le modifier.
    """

    def __init__(
        self,
        ticket_repository: TicketRepository,
        user_repository: UserRepository,
        notifier: NotificationDispatcher,
        max_open_tickets: int = settings.SUPPORT_MAX_OPEN_TICKETS,
    ):
        self.ticket_repository = ticket_repository
        self.user_repository = user_repository
        self.notifier = notifier
        self.max_open_tickets = max_open_tickets
        self.db = ticket_repository.db

    async def _get(self, ticket_id: int) -> Ticket:
        ticket = await self.ticket_repository.get_by_id(ticket_id)
        if not ticket:
            raise TicketNotFoundException(ticket_id)
        return ticket

    async def _get_open(self, ticket_id: int) -> Ticket:
        ticket = await self._get(ticket_id)
        if ticket.status == TICKET_STATUS_CLOSED:
            raise TicketClosedException(ticket_id)
        return ticket

    async def create_ticket(self, user_id: int, ticket_in: TicketCreate) -> TicketRead:
        logger.info(f"[TicketService] Création d'un ticket pour user {user_id} (priorité {ticket_in.priority})")
        ticket = Ticket(**ticket_in.model_dump(), user_id=user_id)
        try:
            ticket = await self.ticket_repository.add(ticket)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"[TicketService] Ticket créé : ID={ticket.id}")
        return TicketRead.model_validate(ticket)

    async def get_ticket(self, ticket_id: int, requesting_user_id: int, can_view_all: bool) -> TicketRead:
        ticket = await self._get(ticket_id)
        if not can_view_all and ticket.user_id != requesting_user_id:
            raise TicketAccessDeniedException(ticket_id)
        return TicketRead.model_validate(ticket)

    async def list_user_tickets(self, user_id: int, limit: int, offset: int) -> Tuple[List[TicketRead], int]:
        return await self.ticket_repository.list_for_user(user_id, limit=limit, offset=offset)

    async def list_tickets(
        self,
        limit: int,
        offset: int,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        escalation_level: Optional[str] = None,
        keyword: Optional[str] = None,
    ) -> Tuple[List[TicketRead], int]:
        logger.debug(f"[TicketService] Recherche tickets status={status}, priority={priority}, keyword={keyword}")
        tickets, total = await self.ticket_repository.search(
            limit=limit, offset=offset, status=status, priority=priority,
            escalation_level=escalation_level, keyword=keyword,
        )
        return [TicketRead.model_validate(t) for t in tickets], total

    async def get_priority_tickets(self) -> List[TicketRead]:
        """Tickets urgents, ouverts et sans agent, les plus récents d'abord."""
        tickets = await self.ticket_repository.list_priority_unassigned(TICKET_PRIORITY_HIGH, PRIORITY_TICKETS_LIMIT)
        return [TicketRead.model_validate(t) for t in tickets]

    async def update_status(self, ticket_id: int, new_status: str, resolution: Optional[str] = None) -> TicketRead:
        ticket = await self._get_open(ticket_id)
        previous = ticket.status
        now = utcnow()
        logger.info(f"[TicketService] Ticket {ticket_id} : {previous} -> {new_status}")

        ticket.status_history = [
            *ticket.status_history,
            {"previous_status": previous, "new_status": new_status, "changed_at": now.isoformat()},
        ]
        ticket.status = new_status
        if resolution:
            ticket.resolution = resolution
        if new_status in (TICKET_STATUS_RESOLVED, TICKET_STATUS_CLOSED) and ticket.resolution_time is None:
            ticket.resolution_time = round((now - as_utc(ticket.created_at)).total_seconds() / 60, 2)
        ticket.updated_at = now
        await self.db.commit()

        if new_status in (TICKET_STATUS_RESOLVED, TICKET_STATUS_CLOSED):
            self.notifier.emit(
                ticket.user_id,
                f"Votre ticket #{ticket_id} est passé de l'état « {previous} » à « {new_status} ».",
                "support",
            )
        return TicketRead.model_validate(ticket)

    async def assign_ticket(self, ticket_id: int, agent_id: int) -> TicketRead:
        ticket = await self._get_open(ticket_id)
        agent = await self.user_repository.get_by_id(agent_id)
        if not agent or agent.role != SUPPORT_ROLE or not agent.is_active:
            raise SupportAgentNotFoundException(agent_id)
        if ticket.assigned_agent_id is not None:
            raise TicketAlreadyAssignedException(ticket_id)
        active = await self.ticket_repository.count_active_for_agent(agent_id)
        if active >= self.max_open_tickets:
            logger.warning(f"[TicketService] Agent {agent_id} saturé ({active} tickets actifs)")
            raise AgentOverloadedException(agent_id, self.max_open_tickets)

        try:
            if not await self.ticket_repository.assign_if_unassigned(ticket_id, agent_id):
                raise TicketAlreadyAssignedException(ticket_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(ticket)
        logger.info(f"[TicketService] Ticket {ticket_id} assigné à l'agent {agent_id}")
        self.notifier.emit(agent_id, f"Un ticket vous a été assigné : #{ticket_id}", "support")
        return TicketRead.model_validate(ticket)

    async def escalate_ticket(self, ticket_id: int, level: str, reason: str, escalated_by: int) -> TicketRead:
        ticket = await self._get_open(ticket_id)
        if ESCALATION_LEVELS.index(level) <= ESCALATION_LEVELS.index(ticket.escalation_level):
            raise InvalidEscalationException(
                f"Le ticket ID={ticket_id} est déjà au niveau {ticket.escalation_level}."
            )
        now = utcnow()
        ticket.escalation_history = [
            *ticket.escalation_history,
            {"level": level, "reason": reason, "escalated_by": escalated_by, "date": now.isoformat()},
        ]
        ticket.escalation_level = level
        ticket.resolution = f"Escaladé par l'agent {escalated_by} : {reason}"
        ticket.updated_at = now
        await self.db.commit()
        logger.info(f"[TicketService] Ticket {ticket_id} escaladé en {level} par {escalated_by}")
        return TicketRead.model_validate(ticket)

    async def get_stats(self) -> TicketStats:
        weekly, monthly = Counter(), Counter()
        for created_at in await self.ticket_repository.list_creation_dates():
            week, month, _ = period_keys(as_utc(created_at))
            weekly[week] += 1
            monthly[month] += 1
        return TicketStats(
            total_tickets=await self.ticket_repository.count_all(),
            open_tickets=await self.ticket_repository.count_by_status(TICKET_STATUS_OPEN),
            resolved_tickets=await self.ticket_repository.count_by_status(TICKET_STATUS_RESOLVED),
            average_resolution_time=await self.ticket_repository.average_resolution_time(),
            weekly=dict(weekly),
            monthly=dict(monthly),
        )
