import logging
from datetime import datetime
from typing import List, Optional, Tuple

from fastcrud import FastCRUD
from sqlalchemy import String, cast, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.tickets.config import ACTIVE_TICKET_STATUS, TICKET_STATUS_OPEN
from marketplace.tickets.models import Ticket, TicketCreate, TicketRead, TicketStatusUpdate
from marketplace.users.models import utcnow

logger = logging.getLogger(__name__)


class TicketRepository:
    """Persistance des tickets de support."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.crud = FastCRUD[Ticket, TicketCreate, TicketStatusUpdate, TicketStatusUpdate, None, TicketRead](Ticket)

    async def get_by_id(self, ticket_id: int) -> Optional[Ticket]:
        return await self.db.get(Ticket, ticket_id)

    async def add(self, ticket: Ticket) -> Ticket:
        self.db.add(ticket)
        await self.db.flush()
        await self.db.refresh(ticket)
        return ticket

    async def list_for_user(self, user_id: int, limit: int, offset: int) -> Tuple[List[TicketRead], int]:
        result = await self.crud.get_multi(
            db=self.db,
            offset=offset,
            limit=limit,
            schema_to_select=TicketRead,
            return_as_model=True,
            sort_columns=["id"],
            sort_orders=["desc"],
            user_id=user_id,
        )
        return result.get("data", []), result.get("total_count", 0)

    async def search(
        self,
        limit: int,
        offset: int,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        escalation_level: Optional[str] = None,
        keyword: Optional[str] = None,
    ) -> Tuple[List[Ticket], int]:
        stmt = select(Ticket)
        if status:
            stmt = stmt.where(Ticket.status == status)
        if priority:
            stmt = stmt.where(Ticket.priority == priority)
        if escalation_level:
            stmt = stmt.where(Ticket.escalation_level == escalation_level)
        if keyword:
            keyword = keyword.strip().lower()
            # Les mots-clés sont stockés en JSON : on cherche l'entrée exacte entre guillemets
            stmt = stmt.where(or_(
                Ticket.description.ilike(f"%{keyword}%"),
                cast(Ticket.keywords, String).like(f'%"{keyword}"%'),
            ))
        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery()))
        result = await self.db.execute(stmt.order_by(Ticket.created_at.desc(), Ticket.id.desc()).offset(offset).limit(limit))
        return list(result.scalars().all()), total or 0

    async def list_priority_unassigned(self, priority: str, limit: int) -> List[Ticket]:
        result = await self.db.execute(
            select(Ticket)
            .where(
                Ticket.priority == priority,
                Ticket.status == TICKET_STATUS_OPEN,
                Ticket.assigned_agent_id.is_(None),
            )
            .order_by(Ticket.created_at.desc(), Ticket.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_active_for_agent(self, agent_id: int) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(Ticket).where(
                Ticket.assigned_agent_id == agent_id,
                Ticket.status.in_(ACTIVE_TICKET_STATUS),
            )
        )

    async def assign_if_unassigned(self, ticket_id: int, agent_id: int) -> bool:
        """Assigne le ticket seulement s'il n'a pas encore d'agent."""
        stmt = (
            update(Ticket)
            .where(Ticket.id == ticket_id, Ticket.assigned_agent_id.is_(None))
            .values(assigned_agent_id=agent_id, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def count_all(self) -> int:
        return await self.db.scalar(select(func.count()).select_from(Ticket))

    async def count_by_status(self, status: str) -> int:
        return await self.db.scalar(select(func.count()).select_from(Ticket).where(Ticket.status == status))

    async def average_resolution_time(self) -> float:
        value = await self.db.scalar(
            select(func.avg(Ticket.resolution_time)).where(Ticket.resolution_time.is_not(None))
        )
        return float(value or 0.0)

    async def list_creation_dates(self) -> List[datetime]:
        result = await self.db.execute(select(Ticket.created_at))
        return list(result.scalars().all())
