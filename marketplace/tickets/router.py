import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from marketplace.auth.dependencies import CurrentUser, require_any_permission, require_permissions
from marketplace.auth.roles import has_permission
from marketplace.core.exceptions import to_http_exception
from marketplace.core.pagination import PaginationParams
from marketplace.core.schemas import PaginatedResponse
from marketplace.tickets.dependencies import TicketServiceDep
from marketplace.tickets.models import (
    TicketAssign,
    TicketCreate,
    TicketEscalate,
    TicketPriority,
    TicketRead,
    TicketStats,
    TicketStatus,
    TicketStatusUpdate,
)

logger = logging.getLogger(__name__)

ticket_router = APIRouter()

ViewTickets = Depends(require_permissions("viewTickets"))
HandleTickets = Depends(require_any_permission("resolveIssues", "manageComplaints"))


def handle_ticket_service_errors(e: Exception):
    raise to_http_exception(e, "Ticket API")


def _paginated(response: Response, tickets: List[TicketRead], total: int, offset: int) -> PaginatedResponse[TicketRead]:
    end_range = offset + len(tickets) - 1 if tickets else offset
    response.headers["Content-Range"] = f"tickets {offset}-{end_range}/{total}"
    return PaginatedResponse[TicketRead](items=tickets, total=total)


@ticket_router.post("/",
                    response_model=TicketRead,
                    status_code=status.HTTP_201_CREATED,
                    summary="Contacter le support")
async def create_ticket(
    service: TicketServiceDep,
    ticket_in: TicketCreate,
    current_user=Depends(require_permissions("contactSupport")),
):
    try:
        return await service.create_ticket(current_user.id, ticket_in)
    except Exception as e:
        handle_ticket_service_errors(e)


@ticket_router.get("/me", response_model=PaginatedResponse[TicketRead], summary="Mes tickets")
async def list_my_tickets(
    service: TicketServiceDep,
    response: Response,
    pagination: PaginationParams,
    current_user=Depends(require_permissions("contactSupport")),
):
    limit, offset = pagination
    tickets, total = await service.list_user_tickets(current_user.id, limit=limit, offset=offset)
    return _paginated(response, tickets, total, offset)


@ticket_router.get("/", response_model=PaginatedResponse[TicketRead], summary="Rechercher des tickets")
async def list_tickets(
    service: TicketServiceDep,
    response: Response,
    pagination: PaginationParams,
    current_user=ViewTickets,
    ticket_status: Optional[TicketStatus] = Query(default=None, alias="status"),
    priority: Optional[TicketPriority] = Query(default=None),
    escalation_level: Optional[str] = Query(default=None),
    keyword: Optional[str] = Query(default=None, max_length=100),
):
    limit, offset = pagination
    tickets, total = await service.list_tickets(
        limit=limit, offset=offset, status=ticket_status, priority=priority,
        escalation_level=escalation_level, keyword=keyword,
    )
    return _paginated(response, tickets, total, offset)


@ticket_router.get("/priority", response_model=List[TicketRead], summary="Tickets urgents non assignés")
async def get_priority_tickets(service: TicketServiceDep, current_user=ViewTickets):
    return await service.get_priority_tickets()


@ticket_router.get("/stats", response_model=TicketStats)
async def get_ticket_stats(
    service: TicketServiceDep,
    current_user=Depends(require_any_permission("viewSupportStatistics", "viewReports")),
):
    return await service.get_stats()


@ticket_router.get("/users/{user_id}", response_model=PaginatedResponse[TicketRead], summary="Tickets d'un utilisateur")
async def list_user_tickets(
    service: TicketServiceDep,
    response: Response,
    pagination: PaginationParams,
    user_id: int,
    current_user=ViewTickets,
):
    limit, offset = pagination
    tickets, total = await service.list_user_tickets(user_id, limit=limit, offset=offset)
    return _paginated(response, tickets, total, offset)


@ticket_router.get("/{ticket_id}", response_model=TicketRead)
async def get_ticket(service: TicketServiceDep, ticket_id: int, current_user: CurrentUser):
    try:
        return await service.get_ticket(
            ticket_id, current_user.id, can_view_all=has_permission(current_user.role, "viewTickets")
        )
    except Exception as e:
        handle_ticket_service_errors(e)


@ticket_router.patch("/{ticket_id}/status", response_model=TicketRead)
async def update_ticket_status(
    service: TicketServiceDep,
    ticket_id: int,
    status_update: TicketStatusUpdate,
    current_user=HandleTickets,
):
    try:
        return await service.update_status(ticket_id, status_update.status, status_update.resolution)
    except Exception as e:
        handle_ticket_service_errors(e)


@ticket_router.patch("/{ticket_id}/assign", response_model=TicketRead, summary="Assigner à un agent")
async def assign_ticket(
    service: TicketServiceDep,
    ticket_id: int,
    body: TicketAssign,
    current_user=Depends(require_permissions("manageComplaints")),
):
    try:
        return await service.assign_ticket(ticket_id, body.agent_id)
    except Exception as e:
        handle_ticket_service_errors(e)


@ticket_router.patch("/{ticket_id}/escalate", response_model=TicketRead)
async def escalate_ticket(
    service: TicketServiceDep,
    ticket_id: int,
    body: TicketEscalate,
    current_user=HandleTickets,
):
    try:
        return await service.escalate_ticket(ticket_id, body.level, body.reason, escalated_by=current_user.id)
    except Exception as e:
        handle_ticket_service_errors(e)
