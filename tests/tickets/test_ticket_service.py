"""
Tests du service support (tickets).
"""
import pytest

from marketplace.core.exceptions import ConflictException, ForbiddenException, InvalidRequestException, NotFoundException
from marketplace.tickets.models import TicketCreate

pytestmark = pytest.mark.asyncio


def ticket_in(description="Ma commande n'est jamais arrivée", **overrides) -> TicketCreate:
    values = dict(description=description, priority="medium", keywords=["Livraison"])
    values.update(overrides)
    return TicketCreate(**values)


async def test_create_ticket_defaults(ticket_service, client_user):
    ticket = await ticket_service.create_ticket(client_user.id, ticket_in())

    assert ticket.status == "open"
    assert ticket.escalation_level == "level_1"
    assert ticket.assigned_agent_id is None
    assert ticket.keywords == ["livraison"]


async def test_keyword_longer_than_20_chars_is_rejected():
    with pytest.raises(ValueError):
        ticket_in(keywords=["x" * 21])


async def test_customer_cannot_read_someone_elses_ticket(ticket_service, client_user, merchant_user):
    ticket = await ticket_service.create_ticket(client_user.id, ticket_in())
    with pytest.raises(ForbiddenException):
        await ticket_service.get_ticket(ticket.id, merchant_user.id, can_view_all=False)

    fetched = await ticket_service.get_ticket(ticket.id, merchant_user.id, can_view_all=True)
    assert fetched.id == ticket.id


async def test_closing_records_history_and_resolution_time(ticket_service, notifier, notification_sender, client_user):
    ticket = await ticket_service.create_ticket(client_user.id, ticket_in())

    closed = await ticket_service.update_status(ticket.id, "closed", resolution="Colis retrouvé")
    await notifier.drain()

    assert closed.status == "closed"
    assert closed.resolution == "Colis retrouvé"
    assert closed.resolution_time is not None and closed.resolution_time >= 0
    assert closed.status_history[-1]["previous_status"] == "open"
    assert closed.status_history[-1]["new_status"] == "closed"
    assert notification_sender.send.await_args.args[0] == client_user.id


async def test_closed_ticket_is_frozen(ticket_service, client_user, support_user):
    ticket = await ticket_service.create_ticket(client_user.id, ticket_in())
    await ticket_service.update_status(ticket.id, "closed")

    with pytest.raises(InvalidRequestException):
        await ticket_service.update_status(ticket.id, "open")
    with pytest.raises(InvalidRequestException):
        await ticket_service.assign_ticket(ticket.id, support_user.id)
    with pytest.raises(InvalidRequestException):
        await ticket_service.escalate_ticket(ticket.id, "level_2", "Client mécontent", support_user.id)


async def test_in_progress_does_not_notify(ticket_service, notifier, notification_sender, client_user):
    ticket = await ticket_service.create_ticket(client_user.id, ticket_in())
    await ticket_service.update_status(ticket.id, "in_progress")
    await notifier.drain()
    notification_sender.send.assert_not_awaited()


async def test_assign_ticket_notifies_agent(ticket_service, notifier, notification_sender, client_user, support_user):
    ticket = await ticket_service.create_ticket(client_user.id, ticket_in())

    assigned = await ticket_service.assign_ticket(ticket.id, support_user.id)
    await notifier.drain()

    assert assigned.assigned_agent_id == support_user.id
    notification_sender.send.assert_awaited_once_with(
        support_user.id, f"Un ticket vous a été assigné : #{ticket.id}", "support"
    )


async def test_assign_twice_conflicts(ticket_service, client_user, support_user):
    ticket = await ticket_service.create_ticket(client_user.id, ticket_in())
    await ticket_service.assign_ticket(ticket.id, support_user.id)
    with pytest.raises(ConflictException):
        await ticket_service.assign_ticket(ticket.id, support_user.id)


async def test_assign_to_non_support_user(ticket_service, client_user, merchant_user):
    ticket = await ticket_service.create_ticket(client_user.id, ticket_in())
    with pytest.raises(NotFoundException):
        await ticket_service.assign_ticket(ticket.id, merchant_user.id)


async def test_agent_limit_is_enforced(ticket_service, client_user, support_user):
    # La fixture limite un agent à 2 tickets actifs
    for i in range(2):
        ticket = await ticket_service.create_ticket(client_user.id, ticket_in(description=f"Problème numéro {i} sur ma commande"))
        await ticket_service.assign_ticket(ticket.id, support_user.id)

    extra = await ticket_service.create_ticket(client_user.id, ticket_in())
    with pytest.raises(ForbiddenException):
        await ticket_service.assign_ticket(extra.id, support_user.id)


async def test_resolved_tickets_free_the_agent(ticket_service, client_user, support_user):
    first = await ticket_service.create_ticket(client_user.id, ticket_in())
    second = await ticket_service.create_ticket(client_user.id, ticket_in())
    await ticket_service.assign_ticket(first.id, support_user.id)
    await ticket_service.assign_ticket(second.id, support_user.id)
    await ticket_service.update_status(first.id, "resolved")

    third = await ticket_service.create_ticket(client_user.id, ticket_in())
    assigned = await ticket_service.assign_ticket(third.id, support_user.id)
    assert assigned.assigned_agent_id == support_user.id


async def test_escalation_must_go_up(ticket_service, client_user, support_user):
    ticket = await ticket_service.create_ticket(client_user.id, ticket_in())

    escalated = await ticket_service.escalate_ticket(ticket.id, "level_2", "Remboursement bloqué", support_user.id)
    assert escalated.escalation_level == "level_2"
    assert escalated.escalation_history[-1]["escalated_by"] == support_user.id
    assert "Remboursement bloqué" in escalated.resolution

    with pytest.raises(InvalidRequestException):
        await ticket_service.escalate_ticket(ticket.id, "level_2", "Encore", support_user.id)


async def test_priority_tickets_are_high_open_and_unassigned(ticket_service, client_user, support_user):
    urgent = await ticket_service.create_ticket(client_user.id, ticket_in(priority="high"))
    taken = await ticket_service.create_ticket(client_user.id, ticket_in(priority="high"))
    await ticket_service.create_ticket(client_user.id, ticket_in(priority="low"))
    await ticket_service.assign_ticket(taken.id, support_user.id)

    tickets = await ticket_service.get_priority_tickets()
    assert [t.id for t in tickets] == [urgent.id]


async def test_search_by_keyword_and_description(ticket_service, client_user):
    await ticket_service.create_ticket(client_user.id, ticket_in(keywords=["remboursement"]))
    await ticket_service.create_ticket(client_user.id, ticket_in(description="Le produit reçu est abîmé", keywords=[]))

    by_keyword, total = await ticket_service.list_tickets(limit=10, offset=0, keyword="Remboursement")
    assert total == 1
    assert by_keyword[0].keywords == ["remboursement"]

    by_description, total = await ticket_service.list_tickets(limit=10, offset=0, keyword="abîmé")
    assert total == 1


async def test_stats(ticket_service, client_user):
    first = await ticket_service.create_ticket(client_user.id, ticket_in())
    await ticket_service.create_ticket(client_user.id, ticket_in())
    await ticket_service.update_status(first.id, "resolved")

    stats = await ticket_service.get_stats()

    assert stats.total_tickets == 2
    assert stats.open_tickets == 1
    assert stats.resolved_tickets == 1
    assert stats.average_resolution_time >= 0
    assert sum(stats.weekly.values()) == 2
    assert sum(stats.monthly.values()) == 2
