"""
Tests du service livreurs : livraisons disponibles, acceptation, suivi et gains.
"""
from decimal import Decimal

import pytest
from sqlmodel import select

from marketplace.core.schemas import Coordinates
from marketplace.deliveries.exceptions import DeliveryNotAvailableException
from marketplace.deliveries.models import Delivery
from marketplace.livreurs.exceptions import (
    DeliveryNotAssignedException,
    InvalidCourierStatusException,
    LivreurProfileMissingException,
)
from marketplace.livreurs.models import Livreur

pytestmark = pytest.mark.asyncio


async def add_delivery(db_session, order_id, lat=None, lon=None, payment="4.00") -> Delivery:
    delivery = Delivery(order_id=order_id, start_latitude=lat, start_longitude=lon, payment=Decimal(payment))
    db_session.add(delivery)
    await db_session.commit()
    await db_session.refresh(delivery)
    return delivery


async def test_available_deliveries_sorted_by_distance(livreur_service, db_session, pending_order, livreur_user, livreur):
    lyon = await add_delivery(db_session, pending_order.id, 45.7640, 4.8357)
    unknown = await add_delivery(db_session, pending_order.id)
    paris = await add_delivery(db_session, pending_order.id, 48.8600, 2.3500)

    available = await livreur_service.get_available_deliveries(livreur_user.id)

    assert [a.delivery.id for a in available] == [paris.id, lyon.id, unknown.id]
    assert available[0].distance_from_livreur < 1
    assert available[1].distance_from_livreur == pytest.approx(392, abs=2)
    assert available[2].distance_from_livreur is None


async def test_accept_delivery(livreur_service, pending_delivery, livreur_user, livreur):
    accepted = await livreur_service.accept_delivery(livreur_user.id, pending_delivery.id)

    assert accepted.status == "in_progress"
    assert accepted.livreur_id == livreur.id
    assigned = await livreur_service.get_assigned_deliveries(livreur_user.id)
    assert [d.id for d in assigned] == [pending_delivery.id]


async def test_accepting_taken_delivery_conflicts_without_reassigning(
    livreur_service, db_session, pending_delivery, livreur_user, livreur, livreur_user_2, livreur_2
):
    delivery_id, first_id, second_user_id = pending_delivery.id, livreur.id, livreur_user_2.id
    await livreur_service.accept_delivery(livreur_user.id, delivery_id)

    with pytest.raises(DeliveryNotAvailableException):
        await livreur_service.accept_delivery(second_user_id, delivery_id)

    livreur_id = await db_session.scalar(select(Delivery.livreur_id).where(Delivery.id == delivery_id))
    assert livreur_id == first_id
    assert await livreur_service.get_assigned_deliveries(second_user_id) == []


async def test_user_without_profile(livreur_service, client_user):
    with pytest.raises(LivreurProfileMissingException):
        await livreur_service.get_available_deliveries(client_user.id)


async def test_delivered_updates_performance_and_earnings(livreur_service, db_session, pending_delivery, livreur_user, livreur):
    await livreur_service.accept_delivery(livreur_user.id, pending_delivery.id)

    delivered = await livreur_service.update_delivery_status(livreur_user.id, pending_delivery.id, "delivered")

    assert delivered.status == "delivered"
    assert delivered.status_history[-1]["status"] == "delivered"
    profile = await db_session.scalar(select(Livreur).where(Livreur.user_id == livreur_user.id))
    await db_session.refresh(profile)
    assert profile.deliveries_completed == 1
    assert profile.total_earnings == Decimal("6.50")
    assert profile.average_delivery_time >= 0

    earnings = await livreur_service.calculate_earnings(livreur_user.id)
    assert earnings.total == Decimal("6.50")
    history = await livreur_service.get_delivery_history(livreur_user.id)
    assert [d.id for d in history] == [pending_delivery.id]


async def test_delivered_twice_is_rejected(livreur_service, pending_delivery, livreur_user, livreur):
    await livreur_service.accept_delivery(livreur_user.id, pending_delivery.id)
    await livreur_service.update_delivery_status(livreur_user.id, pending_delivery.id, "delivered")
    with pytest.raises(InvalidCourierStatusException):
        await livreur_service.update_delivery_status(livreur_user.id, pending_delivery.id, "delivered")


async def test_courier_cannot_set_pending(livreur_service, pending_delivery, livreur_user, livreur):
    with pytest.raises(InvalidCourierStatusException):
        await livreur_service.update_delivery_status(livreur_user.id, pending_delivery.id, "pending")


async def test_other_courier_cannot_update_status(livreur_service, pending_delivery, livreur_user, livreur, livreur_user_2, livreur_2):
    await livreur_service.accept_delivery(livreur_user.id, pending_delivery.id)
    with pytest.raises(DeliveryNotAssignedException):
        await livreur_service.update_delivery_status(livreur_user_2.id, pending_delivery.id, "delivered")


async def test_availability_and_location(livreur_service, livreur_user, livreur):
    profile = await livreur_service.set_availability(livreur_user.id, False)
    assert profile.is_available is False

    profile = await livreur_service.update_location(livreur_user.id, Coordinates(latitude=43.2965, longitude=5.3698))
    assert (profile.latitude, profile.longitude) == (43.2965, 5.3698)
