"""
Tests du service de notifications in-app.
"""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from marketplace.core.exceptions import ForbiddenException, NotFoundException
from marketplace.notifications.models import Notification, NotificationCreate

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def inbox(db_session, client_user):
    """Trois notifications du client : une lue, une urgente, une expirée."""
    past = datetime.now(timezone.utc) - timedelta(days=1)
    notifications = [
        Notification(user_id=client_user.id, message="Commande #1 expédiée", notification_type="order", is_read=True),
        Notification(user_id=client_user.id, message="Code PROMO20 disponible", notification_type="promotion", priority="high"),
        Notification(user_id=client_user.id, message="Vente flash terminée", notification_type="promotion", expires_at=past),
    ]
    db_session.add_all(notifications)
    await db_session.commit()
    return [n.id for n in notifications]


async def test_list_filters(notification_service, client_user, inbox):
    _, total = await notification_service.list_notifications(client_user.id, limit=10, offset=0)
    assert total == 3

    unread, total = await notification_service.list_notifications(client_user.id, limit=10, offset=0, read_status="unread")
    assert total == 2
    assert all(not n.is_read for n in unread)

    promos, total = await notification_service.list_notifications(
        client_user.id, limit=10, offset=0, notification_type="promotion", priority="high"
    )
    assert [n.message for n in promos] == ["Code PROMO20 disponible"]

    found, total = await notification_service.list_notifications(client_user.id, limit=10, offset=0, search="promo20")
    assert total == 1


async def test_mark_as_read_requires_ownership(notification_service, client_user, merchant_user, inbox):
    unread_id = inbox[1]
    with pytest.raises(ForbiddenException):
        await notification_service.mark_as_read(unread_id, merchant_user.id)

    notification = await notification_service.mark_as_read(unread_id, client_user.id)
    assert notification.is_read is True


async def test_mark_unknown_notification(notification_service, client_user):
    with pytest.raises(NotFoundException):
        await notification_service.mark_as_read(999, client_user.id)


async def test_mark_all_as_read(notification_service, client_user, inbox):
    assert await notification_service.mark_all_as_read(client_user.id) == 2
    _, unread = await notification_service.list_notifications(client_user.id, limit=10, offset=0, read_status="unread")
    assert unread == 0


async def test_archived_notifications_are_hidden(notification_service, client_user, inbox):
    await notification_service.archive(inbox[0], client_user.id)

    _, visible = await notification_service.list_notifications(client_user.id, limit=10, offset=0)
    _, everything = await notification_service.list_notifications(client_user.id, limit=10, offset=0, include_archived=True)
    assert (visible, everything) == (2, 3)


async def test_delete_obsolete_only_removes_expired(notification_service, client_user, inbox):
    assert await notification_service.delete_obsolete(client_user.id) == 1
    _, total = await notification_service.list_notifications(client_user.id, limit=10, offset=0)
    assert total == 2


async def test_create_for_unknown_user(notification_service):
    with pytest.raises(NotFoundException):
        await notification_service.create_notification(NotificationCreate(user_id=999, message="Bonjour"))
