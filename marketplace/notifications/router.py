import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from marketplace.auth.dependencies import CurrentUser, require_permissions
from marketplace.core.exceptions import to_http_exception
from marketplace.core.pagination import PaginationParams
from marketplace.core.schemas import PaginatedResponse
from marketplace.notifications.dependencies import NotificationServiceDep
from marketplace.notifications.models import NotificationCreate, NotificationPriority, NotificationRead

logger = logging.getLogger(__name__)

notification_router = APIRouter()


def handle_notification_service_errors(e: Exception):
    raise to_http_exception(e, "Notification API")


@notification_router.get("/", response_model=PaginatedResponse[NotificationRead], summary="Mes notifications")
async def list_my_notifications(
    service: NotificationServiceDep,
    response: Response,
    pagination: PaginationParams,
    current_user: CurrentUser,
    notification_type: Optional[str] = Query(default=None, alias="type"),
    read_status: Optional[Literal["read", "unread"]] = Query(default=None, alias="status"),
    priority: Optional[NotificationPriority] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=100),
    include_archived: bool = Query(default=False),
):
    limit, offset = pagination
    notifications, total = await service.list_notifications(
        current_user.id, limit=limit, offset=offset,
        notification_type=notification_type, read_status=read_status,
        priority=priority, search=search, include_archived=include_archived,
    )
    end_range = offset + len(notifications) - 1 if notifications else offset
    response.headers["Content-Range"] = f"notifications {offset}-{end_range}/{total}"
    return PaginatedResponse[NotificationRead](items=notifications, total=total)


@notification_router.post("/",
                          response_model=NotificationRead,
                          status_code=status.HTTP_201_CREATED,
                          summary="Envoyer une notification à un utilisateur")
async def create_notification(
    service: NotificationServiceDep,
    notification_in: NotificationCreate,
    current_user=Depends(require_permissions("createNotification")),
):
    try:
        return await service.create_notification(notification_in)
    except Exception as e:
        handle_notification_service_errors(e)


@notification_router.patch("/read-all", summary="Tout marquer comme lu")
async def mark_all_as_read(service: NotificationServiceDep, current_user: CurrentUser):
    return {"updated": await service.mark_all_as_read(current_user.id)}


@notification_router.delete("/obsolete", summary="Supprimer les notifications expirées")
async def delete_obsolete_notifications(service: NotificationServiceDep, current_user: CurrentUser):
    return {"deleted": await service.delete_obsolete(current_user.id)}


@notification_router.delete("/users/{user_id}", summary="Supprimer toutes les notifications d'un utilisateur")
async def delete_all_notifications(
    service: NotificationServiceDep,
    user_id: int,
    current_user=Depends(require_permissions("deleteAllNotifications")),
):
    return {"deleted": await service.delete_all(user_id)}


@notification_router.patch("/{notification_id}/read", response_model=NotificationRead)
async def mark_as_read(service: NotificationServiceDep, notification_id: int, current_user: CurrentUser):
    try:
        return await service.mark_as_read(notification_id, current_user.id)
    except Exception as e:
        handle_notification_service_errors(e)


@notification_router.patch("/{notification_id}/archive", response_model=NotificationRead)
async def archive_notification(service: NotificationServiceDep, notification_id: int, current_user: CurrentUser):
    try:
        return await service.archive(notification_id, current_user.id)
    except Exception as e:
        handle_notification_service_errors(e)


@notification_router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(service: NotificationServiceDep, notification_id: int, current_user: CurrentUser):
    try:
        await service.delete_notification(notification_id, current_user.id)
    except Exception as e:
        handle_notification_service_errors(e)
