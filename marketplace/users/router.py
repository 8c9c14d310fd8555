import logging

from fastapi import APIRouter, Depends, status

from marketplace.auth.dependencies import CurrentUser, require_permissions
from marketplace.core.exceptions import to_http_exception
from marketplace.users.dependencies import UserServiceDep
from marketplace.users.models import UserCreate, UserRead

logger = logging.getLogger(__name__)

user_router = APIRouter()


@user_router.post("/",
                  response_model=UserRead,
                  status_code=status.HTTP_201_CREATED,
                  dependencies=[Depends(require_permissions("manageUsers"))])
async def create_user(service: UserServiceDep, user_in: UserCreate):
    """Crée un utilisateur (admin)."""
    try:
        return await service.create_user(user_in)
    except Exception as e:
        raise to_http_exception(e, "User API")


@user_router.get("/me", response_model=UserRead)
async def read_me(current_user: CurrentUser):
    return current_user


@user_router.get("/{user_id}",
                 response_model=UserRead,
                 dependencies=[Depends(require_permissions("viewUserDetails"))])
async def get_user(service: UserServiceDep, user_id: int):
    try:
        return await service.get_user(user_id)
    except Exception as e:
        raise to_http_exception(e, "User API")
