import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel

from marketplace.auth.exceptions import InvalidCredentialsException
from marketplace.auth.security import create_user_token
from marketplace.users.dependencies import UserServiceDep

logger = logging.getLogger(__name__)

auth_router = APIRouter()


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


@auth_router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    service: UserServiceDep,
):
    """Échange email / mot de passe contre un token d'accès."""
    user = await service.authenticate(form_data.username, form_data.password)
    if not user:
        raise InvalidCredentialsException()
    access_token = create_user_token(user.id, user.role)
    logger.info(f"Connexion réussie pour l'utilisateur {user.id}")
    return Token(access_token=access_token)
