"""
Dépendances FastAPI pour l'authentification et le contrôle d'accès par rôle.
"""
import logging
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from marketplace.auth.exceptions import PermissionDeniedException, TokenInvalidException, TokenMissingException
from marketplace.auth.roles import has_permission
from marketplace.auth.security import decode_access_token
from marketplace.config import settings
from marketplace.users.dependencies import UserRepositoryDep
from marketplace.users.models import UserRead

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/token", auto_error=False)


async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    user_repository: UserRepositoryDep,
) -> UserRead:
    """Vérifie le token JWT et retourne l'utilisateur courant."""
    if token is None:
        logger.warning("Token manquant dans la requête.")
        raise TokenMissingException()

    claims = decode_access_token(token)
    if claims is None:
        raise TokenInvalidException()
    user = await user_repository.get_by_id(claims.user_id)
    if user is None or not user.is_active:
        logger.warning(f"Token valide mais utilisateur {claims.user_id} introuvable ou inactif.")
        raise TokenInvalidException()
    if user.role != claims.role:
        # Rôle modifié depuis l'émission du jeton
        logger.warning(f"Rôle du jeton ({claims.role}) différent du rôle actuel de l'utilisateur {user.id}.")
        raise TokenInvalidException()

    logger.debug(f"Utilisateur authentifié: ID {user.id} ({user.role})")
    return UserRead.model_validate(user)


CurrentUser = Annotated[UserRead, Depends(get_current_user)]


def require_permissions(*permissions: str):
    """Fabrique une dépendance qui exige toutes les permissions données."""
    async def checker(current_user: CurrentUser) -> UserRead:
        for permission in permissions:
            if not has_permission(current_user.role, permission):
                logger.warning(f"Accès refusé pour user {current_user.id} ({current_user.role}): {permission}")
                raise PermissionDeniedException(permission)
        return current_user
    return checker


def require_any_permission(*permissions: str):
    """Fabrique une dépendance qui exige au moins une des permissions données."""
    async def checker(current_user: CurrentUser) -> UserRead:
        if not any(has_permission(current_user.role, p) for p in permissions):
            logger.warning(f"Accès refusé pour user {current_user.id} ({current_user.role}): {', '.join(permissions)}")
            raise PermissionDeniedException(" | ".join(permissions))
        return current_user
    return checker
