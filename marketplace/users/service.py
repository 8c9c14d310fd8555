import logging
from typing import Optional

from marketplace.auth.roles import ROLES
from marketplace.auth.security import get_password_hash, verify_password
from marketplace.livreurs.models import Livreur
from marketplace.users.exceptions import DuplicateEmailException, InvalidRoleException, UserNotFoundException
from marketplace.users.models import User, UserCreate, UserRead
from marketplace.users.repositories import UserRepository
from marketplace.core.exceptions import InvalidRequestException

logger = logging.getLogger(__name__)


class UserService:
    """Service applicatif pour la gestion des utilisateurs."""

    def __init__(self, user_repository: UserRepository):
        self.user_repository = user_repository
        self.db = user_repository.db

    async def get_user(self, user_id: int) -> UserRead:
        user = await self.user_repository.get_by_id(user_id)
        if not user:
            raise UserNotFoundException(user_id)
        return UserRead.model_validate(user)

    async def create_user(self, user_in: UserCreate) -> UserRead:
        """Crée un utilisateur. Un livreur reçoit aussi son profil avec sa position initiale."""
        logger.info(f"[UserService] Création utilisateur {user_in.email} (rôle: {user_in.role})")
        if user_in.role not in ROLES:
            raise InvalidRoleException(user_in.role)
        if user_in.role == "livreur" and user_in.location is None:
            raise InvalidRequestException("Une position initiale est requise pour un livreur.")
        if await self.user_repository.get_by_email(user_in.email):
            raise DuplicateEmailException(user_in.email)

        user = User(
            email=user_in.email,
            name=user_in.name,
            role=user_in.role,
            password_hash=get_password_hash(user_in.password),
        )
        try:
            user = await self.user_repository.add(user)
            if user.role == "livreur":
                self.db.add(Livreur(
                    user_id=user.id,
                    latitude=user_in.location.latitude,
                    longitude=user_in.location.longitude,
                ))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"[UserService] Utilisateur ID {user.id} créé.")
        return UserRead.model_validate(user)

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        user = await self.user_repository.get_by_email(email)
        if not user or not user.is_active:
            return None
        if not verify_password(password, user.password_hash):
            logger.warning(f"[UserService] Mot de passe invalide pour {email}")
            return None
        return user
