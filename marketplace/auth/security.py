"""
Hachage des mots de passe et jetons d'accès.

Un jeton porte l'identifiant de l'utilisateur (`sub`) et son rôle : le rôle
sert au contrôle d'accès, il est comparé au rôle en base à chaque requête.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from pydantic import BaseModel

from marketplace.config import settings

logger = logging.getLogger(__name__)


class TokenClaims(BaseModel):
    user_id: int
    role: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError as e:
        # Hash mal formé en base
        logger.error(f"Hash de mot de passe illisible: {e}", exc_info=True)
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def create_user_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """Émet un jeton d'accès pour un utilisateur et son rôle."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenClaims]:
    """Retourne les claims du jeton, ou None s'il est invalide, expiré ou incomplet."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Jeton refusé: {e}")
        return None

    sub, role = payload.get("sub"), payload.get("role")
    if sub is None or role is None:
        logger.warning("Jeton sans 'sub' ou sans 'role'.")
        return None
    try:
        return TokenClaims(user_id=int(sub), role=role)
    except ValueError:
        logger.warning(f"Le champ 'sub' du jeton n'est pas un identifiant: '{sub}'")
        return None
