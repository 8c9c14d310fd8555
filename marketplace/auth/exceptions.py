"""
Exceptions personnalisées pour le module d'authentification.
"""
from fastapi import HTTPException, status

WWW_AUTHENTICATE = {"WWW-Authenticate": "Bearer"}


class InvalidCredentialsException(HTTPException):
    """Exception pour des identifiants de connexion invalides."""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email ou mot de passe incorrect.",
            headers=WWW_AUTHENTICATE,
        )


class TokenMissingException(HTTPException):
    """Exception pour un token JWT manquant."""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentification requise.",
            headers=WWW_AUTHENTICATE,
        )


class TokenInvalidException(HTTPException):
    """Exception pour un token JWT invalide ou expiré."""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalide ou expiré.",
            headers=WWW_AUTHENTICATE,
        )


class PermissionDeniedException(HTTPException):
    """Exception pour une permission refusée."""
    def __init__(self, permission: str = ""):
        detail = "Vous n'avez pas les droits nécessaires."
        if permission:
            detail = f"Permission requise: {permission}."
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
