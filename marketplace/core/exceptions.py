"""
Taxonomie des erreurs métier partagée par tous les modules.

Chaque module définit ses propres exceptions en héritant d'une de ces
catégories ; les routeurs traduisent la catégorie en code HTTP.
"""
import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class DomainException(Exception):
    """Classe de base pour les exceptions métier."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundException(DomainException):
    """La ressource référencée n'existe pas."""
    pass


class InvalidRequestException(DomainException):
    """La demande viole une règle métier (statut, stock, promotion...)."""
    pass


class ConflictException(DomainException):
    """La ressource a changé d'état entre la lecture et l'écriture, ou existe déjà."""
    pass


class ForbiddenException(DomainException):
    """L'acteur n'a pas le droit d'effectuer l'opération."""
    pass


STATUS_BY_KIND = {
    NotFoundException: status.HTTP_404_NOT_FOUND,
    InvalidRequestException: status.HTTP_400_BAD_REQUEST,
    ConflictException: status.HTTP_409_CONFLICT,
    ForbiddenException: status.HTTP_403_FORBIDDEN,
}


def to_http_exception(e: Exception, context: str) -> HTTPException:
    """Convertit une exception de service en HTTPException."""
    if isinstance(e, HTTPException):
        return e
    for kind, status_code in STATUS_BY_KIND.items():
        if isinstance(e, kind):
            logger.warning(f"[{context}] {type(e).__name__}: {e}")
            return HTTPException(status_code=status_code, detail=str(e))
    logger.error(f"[{context}] Unexpected error: {e}", exc_info=True)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur interne du serveur.")
