"""Exceptions spécifiques au domaine Promotion."""
from marketplace.core.exceptions import ConflictException, InvalidRequestException, NotFoundException


class PromotionNotFoundException(NotFoundException):
    def __init__(self, promotion_id: int):
        super().__init__(f"Promotion introuvable : ID={promotion_id}")
        self.promotion_id = promotion_id


class PromotionNotValidException(InvalidRequestException):
    """Promotion inactive, épuisée ou expirée."""
    def __init__(self, code: str):
        super().__init__(f"Promotion '{code}' expirée ou non valide.")
        self.code = code


class PromotionNotApplicableException(InvalidRequestException):
    def __init__(self, code: str):
        super().__init__(f"Promotion '{code}' non applicable aux produits de la commande.")
        self.code = code


class DuplicatePromotionCodeException(ConflictException):
    def __init__(self, code: str):
        super().__init__(f"Le code promotionnel '{code}' existe déjà.")
        self.code = code


class InvalidPromotionDataException(InvalidRequestException):
    pass


class PromotionInUseException(ConflictException):
    """La promotion a déjà servi : elle ne peut qu'être désactivée."""
    def __init__(self, promotion_id: int):
        super().__init__(
            f"La promotion ID={promotion_id} a déjà été utilisée et ne peut pas être supprimée. Désactivez-la."
        )
        self.promotion_id = promotion_id
