"""Exceptions spécifiques au domaine Delivery."""
from marketplace.core.exceptions import ConflictException, InvalidRequestException, NotFoundException


class DeliveryNotFoundException(NotFoundException):
    def __init__(self, delivery_id: int):
        super().__init__(f"Livraison introuvable : ID={delivery_id}")
        self.delivery_id = delivery_id


class InvalidDeliveryStatusException(InvalidRequestException):
    def __init__(self, status: str):
        super().__init__(f"Statut de livraison invalide : '{status}'")
        self.status = status


class InvalidCoordinatesException(InvalidRequestException):
    pass


class DeliveryNotAvailableException(ConflictException):
    """La livraison n'est plus en attente (déjà acceptée ou assignée)."""
    def __init__(self, delivery_id: int):
        super().__init__(f"La livraison ID={delivery_id} n'est plus disponible.")
        self.delivery_id = delivery_id
