"""Exceptions spécifiques au domaine Livreur."""
from marketplace.core.exceptions import ForbiddenException, InvalidRequestException, NotFoundException


class LivreurNotFoundException(NotFoundException):
    def __init__(self, livreur_id: int):
        super().__init__(f"Livreur introuvable : ID={livreur_id}")
        self.livreur_id = livreur_id


class LivreurProfileMissingException(NotFoundException):
    def __init__(self, user_id: int):
        super().__init__(f"Aucun profil livreur pour l'utilisateur ID={user_id}")
        self.user_id = user_id


class InvalidCourierStatusException(InvalidRequestException):
    def __init__(self, status: str):
        super().__init__(f"Statut de livraison invalide pour un livreur : '{status}'")
        self.status = status


class DeliveryNotAssignedException(ForbiddenException):
    def __init__(self, delivery_id: int):
        super().__init__(f"La livraison ID={delivery_id} n'est pas assignée à ce livreur.")
        self.delivery_id = delivery_id
