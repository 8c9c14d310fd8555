"""Exceptions spécifiques au domaine Product / inventaire."""
from marketplace.core.exceptions import ForbiddenException, InvalidRequestException, NotFoundException


class ProductNotFoundException(NotFoundException):
    def __init__(self, product_id: int):
        super().__init__(f"Produit introuvable : ID={product_id}")
        self.product_id = product_id


class InsufficientStockException(InvalidRequestException):
    """Levée si le stock est insuffisant pour la quantité demandée."""
    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Stock insuffisant pour le produit : ID={product_id}. "
            f"Demandé: {requested}, Disponible: {available}"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class ProductInactiveException(InvalidRequestException):
    def __init__(self, product_id: int):
        super().__init__(f"Le produit ID={product_id} n'est pas disponible à la vente.")
        self.product_id = product_id


class ProductOwnershipException(ForbiddenException):
    def __init__(self, product_id: int):
        super().__init__(f"Le produit ID={product_id} n'appartient pas à ce commerçant.")
        self.product_id = product_id
