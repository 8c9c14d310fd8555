"""Exceptions spécifiques au domaine Cart."""
from marketplace.core.exceptions import NotFoundException


class CartNotFoundException(NotFoundException):
    def __init__(self, client_id: int):
        super().__init__(f"Aucun panier pour le client ID={client_id}")
        self.client_id = client_id


class CartItemNotFoundException(NotFoundException):
    def __init__(self, product_id: int):
        super().__init__(f"Le produit ID={product_id} n'est pas dans le panier.")
        self.product_id = product_id
