import logging
from decimal import Decimal
from typing import List

from marketplace.cart.exceptions import CartItemNotFoundException, CartNotFoundException
from marketplace.cart.models import Cart, CartContains, CartItem, CartItemRead, CartRead
from marketplace.cart.repositories import CartRepository
from marketplace.products.exceptions import (
    InsufficientStockException,
    ProductInactiveException,
    ProductNotFoundException,
)
from marketplace.products.models import Product
from marketplace.products.repositories import ProductRepository
from marketplace.users.models import utcnow

logger = logging.getLogger(__name__)


def cart_total(items: List[CartItem]) -> Decimal:
    return sum((Decimal(str(i.price_at_addition)) * i.quantity for i in items), Decimal("0"))


class CartService:
    """
    Panier du client.

    Le prix d'une ligne est figé au moment de l'ajout ; le stock est vérifié
    à l'ajout et à chaque changement de quantité, sans être réservé.
    """

    def __init__(self, cart_repository: CartRepository, product_repository: ProductRepository):
        self.cart_repository = cart_repository
        self.product_repository = product_repository
        self.db = cart_repository.db

    async def _get_cart(self, client_id: int) -> Cart:
        cart = await self.cart_repository.get_by_client(client_id)
        if not cart:
            raise CartNotFoundException(client_id)
        return cart

    async def _get_sellable_product(self, product_id: int, quantity: int) -> Product:
        product = await self.product_repository.get_by_id(product_id)
        if not product:
            raise ProductNotFoundException(product_id)
        if not product.is_active:
            raise ProductInactiveException(product_id)
        if quantity > product.stock:
            raise InsufficientStockException(product_id, quantity, product.stock)
        return product

    async def _read(self, cart: Cart) -> CartRead:
        items = await self.cart_repository.list_items(cart.id)
        return CartRead(
            id=cart.id,
            client_id=cart.client_id,
            items=[
                CartItemRead(
                    product_id=i.product_id,
                    quantity=i.quantity,
                    price_at_addition=i.price_at_addition,
                    line_total=Decimal(str(i.price_at_addition)) * i.quantity,
                )
                for i in items
            ],
            total_items=sum(i.quantity for i in items),
            total_price=cart_total(items),
            updated_at=cart.updated_at,
        )

    async def _touch_and_commit(self, cart: Cart) -> None:
        cart.updated_at = utcnow()
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def get_cart(self, client_id: int) -> CartRead:
        """Retourne le panier du client, créé vide à la première consultation."""
        cart = await self.cart_repository.get_by_client(client_id)
        if not cart:
            cart = await self.cart_repository.add(Cart(client_id=client_id))
            await self.db.commit()
            logger.info(f"[CartService] Panier créé pour client {client_id}")
        return await self._read(cart)

    async def add_item(self, client_id: int, product_id: int, quantity: int) -> CartRead:
        """Ajoute `quantity` unités ; une ligne existante voit sa quantité augmenter."""
        try:
            cart = await self.cart_repository.get_by_client(client_id)
            if not cart:
                cart = await self.cart_repository.add(Cart(client_id=client_id))
            item = await self.cart_repository.get_item(cart.id, product_id)
            wanted = quantity + (item.quantity if item else 0)
            product = await self._get_sellable_product(product_id, wanted)

            if item:
                item.quantity = wanted
            else:
                self.cart_repository.add_item(
                    CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity, price_at_addition=product.price)
                )
            cart.updated_at = utcnow()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"[CartService] Client {client_id} : produit {product_id} x{quantity} ajouté")
        return await self._read(cart)

    async def update_item(self, client_id: int, product_id: int, quantity: int) -> CartRead:
        cart = await self._get_cart(client_id)
        item = await self.cart_repository.get_item(cart.id, product_id)
        if not item:
            raise CartItemNotFoundException(product_id)
        if quantity <= 0:
            await self.cart_repository.delete_item(item)
        else:
            await self._get_sellable_product(product_id, quantity)
            item.quantity = quantity
        await self._touch_and_commit(cart)
        return await self._read(cart)

    async def remove_item(self, client_id: int, product_id: int) -> CartRead:
        cart = await self._get_cart(client_id)
        item = await self.cart_repository.get_item(cart.id, product_id)
        # Retirer un produit absent ne change rien
        if item:
            await self.cart_repository.delete_item(item)
            await self._touch_and_commit(cart)
        return await self._read(cart)

    async def clear_cart(self, client_id: int) -> CartRead:
        cart = await self._get_cart(client_id)
        await self.cart_repository.clear(cart.id)
        await self._touch_and_commit(cart)
        logger.info(f"[CartService] Panier du client {client_id} vidé")
        return await self._read(cart)

    async def contains_product(self, client_id: int, product_id: int) -> CartContains:
        cart = await self._get_cart(client_id)
        item = await self.cart_repository.get_item(cart.id, product_id)
        return CartContains(product_id=product_id, in_cart=item is not None)
