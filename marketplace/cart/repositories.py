import logging
from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.cart.models import Cart, CartItem

logger = logging.getLogger(__name__)


class CartRepository:
    """Persistance des paniers et de leurs lignes."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_by_client(self, client_id: int) -> Optional[Cart]:
        result = await self.db.execute(select(Cart).where(Cart.client_id == client_id))
        return result.scalars().first()

    async def add(self, cart: Cart) -> Cart:
        self.db.add(cart)
        await self.db.flush()
        await self.db.refresh(cart)
        return cart

    async def list_items(self, cart_id: int) -> List[CartItem]:
        result = await self.db.execute(
            select(CartItem).where(CartItem.cart_id == cart_id).order_by(CartItem.id)
        )
        return list(result.scalars().all())

    async def get_item(self, cart_id: int, product_id: int) -> Optional[CartItem]:
        result = await self.db.execute(
            select(CartItem).where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
        )
        return result.scalars().first()

    def add_item(self, item: CartItem) -> None:
        self.db.add(item)

    async def delete_item(self, item: CartItem) -> None:
        await self.db.delete(item)
        await self.db.flush()

    async def clear(self, cart_id: int) -> None:
        await self.db.execute(
            delete(CartItem).where(CartItem.cart_id == cart_id).execution_options(synchronize_session="fetch")
        )
