# marketplace/products/repositories.py
import logging
from typing import Iterable, List, Optional, Tuple

from fastcrud import FastCRUD
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.products.models import Product, ProductCreate, ProductRead, ProductUpdate, StockMovement
from marketplace.users.models import utcnow

logger = logging.getLogger(__name__)


class ProductRepository:
    """Persistance des produits et des mouvements de stock."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.crud = FastCRUD[Product, ProductCreate, ProductUpdate, ProductUpdate, None, ProductRead](Product)

    async def get_by_id(self, product_id: int) -> Optional[Product]:
        return await self.db.get(Product, product_id)

    async def get_many(self, product_ids: Iterable[int]) -> dict:
        ids = list(set(product_ids))
        if not ids:
            return {}
        result = await self.db.execute(select(Product).where(Product.id.in_(ids)))
        return {p.id: p for p in result.scalars().all()}

    async def list(
        self,
        limit: int,
        offset: int,
        merchant_id: Optional[int] = None,
        active_only: bool = False,
    ) -> Tuple[List[ProductRead], int]:
        filters = {}
        if merchant_id is not None:
            filters["merchant_id"] = merchant_id
        if active_only:
            filters["is_active"] = True
        result = await self.crud.get_multi(
            db=self.db,
            offset=offset,
            limit=limit,
            schema_to_select=ProductRead,
            return_as_model=True,
            sort_columns=["id"],
            **filters,
        )
        return result.get("data", []), result.get("total_count", 0)

    async def list_low_stock(self, threshold: int, merchant_id: Optional[int] = None) -> List[Product]:
        stmt = select(Product).where(Product.stock <= threshold)
        if merchant_id is not None:
            stmt = stmt.where(Product.merchant_id == merchant_id)
        result = await self.db.execute(stmt.order_by(Product.stock.asc()))
        return list(result.scalars().all())

    async def add(self, product: Product) -> Product:
        self.db.add(product)
        await self.db.flush()
        await self.db.refresh(product)
        return product

    async def decrement_stock_if_available(self, product_id: int, quantity: int) -> bool:
        """Retire `quantity` du stock seulement s'il est suffisant. Retourne False sinon."""
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def increment_stock(self, product_id: int, quantity: int) -> bool:
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    def record_movement(self, product_id: int, change: int, reason: str, order_id: Optional[int] = None) -> None:
        self.db.add(StockMovement(product_id=product_id, change=change, reason=reason, order_id=order_id))

    async def list_movements(self, product_id: int) -> List[StockMovement]:
        result = await self.db.execute(
            select(StockMovement)
            .where(StockMovement.product_id == product_id)
            .order_by(StockMovement.id.desc())
        )
        return list(result.scalars().all())

