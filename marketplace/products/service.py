import logging
from typing import List, Optional, Tuple

from marketplace.products.exceptions import (
    InsufficientStockException,
    ProductNotFoundException,
    ProductOwnershipException,
)
from marketplace.products.models import (
    Product,
    ProductCreate,
    ProductRead,
    ProductUpdate,
    StockAdjust,
    StockMovementRead,
)
from marketplace.products.repositories import ProductRepository
from marketplace.users.models import utcnow

logger = logging.getLogger(__name__)


class ProductService:
    """Service applicatif pour les produits et l'inventaire des commerçants."""

    def __init__(self, product_repository: ProductRepository):
        self.product_repository = product_repository
        self.db = product_repository.db

    async def _get_owned_product(self, product_id: int, requesting_user_id: int, is_admin: bool) -> Product:
        product = await self.product_repository.get_by_id(product_id)
        if not product:
            raise ProductNotFoundException(product_id)
        if not is_admin and product.merchant_id != requesting_user_id:
            logger.warning(f"[ProductService] User {requesting_user_id} n'est pas propriétaire du produit {product_id}.")
            raise ProductOwnershipException(product_id)
        return product

    async def create_product(self, merchant_id: int, product_in: ProductCreate) -> ProductRead:
        logger.info(f"[ProductService] Création produit '{product_in.name}' pour commerçant {merchant_id}")
        product = Product(**product_in.model_dump(), merchant_id=merchant_id)
        product = await self.product_repository.add(product)
        if product.stock:
            self.product_repository.record_movement(product.id, product.stock, "initial_stock")
        await self.db.commit()
        return ProductRead.model_validate(product)

    async def get_product(self, product_id: int) -> ProductRead:
        product = await self.product_repository.get_by_id(product_id)
        if not product:
            raise ProductNotFoundException(product_id)
        return ProductRead.model_validate(product)

    async def list_products(
        self,
        limit: int,
        offset: int,
        merchant_id: Optional[int] = None,
        active_only: bool = True,
    ) -> Tuple[List[ProductRead], int]:
        logger.debug(f"[ProductService] Listage produits merchant={merchant_id}, limit={limit}, offset={offset}")
        return await self.product_repository.list(
            limit=limit, offset=offset, merchant_id=merchant_id, active_only=active_only
        )

    async def update_product(
        self, product_id: int, product_in: ProductUpdate, requesting_user_id: int, is_admin: bool
    ) -> ProductRead:
        product = await self._get_owned_product(product_id, requesting_user_id, is_admin)
        for key, value in product_in.model_dump(exclude_unset=True).items():
            setattr(product, key, value)
        product.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(product)
        logger.info(f"[ProductService] Produit {product_id} mis à jour.")
        return ProductRead.model_validate(product)

    async def set_visibility(
        self, product_id: int, is_active: bool, requesting_user_id: int, is_admin: bool
    ) -> ProductRead:
        product = await self._get_owned_product(product_id, requesting_user_id, is_admin)
        product.is_active = is_active
        product.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(product)
        logger.info(f"[ProductService] Produit {product_id} {'activé' if is_active else 'désactivé'}.")
        return ProductRead.model_validate(product)

    async def adjust_stock(
        self, product_id: int, adjustment: StockAdjust, requesting_user_id: int, is_admin: bool
    ) -> ProductRead:
        """Ajoute ou retire du stock. Le stock résultant ne peut pas être négatif."""
        product = await self._get_owned_product(product_id, requesting_user_id, is_admin)
        logger.info(f"[ProductService] Ajustement stock produit {product_id}: {adjustment.change} ({adjustment.reason})")
        available = product.stock
        if adjustment.change < 0:
            if not await self.product_repository.decrement_stock_if_available(product_id, -adjustment.change):
                await self.db.rollback()
                raise InsufficientStockException(product_id, -adjustment.change, available)
        elif adjustment.change > 0:
            await self.product_repository.increment_stock(product_id, adjustment.change)
        self.product_repository.record_movement(product_id, adjustment.change, adjustment.reason)
        await self.db.commit()
        await self.db.refresh(product)
        return ProductRead.model_validate(product)

    async def list_low_stock(self, threshold: int, merchant_id: Optional[int] = None) -> List[ProductRead]:
        products = await self.product_repository.list_low_stock(threshold, merchant_id)
        return [ProductRead.model_validate(p) for p in products]

    async def get_stock_history(self, product_id: int) -> List[StockMovementRead]:
        if not await self.product_repository.get_by_id(product_id):
            raise ProductNotFoundException(product_id)
        movements = await self.product_repository.list_movements(product_id)
        return [StockMovementRead.model_validate(m) for m in movements]
