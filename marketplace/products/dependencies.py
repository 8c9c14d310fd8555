from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.products.repositories import ProductRepository
from marketplace.products.service import ProductService


def get_product_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> ProductRepository:
    return ProductRepository(session)


ProductRepositoryDep = Annotated[ProductRepository, Depends(get_product_repository)]


def get_product_service(product_repository: ProductRepositoryDep) -> ProductService:
    """Fournit une instance du service produits."""
    return ProductService(product_repository=product_repository)


ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]
