from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.cart.repositories import CartRepository
from marketplace.cart.service import CartService
from marketplace.database import get_db_session
from marketplace.products.dependencies import ProductRepositoryDep


def get_cart_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> CartRepository:
    return CartRepository(session)


CartRepositoryDep = Annotated[CartRepository, Depends(get_cart_repository)]


def get_cart_service(cart_repository: CartRepositoryDep, product_repository: ProductRepositoryDep) -> CartService:
    return CartService(cart_repository=cart_repository, product_repository=product_repository)


CartServiceDep = Annotated[CartService, Depends(get_cart_service)]
