from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import ConfigDict
from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from marketplace.users.models import utcnow


class Cart(SQLModel, table=True):
    """Panier d'un client : un seul par client."""
    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: int = Field(foreign_key="users.id", unique=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    __tablename__ = "carts"


class CartItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    cart_id: int = Field(foreign_key="carts.id", index=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    quantity: int = Field(ge=1)
    # Prix figé à l'ajout, insensible aux changements de prix du produit
    price_at_addition: Decimal = Field(max_digits=10, decimal_places=2)
    added_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("cart_id", "product_id", name="uq_cart_item_product"),)

# --- Schémas API ---

class CartItemAdd(SQLModel):
    product_id: int
    quantity: int = Field(..., gt=0)


class CartItemUpdate(SQLModel):
    # 0 ou moins retire le produit du panier
    quantity: int


class CartItemRead(SQLModel):
    product_id: int
    quantity: int
    price_at_addition: Decimal
    line_total: Decimal
    model_config = ConfigDict(from_attributes=True)


class CartRead(SQLModel):
    id: int
    client_id: int
    items: List[CartItemRead] = []
    total_items: int = 0
    total_price: Decimal = Decimal("0")
    updated_at: Optional[datetime] = None


class CartContains(SQLModel):
    product_id: int
    in_cart: bool
