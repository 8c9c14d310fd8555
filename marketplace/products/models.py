from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import ConfigDict
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from marketplace.users.models import utcnow

# --- Modèle Product ---

class ProductBase(SQLModel):
    name: str = Field(max_length=200)
    description: Optional[str] = Field(default=None)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    is_active: bool = Field(default=True)


class Product(ProductBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    merchant_id: int = Field(foreign_key="users.id", index=True)
    # Ne doit jamais devenir négatif
    stock: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    __tablename__ = "products"


class ProductCreate(ProductBase):
    stock: int = Field(default=0, ge=0)


class ProductUpdate(SQLModel):
    name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)


class ProductRead(ProductBase):
    id: int
    merchant_id: int
    stock: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ProductVisibilityUpdate(SQLModel):
    is_active: bool

# --- Modèle StockMovement (historique du stock) ---

class StockMovement(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    change: int
    reason: str = Field(max_length=100)
    order_id: Optional[int] = Field(default=None, foreign_key="orders.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    __tablename__ = "stock_movements"


class StockAdjust(SQLModel):
    change: int
    reason: str = Field(default="manual_adjustment", max_length=100)


class StockMovementRead(SQLModel):
    id: int
    product_id: int
    change: int
    reason: str
    order_id: Optional[int] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
