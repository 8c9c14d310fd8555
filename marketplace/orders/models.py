from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import ConfigDict
from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

from marketplace.orders.config import ORDER_STATUS_PENDING
from marketplace.users.models import utcnow

# --- Modèles de base pour OrderItem ---

class OrderItemBase(SQLModel):
    product_id: int = Field(foreign_key="products.id", index=True)
    quantity: int = Field(..., gt=0)
    # Prix figé au moment de la commande
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class OrderItem(OrderItemBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: Optional[int] = Field(default=None, foreign_key="orders.id", index=True)

    order: Optional["Order"] = Relationship(back_populates="items")

    __tablename__ = "order_items"

# --- Modèles de base pour Order ---

class OrderBase(SQLModel):
    client_id: int = Field(foreign_key="users.id", index=True)
    merchant_id: int = Field(foreign_key="users.id", index=True)
    promotion_id: Optional[int] = Field(default=None, foreign_key="promotions.id")
    status: str = Field(default=ORDER_STATUS_PENDING, max_length=20, index=True)
    total_price: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    # Somme quantité x prix avant remise
    revenue: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    # Références simples : deliveries et payments pointent déjà vers orders
    delivery_id: Optional[int] = Field(default=None, index=True)
    payment_id: Optional[int] = Field(default=None, index=True)
    delivery_address: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None)


class Order(OrderBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    items: List[OrderItem] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"lazy": "selectin", "cascade": "all, delete-orphan"},
    )

    __tablename__ = "orders"

# --- Schémas API ---

class OrderItemCreate(SQLModel):
    product_id: int
    quantity: int = Field(..., gt=0)
    # Prix annoncé par le client ; le prix catalogue fait foi
    price: Optional[Decimal] = Field(default=None, ge=0)


class OrderCreate(SQLModel):
    items: List[OrderItemCreate] = Field(..., min_length=1)
    # Facultatif ; s'il est fourni il doit être le commerçant des produits
    merchant_id: Optional[int] = None
    promotion_id: Optional[int] = None
    delivery_address: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = None
    # Ignoré : recalculé par le serveur
    total_price: Optional[Decimal] = None


class OrderStatusUpdate(SQLModel):
    status: str = Field(..., max_length=20)


class OrderItemRead(OrderItemBase):
    id: int
    model_config = ConfigDict(from_attributes=True)


class OrderRead(OrderBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemRead] = []
    model_config = ConfigDict(from_attributes=True)


class PriceLine(SQLModel):
    product_id: Optional[int] = None
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=0)


class OrderTotal(SQLModel):
    total: Decimal


class OrderReceipt(SQLModel):
    order_id: int
    client_id: int
    merchant_id: int
    items: List[OrderItemRead]
    total_price: Decimal
    revenue: Decimal
    discount_amount: Decimal
    status: str
    created_at: Optional[datetime] = None


class OrderAvailability(SQLModel):
    order_id: int
    available: bool
