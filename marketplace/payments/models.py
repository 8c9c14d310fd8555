from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import ConfigDict
from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from marketplace.payments.config import PAYMENT_STATUS_PENDING, PAYMENT_TYPE_PAYMENT
from marketplace.users.models import utcnow

PaymentMethod = Literal["credit_card", "paypal", "cash"]
PaymentStatus = Literal["pending", "completed", "failed"]


class PaymentBase(SQLModel):
    order_id: int = Field(foreign_key="orders.id", index=True)
    amount: Decimal = Field(max_digits=10, decimal_places=2)
    fees: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    payment_method: str = Field(max_length=20)
    transaction_id: Optional[str] = Field(default=None, unique=True, index=True, max_length=100)
    payment_type: str = Field(default=PAYMENT_TYPE_PAYMENT, max_length=20)


class Payment(PaymentBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    status: str = Field(default=PAYMENT_STATUS_PENDING, max_length=20, index=True)
    net_revenue: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    # Statuts précédents : [{"status": ..., "changed_at": ...}]
    history: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    __tablename__ = "payments"


class PaymentCreate(SQLModel):
    order_id: int
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    fees: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    payment_method: PaymentMethod
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    # Remboursements et frais sont créés par le serveur uniquement
    payment_type: Literal["payment"] = "payment"


class PaymentRead(PaymentBase):
    id: int
    status: str
    net_revenue: Decimal
    history: List[Dict[str, Any]] = []
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PaymentStatusStat(SQLModel):
    status: str
    count: int
    total_amount: Decimal
