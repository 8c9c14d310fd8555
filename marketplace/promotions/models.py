from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import ConfigDict
from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from marketplace.promotions.config import DEFAULT_USAGE_LIMIT
from marketplace.users.models import utcnow

DiscountType = Literal["percentage", "fixed"]


def empty_stats() -> Dict[str, Dict[str, int]]:
    return {"weekly": {}, "monthly": {}, "yearly": {}}


class PromotionBase(SQLModel):
    code: str = Field(index=True, unique=True, max_length=50)
    discount_type: str = Field(max_length=20)
    discount_value: Decimal = Field(max_digits=10, decimal_places=2)
    expiration_date: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime(timezone=True))
    usage_limit: int = Field(default=DEFAULT_USAGE_LIMIT)
    is_active: bool = Field(default=True, index=True)


class Promotion(PromotionBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    merchant_id: int = Field(foreign_key="users.id", index=True)
    used_count: int = Field(default=0)
    applicable_regions: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    applicable_products: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    # Compteurs de redemptions par période ("YYYY-Wn", "YYYY-M", "YYYY")
    stats: Dict[str, Dict[str, int]] = Field(default_factory=empty_stats, sa_column=Column(JSON, nullable=False))
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    __tablename__ = "promotions"


class PromotionRedemption(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    promotion_id: int = Field(foreign_key="promotions.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    order_id: Optional[int] = Field(default=None, foreign_key="orders.id", index=True)
    redeemed_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    __tablename__ = "promotion_redemptions"

# --- Schémas API ---

class PromotionCreate(SQLModel):
    code: str = Field(..., min_length=1, max_length=50)
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    expiration_date: Optional[datetime] = None
    usage_limit: int = Field(default=DEFAULT_USAGE_LIMIT, ge=1)
    is_active: bool = True
    applicable_regions: List[str] = []
    applicable_products: List[int] = []


class PromotionUpdate(SQLModel):
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    expiration_date: Optional[datetime] = None
    usage_limit: Optional[int] = Field(default=None, ge=1)
    applicable_regions: Optional[List[str]] = None
    applicable_products: Optional[List[int]] = None


class PromotionStatusUpdate(SQLModel):
    is_active: bool


class PromotionRead(PromotionBase):
    id: int
    merchant_id: int
    used_count: int
    applicable_regions: List[str]
    applicable_products: List[int]
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PromotionStats(SQLModel):
    total_redemptions: int
    conversion_rate: float
    weekly_redemptions: List[Tuple[str, int]]
    monthly_redemptions: List[Tuple[str, int]]
    yearly_redemptions: List[Tuple[str, int]]


class PromotionReport(SQLModel):
    total_promotions: int
    active_promotions: int
    expired_promotions: int


class BestPromotionItem(SQLModel):
    product_id: int
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=0)


class BestPromotionResponse(SQLModel):
    promotion: Optional[PromotionRead] = None
    discount: Decimal = Decimal("0")
