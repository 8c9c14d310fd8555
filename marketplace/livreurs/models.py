from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import ConfigDict
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from marketplace.deliveries.models import DeliveryRead
from marketplace.livreurs.config import ASSIGNMENT_STATUS_IN_PROGRESS
from marketplace.users.models import utcnow


class Livreur(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    latitude: float
    longitude: float
    is_available: bool = Field(default=True)
    total_earnings: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    deliveries_completed: int = Field(default=0)
    # Minutes
    average_delivery_time: float = Field(default=0.0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    __tablename__ = "livreurs"


class LivreurAssignment(SQLModel, table=True):
    """Livraison prise en charge par un livreur."""
    id: Optional[int] = Field(default=None, primary_key=True)
    livreur_id: int = Field(foreign_key="livreurs.id", index=True)
    delivery_id: int = Field(foreign_key="deliveries.id", index=True)
    status: str = Field(default=ASSIGNMENT_STATUS_IN_PROGRESS, max_length=20)
    payment_amount: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    assigned_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    __tablename__ = "livreur_assignments"

# --- Schémas API ---

class LivreurRead(SQLModel):
    id: int
    user_id: int
    latitude: float
    longitude: float
    is_available: bool
    total_earnings: Decimal
    deliveries_completed: int
    average_delivery_time: float
    model_config = ConfigDict(from_attributes=True)


class AvailabilityUpdate(SQLModel):
    is_available: bool


class CourierStatusUpdate(SQLModel):
    status: str


class AvailableDelivery(SQLModel):
    delivery: DeliveryRead
    distance_from_livreur: Optional[float] = None


class Earnings(SQLModel):
    total: Decimal
