from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict
from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from marketplace.core.schemas import Coordinates
from marketplace.deliveries.config import DELIVERY_STATUS_PENDING
from marketplace.users.models import utcnow


class DeliveryBase(SQLModel):
    order_id: int = Field(foreign_key="orders.id", index=True)
    livreur_id: Optional[int] = Field(default=None, foreign_key="livreurs.id", index=True)
    # Rémunération du livreur pour cette course
    payment: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    start_latitude: Optional[float] = None
    start_longitude: Optional[float] = None
    end_latitude: Optional[float] = None
    end_longitude: Optional[float] = None


class Delivery(DeliveryBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    status: str = Field(default=DELIVERY_STATUS_PENDING, max_length=20, index=True)
    # Kilomètres
    distance: Optional[float] = None
    status_history: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    accepted_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    delivered_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    __tablename__ = "deliveries"

# --- Schémas API ---

class DeliveryCreate(SQLModel):
    order_id: int
    livreur_id: Optional[int] = None
    payment: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    start: Optional[Coordinates] = None
    end: Optional[Coordinates] = None


class DeliveryRead(DeliveryBase):
    id: int
    status: str
    distance: Optional[float] = None
    status_history: List[Dict[str, Any]] = []
    accepted_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class DeliveryStatusUpdate(SQLModel):
    status: str


class DistanceRequest(SQLModel):
    model_config = ConfigDict(populate_by_name=True)
    start_coords: Coordinates = Field(alias="startCoords")
    end_coords: Coordinates = Field(alias="endCoords")


class DistanceResponse(SQLModel):
    distance: float


class AssignDeliveryRequest(SQLModel):
    model_config = ConfigDict(populate_by_name=True)
    livreur_id: int = Field(alias="livreurId")


class DeliveryStats(SQLModel):
    total_deliveries: int
    delivered: int
    average_distance: float
