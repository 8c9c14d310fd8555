from datetime import datetime, timezone
from typing import Optional

from pydantic import ConfigDict, EmailStr
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from marketplace.core.schemas import Coordinates


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserBase(SQLModel):
    email: str = Field(index=True, unique=True, max_length=255)
    name: Optional[str] = Field(default=None, max_length=100)
    role: str = Field(default="client", max_length=20, index=True)
    is_active: bool = Field(default=True)


class User(UserBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    __tablename__ = "users"


class UserCreate(SQLModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: Optional[str] = None
    role: str = "client"
    # Position initiale, requise pour un livreur
    location: Optional[Coordinates] = None


class UserRead(UserBase):
    id: int
    model_config = ConfigDict(from_attributes=True)
