from datetime import datetime
from typing import Literal, Optional

from pydantic import ConfigDict
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from marketplace.notifications.config import DEFAULT_NOTIFICATION_PRIORITY, DEFAULT_NOTIFICATION_TYPE
from marketplace.users.models import utcnow

NotificationPriority = Literal["low", "medium", "high"]


class NotificationBase(SQLModel):
    message: str = Field(max_length=500)
    # order, delivery, promotion, support, system...
    notification_type: str = Field(default=DEFAULT_NOTIFICATION_TYPE, max_length=30, index=True)
    priority: str = Field(default=DEFAULT_NOTIFICATION_PRIORITY, max_length=10, index=True)
    expires_at: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime(timezone=True))


class Notification(NotificationBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    is_read: bool = Field(default=False, index=True)
    archived: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    __tablename__ = "notifications"

# --- Schémas API ---

class NotificationCreate(SQLModel):
    user_id: int
    message: str = Field(..., min_length=1, max_length=500)
    notification_type: str = Field(default=DEFAULT_NOTIFICATION_TYPE, min_length=1, max_length=30)
    priority: NotificationPriority = "medium"
    expires_at: Optional[datetime] = None


class NotificationRead(NotificationBase):
    id: int
    user_id: int
    is_read: bool
    archived: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
