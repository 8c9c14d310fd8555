from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import ConfigDict, field_validator
from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from marketplace.tickets.config import (
    DEFAULT_ESCALATION_LEVEL,
    DEFAULT_TICKET_PRIORITY,
    MAX_KEYWORD_LENGTH,
    TICKET_STATUS_OPEN,
)
from marketplace.users.models import utcnow

TicketStatus = Literal["open", "in_progress", "resolved", "closed"]
TicketPriority = Literal["low", "medium", "high"]


class TicketBase(SQLModel):
    description: str = Field(max_length=500)
    priority: str = Field(default=DEFAULT_TICKET_PRIORITY, max_length=10, index=True)


class Ticket(TicketBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    assigned_agent_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    status: str = Field(default=TICKET_STATUS_OPEN, max_length=20, index=True)
    resolution: Optional[str] = Field(default=None)
    keywords: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    escalation_level: str = Field(default=DEFAULT_ESCALATION_LEVEL, max_length=10)
    # [{"level", "reason", "escalated_by", "date"}]
    escalation_history: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    # [{"previous_status", "new_status", "changed_at"}]
    status_history: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    # Minutes entre création et fermeture
    resolution_time: Optional[float] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    __tablename__ = "tickets"

# --- Schémas API ---

class TicketCreate(SQLModel):
    description: str = Field(..., min_length=10, max_length=500)
    priority: TicketPriority = "medium"
    keywords: List[str] = []

    @field_validator("keywords")
    @classmethod
    def validate_keywords(cls, v: List[str]) -> List[str]:
        """Mots-clés normalisés en minuscules, 20 caractères maximum chacun."""
        cleaned = []
        for keyword in v:
            keyword = keyword.strip().lower()
            if not keyword:
                continue
            if len(keyword) > MAX_KEYWORD_LENGTH:
                raise ValueError(f"Chaque mot-clé doit contenir {MAX_KEYWORD_LENGTH} caractères maximum.")
            if keyword not in cleaned:
                cleaned.append(keyword)
        return cleaned


class TicketStatusUpdate(SQLModel):
    status: TicketStatus
    resolution: Optional[str] = Field(default=None, max_length=1000)


class TicketAssign(SQLModel):
    agent_id: int


class TicketEscalate(SQLModel):
    level: Literal["level_2", "level_3"]
    reason: str = Field(..., min_length=1, max_length=500)


class TicketRead(TicketBase):
    id: int
    user_id: int
    assigned_agent_id: Optional[int] = None
    status: str
    resolution: Optional[str] = None
    keywords: List[str] = []
    escalation_level: str
    escalation_history: List[Dict[str, Any]] = []
    status_history: List[Dict[str, Any]] = []
    resolution_time: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TicketStats(SQLModel):
    total_tickets: int
    open_tickets: int
    resolved_tickets: int
    average_resolution_time: float
    # Tickets créés par semaine ("YYYY-Wn") et par mois ("YYYY-M")
    weekly: Dict[str, int] = {}
    monthly: Dict[str, int] = {}
