"""Lead model for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from datetime import datetime
from enum import Enum
from typing import Optional

from app.utils.clock import utcnow


class LeadStatus(str, Enum):
    PENDING = "pending"
    CONTACTED = "contacted"
    INTERESTED = "interested"
    ACCEPTED = "accepted"
    CLOSE = "close"


class Lead(SQLModel, table=True):
    """Sales lead tracked by administrators. The name doubles as the upsert key."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True, max_length=200)
    start_date: datetime = Field(sa_type=DateTime(timezone=False))
    next_follow_up: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=False))
    status: str = Field(default=LeadStatus.PENDING.value, max_length=20)
    price: float = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
