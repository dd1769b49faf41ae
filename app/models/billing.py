"""Billing models for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, String, ForeignKey
from datetime import datetime
from enum import Enum
from typing import Optional

from app.utils.clock import utcnow


class BillingStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "inprogress"
    COMPLETED = "completed"


class BillingID(SQLModel, table=True):
    """Named billing account that billing records refer to."""

    __tablename__ = "billing_id"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True, max_length=200)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))


class Billing(SQLModel, table=True):
    """Hours billed by a user against a billing ID."""

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(
        sa_column=Column(String, ForeignKey("user.id", ondelete="CASCADE"), index=True)
    )
    task_name: str = Field(max_length=200)
    billing_id: str = Field(max_length=200)
    total_hours: float
    status: str = Field(default=BillingStatus.PENDING.value, max_length=20)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
