"""User model for SQLModel."""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
import uuid

from app.utils.clock import utcnow

if TYPE_CHECKING:
    from app.models.task import Task


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class User(SQLModel, table=True):
    """User entity for authentication, task ownership and assignment."""

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True
    )
    email: str = Field(unique=True, index=True, max_length=255)
    name: str | None = Field(default=None, max_length=255)
    password_hash: str = Field(max_length=255)
    role: str = Field(default=UserRole.USER.value, max_length=20)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))

    # Tasks this user created; assignments live on the task itself
    tasks: list["Task"] = Relationship(
        back_populates="creator",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.id
