"""Task model for SQLModel."""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, DateTime, String, ForeignKey, Text, JSON
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from app.utils.clock import utcnow

if TYPE_CHECKING:
    from app.models.user import User

# Completed tasks become eligible for deletion this long after end_date
RETENTION_PERIOD = timedelta(days=45)


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    PAUSED = "paused"
    COMPLETED = "completed"


class Task(SQLModel, table=True):
    """Trackable unit of work with timer state, daily logs and an optional deadline."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(
        sa_column=Column(String, ForeignKey("user.id", ondelete="CASCADE"), index=True)
    )
    assigned_users: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    name: str = Field(max_length=200, min_length=1)
    task_detail: Optional[str] = Field(default=None, sa_column=Column(Text))

    status: str = Field(default=TaskStatus.PENDING.value, max_length=20, index=True)
    total_time: int = Field(default=0)  # milliseconds
    last_start: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=False))
    start_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=False))
    end_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=False))
    deadline: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime(timezone=False))
    delete_at: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime(timezone=False))

    # [{"date": "YYYY-MM-DD", "timeSpent": ms}, ...] ordered by date
    daily_logs: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    # user id -> reminder record, written only by the reminder scheduler
    reminders: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=False))

    # Relationships
    creator: "User" = Relationship(back_populates="tasks")

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED.value

    def participant_ids(self) -> List[str]:
        """Creator followed by assignees, without duplicates."""
        ids: List[str] = []
        for user_id in [self.user_id, *(self.assigned_users or [])]:
            if user_id and user_id not in ids:
                ids.append(user_id)
        return ids
