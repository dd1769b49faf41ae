"""Task schemas: action commands, reminder records and API responses."""
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from app.services.errors import ValidationError


class _ActionBase(BaseModel):
    """Action payloads accept camelCase (web client) and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateTaskAction(_ActionBase):
    # "pending" is the action name older clients send for creation
    action: Literal["create", "pending"]
    name: str = ""
    task_detail: Optional[str] = Field(None, max_length=5000)
    assigned_users: List[str] = Field(default_factory=list)
    deadline: Optional[datetime] = None


class StartTaskAction(_ActionBase):
    action: Literal["start"]
    task_id: int
    start_date: Optional[datetime] = None


class StopTaskAction(_ActionBase):
    action: Literal["stop"]
    task_id: int


class CompleteTaskAction(_ActionBase):
    action: Literal["complete"]
    task_id: int
    end_date: Optional[datetime] = None


class SetDeadlineAction(_ActionBase):
    action: Literal["set-deadline"]
    task_id: int
    deadline: Optional[datetime] = None
    assigned_users: Optional[List[str]] = None


TaskAction = Annotated[
    Union[CreateTaskAction, StartTaskAction, StopTaskAction, CompleteTaskAction, SetDeadlineAction],
    Field(discriminator="action"),
]

_task_action_adapter = TypeAdapter(TaskAction)


def parse_task_action(payload: Any) -> TaskAction:
    """
    Parse a raw request body into a typed action command.

    Raises:
        ValidationError: For unknown actions or malformed fields
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return _task_action_adapter.validate_python(payload)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid task action: {details}") from e


class AssignTaskRequest(_ActionBase):
    """Admin request to create a task on behalf of one or more users."""
    name: str = Field(..., min_length=1, max_length=200)
    assigned_users: List[str] = Field(..., min_length=1)
    deadline: Optional[datetime] = None
    task_detail: Optional[str] = Field(None, max_length=5000)


class DailyLogEntry(BaseModel):
    date: str
    timeSpent: int


class ReminderRecord(BaseModel):
    """Per-(task, user) bookkeeping of deadline notifications already sent."""
    sent_1hr: bool = False
    sent_30min: bool = False
    sent_missed: bool = False
    sent_reminders_count: int = 0
    reminder_times: List[datetime] = Field(default_factory=list)
    last_reminder: Optional[datetime] = None


class TaskResponse(BaseModel):
    """Schema for task API responses."""
    id: int
    user_id: str
    assigned_users: List[str] = []
    name: str
    task_detail: Optional[str] = None
    status: str
    total_time: int
    last_start: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    delete_at: Optional[datetime] = None
    daily_logs: List[DailyLogEntry] = []
    reminders: Dict[str, ReminderRecord] = {}
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminTaskResponse(TaskResponse):
    user_name: str


class TaskEnvelope(BaseModel):
    task: TaskResponse


class TaskListResponse(BaseModel):
    tasks: List[TaskResponse]
    count: int


class AdminTaskListResponse(BaseModel):
    tasks: List[AdminTaskResponse]
    count: int


class UserTimeSummary(BaseModel):
    user_name: str
    total_ms: int
    task_count: int
    in_progress_today: bool


class DashboardResponse(BaseModel):
    date: str
    users: List[UserTimeSummary]
