"""Task router: listing and lifecycle actions for the signed-in user."""
from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query
from datetime import datetime, time
from typing import Any, Dict, Optional

from app.db.config import get_session
from app.middleware.auth import CurrentUser, get_current_user
from app.schemas.task import (
    CompleteTaskAction,
    CreateTaskAction,
    SetDeadlineAction,
    StartTaskAction,
    StopTaskAction,
    TaskEnvelope,
    TaskListResponse,
    TaskResponse,
    parse_task_action,
)
from app.services.errors import ValidationError
from app.services.notification_service import NotificationService, get_notification_service
from app.services.task_service import TaskService
from app.utils.clock import parse_datetime
from sqlmodel import Session

router = APIRouter(tags=["Tasks"])  # No prefix since main.py adds /api prefix


def get_task_service(session: Session = Depends(get_session)) -> TaskService:
    """Dependency for getting TaskService instance."""
    return TaskService(session)


def parse_date_range(start: Optional[str], end: Optional[str]):
    """Parse an inclusive date range; a bare end date covers that whole day."""
    if not (start and end):
        return None, None
    try:
        start_at = parse_datetime(start)
        end_at = parse_datetime(end)
    except ValueError:
        raise ValidationError("Invalid date format. Use ISO format (YYYY-MM-DD)")
    if len(end.strip()) == 10:
        end_at = datetime.combine(end_at.date(), time.max)
    return start_at, end_at


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    start_date: Optional[str] = Query(None, alias="startDate", description="Range start (ISO format)"),
    end_date: Optional[str] = Query(None, alias="endDate", description="Range end (ISO format)"),
    search: Optional[str] = Query(None, description="Search keyword for the task name"),
):
    """List tasks the user created or is assigned to."""
    start, end = parse_date_range(start_date, end_date)
    tasks = service.list_for_user(current_user.user_id, start=start, end=end, search=search)
    return TaskListResponse(
        tasks=[TaskResponse.model_validate(task) for task in tasks],
        count=len(tasks),
    )


@router.get("/tasks/{task_id}", response_model=TaskEnvelope)
async def get_task(
    task_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Get a specific task by ID."""
    task = service.get_visible(task_id, current_user)
    return TaskEnvelope(task=TaskResponse.model_validate(task))


@router.post("/tasks", response_model=TaskEnvelope)
async def apply_task_action(
    background_tasks: BackgroundTasks,
    payload: Dict[str, Any] = Body(...),
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    notifier: NotificationService = Depends(get_notification_service),
):
    """
    Apply one lifecycle action.

    The body is an action command tagged by ``action``: create (or pending),
    start, stop, complete or set-deadline. All but create need ``taskId``.
    """
    action = parse_task_action(payload)

    if isinstance(action, CreateTaskAction):
        task = service.create(
            creator_id=current_user.user_id,
            name=action.name,
            assigned_user_ids=action.assigned_users,
            task_detail=action.task_detail,
            deadline=action.deadline,
        )
        return TaskEnvelope(task=TaskResponse.model_validate(task))

    service.get_visible(action.task_id, current_user)

    if isinstance(action, StartTaskAction):
        task = service.start(action.task_id, action.start_date)
    elif isinstance(action, StopTaskAction):
        task = service.stop(action.task_id)
    elif isinstance(action, CompleteTaskAction):
        task = service.complete(action.task_id, action.end_date)
    elif isinstance(action, SetDeadlineAction):
        change = service.set_deadline(action.task_id, action.deadline, action.assigned_users)
        task = change.task
        recipients = [user.email for user in service.participants(task)]
        background_tasks.add_task(
            notifier.notify_deadline_set, recipients, task.name, task.deadline, change.is_update
        )
    else:
        raise ValidationError("Invalid action")

    return TaskEnvelope(task=TaskResponse.model_validate(task))
