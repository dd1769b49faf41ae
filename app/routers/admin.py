"""Admin router: task oversight, time dashboard, leads and billing IDs."""
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.db.config import get_session
from app.middleware.auth import CurrentUser, get_current_user, require_admin
from app.models.billing import BillingID
from app.models.lead import Lead
from app.routers.tasks import get_task_service, parse_date_range
from app.schemas.billing import BillingIDCreate, BillingIDResponse
from app.schemas.lead import LeadResponse, LeadUpsert
from app.schemas.task import (
    AdminTaskListResponse,
    AdminTaskResponse,
    AssignTaskRequest,
    DashboardResponse,
    TaskEnvelope,
    TaskResponse,
)
from app.services.errors import ConflictError, NotFoundError, StorageError, ValidationError
from app.services.notification_service import NotificationService, get_notification_service
from app.services.task_service import TaskService
from app.utils.clock import local_date, to_naive_utc, utcnow

router = APIRouter(prefix="/admin", tags=["Admin"])


def _commit(session: Session, *instances):
    try:
        for instance in instances:
            session.add(instance)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError(f"Failed to save record: {str(e)}") from e
    for instance in instances:
        session.refresh(instance)


# ----------------------------------------------------------------------
# Tasks
# ----------------------------------------------------------------------

@router.get("/tasks", response_model=AdminTaskListResponse)
async def list_all_tasks(
    admin: CurrentUser = Depends(require_admin),
    service: TaskService = Depends(get_task_service),
    start: Optional[str] = Query(None, description="Tasks started on or after (ISO format)"),
    end: Optional[str] = Query(None, description="Tasks ended on or before (ISO format)"),
):
    """All tasks with the creator's display name."""
    start_at, end_at = parse_date_range(start, end)
    tasks = service.list_all(start_at, end_at)
    names = service.user_names([task.user_id for task in tasks])
    items = [
        AdminTaskResponse(
            **TaskResponse.model_validate(task).model_dump(),
            user_name=names.get(task.user_id, task.user_id),
        )
        for task in tasks
    ]
    return AdminTaskListResponse(tasks=items, count=len(items))


@router.post("/tasks", response_model=TaskEnvelope, status_code=status.HTTP_201_CREATED)
async def assign_task(
    request: AssignTaskRequest,
    background_tasks: BackgroundTasks,
    admin: CurrentUser = Depends(require_admin),
    service: TaskService = Depends(get_task_service),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Create a task for one or more users and email each assignee."""
    task = service.create(
        creator_id=admin.user_id,
        name=request.name,
        assigned_user_ids=request.assigned_users,
        task_detail=request.task_detail,
        deadline=request.deadline,
    )
    recipients = [user.email for user in service.participants(task) if user.id in task.assigned_users]
    background_tasks.add_task(notifier.notify_task_assigned, recipients, task.name, task.deadline)
    return TaskEnvelope(task=TaskResponse.model_validate(task))


@router.delete("/tasks", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int = Query(..., alias="taskId"),
    admin: CurrentUser = Depends(require_admin),
    service: TaskService = Depends(get_task_service),
):
    """Delete a task."""
    service.delete(task_id)


@router.get("/dashboard", response_model=DashboardResponse)
async def time_dashboard(
    date: Optional[str] = Query(None, description="Calendar day (YYYY-MM-DD), defaults to today"),
    admin: CurrentUser = Depends(require_admin),
    service: TaskService = Depends(get_task_service),
):
    """Time logged per user on one day, including timers still running."""
    day = date or local_date(utcnow())
    return DashboardResponse(date=day, users=service.time_log_summary(day))


# ----------------------------------------------------------------------
# Leads
# ----------------------------------------------------------------------

@router.post("/lead", response_model=LeadResponse)
async def upsert_lead(
    request: LeadUpsert,
    admin: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Create a lead, or update the lead that already has this name."""
    now = utcnow()
    lead = session.exec(select(Lead).where(Lead.name == request.name)).first()

    if lead:
        lead.status = request.status
        if request.next_follow_up:
            lead.next_follow_up = to_naive_utc(request.next_follow_up)
        if request.price is not None:
            lead.price = request.price
        lead.updated_at = now
    else:
        if not request.start_date:
            raise ValidationError("startDate is required when creating a new lead")
        lead = Lead(
            name=request.name,
            start_date=to_naive_utc(request.start_date),
            next_follow_up=to_naive_utc(request.next_follow_up) if request.next_follow_up else None,
            status=request.status,
            price=request.price or 0,
            created_at=now,
            updated_at=now,
        )

    _commit(session, lead)
    return lead


@router.get("/lead", response_model=List[LeadResponse])
async def list_leads(
    admin: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
):
    return session.exec(select(Lead).order_by(Lead.created_at.desc())).all()


@router.delete("/lead", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lead(
    lead_id: int = Query(..., alias="leadId"),
    admin: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
):
    lead = session.get(Lead, lead_id)
    if not lead:
        raise NotFoundError(f"Lead {lead_id} not found")
    session.delete(lead)
    session.commit()


# ----------------------------------------------------------------------
# Billing IDs
# ----------------------------------------------------------------------

@router.post("/billing", response_model=BillingIDResponse, status_code=status.HTTP_201_CREATED)
async def create_billing_id(
    request: BillingIDCreate,
    admin: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Register a billing name that billing records can refer to."""
    name = request.name.strip()
    if len(name) < 3:
        raise ValidationError("Billing name is required (min 3 chars)")
    if session.exec(select(BillingID).where(BillingID.name == name)).first():
        raise ConflictError("Billing name already exists")

    billing_id = BillingID(name=name, created_at=utcnow())
    _commit(session, billing_id)
    return billing_id


@router.get("/billing", response_model=List[BillingIDResponse])
async def list_billing_ids(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Billing IDs, newest first. Any signed-in user may read them."""
    return session.exec(select(BillingID).order_by(BillingID.created_at.desc())).all()
