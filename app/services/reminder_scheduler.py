"""Reminder Scheduler Service.

Scans open tasks with a deadline and emails every participant (creator and
assignees) at most once per reminder kind:

- up to 3 periodic "Task Deadline Reminder" emails while more than an hour remains
- "1 Hour Remaining" and "30 Minutes Remaining"
- "Task Deadline Missed", after which nothing else is sent to that user

What was sent is persisted per user in ``Task.reminders``, so restarts never
resend.
"""
import asyncio
import html
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.task import Task, TaskStatus
from app.models.user import User
from app.schemas.task import ReminderRecord
from app.services.errors import NotificationError
from app.services.notification_service import NotificationService
from app.utils.clock import Clock, format_local, utcnow
from app.utils.logger import get_logger

logger = get_logger("reminder-scheduler")

MAX_PERIODIC_REMINDERS = 3
ONE_HOUR = timedelta(hours=1)
THIRTY_MINUTES = timedelta(minutes=30)
LONG_TASK = timedelta(hours=24)
LONG_TASK_GAP = timedelta(hours=8)


class ReminderKind(str, Enum):
    MISSED = "missed"
    ONE_HOUR = "1hr"
    THIRTY_MINUTES = "30min"
    PERIODIC = "periodic"


def periodic_gap(record: ReminderRecord, deadline: datetime, created_at: datetime, now: datetime) -> timedelta:
    """
    Spacing between periodic reminders.

    Tasks spanning a day or more get a fixed 8 hour gap; shorter ones spread
    the remaining slots evenly over the time left.
    """
    if deadline - created_at >= LONG_TASK:
        return LONG_TASK_GAP
    remaining_slots = MAX_PERIODIC_REMINDERS - record.sent_reminders_count
    return (deadline - now) / remaining_slots


def due_reminders(record: ReminderRecord, deadline: datetime, created_at: datetime, now: datetime) -> List[ReminderKind]:
    """Reminder kinds that should go out for one (task, user) pair at ``now``."""
    time_left = deadline - now

    if time_left <= timedelta(0):
        # Missed is terminal for the pair, whatever was sent before
        return [] if record.sent_missed else [ReminderKind.MISSED]

    kinds: List[ReminderKind] = []
    if time_left <= ONE_HOUR and not record.sent_1hr:
        kinds.append(ReminderKind.ONE_HOUR)
    if time_left <= THIRTY_MINUTES and not record.sent_30min:
        kinds.append(ReminderKind.THIRTY_MINUTES)

    if time_left > ONE_HOUR and record.sent_reminders_count < MAX_PERIODIC_REMINDERS:
        last_reminder = record.last_reminder or created_at
        if now - last_reminder >= periodic_gap(record, deadline, created_at, now):
            kinds.append(ReminderKind.PERIODIC)

    return kinds


def mark_sent(record: ReminderRecord, kind: ReminderKind, now: datetime):
    if kind is ReminderKind.MISSED:
        record.sent_missed = True
    elif kind is ReminderKind.ONE_HOUR:
        record.sent_1hr = True
    elif kind is ReminderKind.THIRTY_MINUTES:
        record.sent_30min = True
    else:
        record.sent_reminders_count += 1
        record.reminder_times.append(now)
        record.last_reminder = now


def build_reminder(kind: ReminderKind, task: Task, record: ReminderRecord) -> Tuple[str, str]:
    """Subject and HTML message for a reminder kind."""
    name = html.escape(task.name)
    if kind is ReminderKind.MISSED:
        return "Task Deadline Missed", f"You missed the deadline for <strong>{name}</strong>."
    if kind is ReminderKind.ONE_HOUR:
        return "1 Hour Remaining", f"Only <strong>1 hour</strong> left for task <strong>{name}</strong>!"
    if kind is ReminderKind.THIRTY_MINUTES:
        return "30 Minutes Remaining", f"Only <strong>30 minutes</strong> left for task <strong>{name}</strong>!"
    number = record.sent_reminders_count + 1
    return (
        "Task Deadline Reminder",
        f"Reminder {number} of {MAX_PERIODIC_REMINDERS}: Task <strong>{name}</strong> "
        f"is due at <strong>{format_local(task.deadline)}</strong>.",
    )


class ReminderScheduler:
    """Service for sending deadline reminders for open tasks."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        notifier: NotificationService,
        clock: Clock = utcnow,
    ):
        self.session_factory = session_factory
        self.notifier = notifier
        self.clock = clock

    async def run_once(self, now: Optional[datetime] = None) -> int:
        """
        Run one reminder pass over all open tasks with a deadline.

        Database work runs in a worker thread; each task is loaded and saved
        with its own session so one failing task cannot affect the others.

        Args:
            now: Evaluation time, defaults to the scheduler clock

        Returns:
            Number of emails attempted
        """
        now = now or self.clock()
        task_ids = await asyncio.to_thread(self._open_task_ids)
        logger.debug("Reminder pass started", tasks=len(task_ids), now=now.isoformat())

        attempted = 0
        for task_id in task_ids:
            try:
                attempted += await self._process_task(task_id, now)
            except Exception as e:
                logger.exception("Reminder processing failed", task_id=task_id, error=str(e))
        return attempted

    def _open_task_ids(self) -> List[int]:
        with self.session_factory() as session:
            statement = select(Task.id).where(
                Task.deadline.is_not(None),
                Task.status != TaskStatus.COMPLETED.value,
            ).order_by(Task.id)
            return list(session.exec(statement).all())

    def _load_task(self, task_id: int) -> Tuple[Optional[Task], Dict[str, User]]:
        with self.session_factory() as session:
            task = session.get(Task, task_id)
            if task is None or task.is_completed or task.deadline is None:
                return None, {}
            users = session.exec(select(User).where(User.id.in_(task.participant_ids()))).all()
            return task, {user.id: user for user in users}

    def _save_reminders(self, task_id: int, reminders: Dict[str, Any]):
        # Only the reminders column: lifecycle fields belong to TaskService
        statement = (
            update(Task)
            .where(Task.id == task_id)
            .values(reminders=reminders)
            .execution_options(synchronize_session=False)
        )
        with self.session_factory() as session:
            session.exec(statement)
            session.commit()

    async def _send(self, task: Task, user: User, kind: ReminderKind, subject: str, message: str):
        try:
            await self.notifier.send(user.email, subject, {"title": subject, "message": message})
        except NotificationError as e:
            logger.error("Reminder email failed", task_id=task.id, user_id=user.id, kind=kind.value, error=e.message)
        except Exception as e:
            logger.exception("Reminder email failed", task_id=task.id, user_id=user.id, kind=kind.value, error=str(e))

    async def _process_task(self, task_id: int, now: datetime) -> int:
        task, users_by_id = await asyncio.to_thread(self._load_task, task_id)
        if task is None:
            return 0

        reminders = dict(task.reminders or {})
        attempted = 0
        changed = False

        for user_id in task.participant_ids():
            user = users_by_id.get(user_id)
            if user is None:
                logger.warning("Reminder recipient not found", task_id=task_id, user_id=user_id)
                continue

            record = ReminderRecord.model_validate(reminders.get(user_id) or {})
            kinds = due_reminders(record, task.deadline, task.created_at, now)
            for kind in kinds:
                subject, message = build_reminder(kind, task, record)
                logger.info("Sending reminder", task_id=task_id, user_id=user_id, kind=kind.value)
                # Marked even when delivery failed: reminders go out at most once
                await self._send(task, user, kind, subject, message)
                mark_sent(record, kind, now)
                attempted += 1

            if kinds:
                reminders[user_id] = record.model_dump(mode="json")
                changed = True

        if changed:
            await asyncio.to_thread(self._save_reminders, task_id, reminders)

        return attempted
