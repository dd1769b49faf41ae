"""Task lifecycle service: create, start, stop, complete and set-deadline."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import String, cast, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.middleware.auth import CurrentUser
from app.models.task import RETENTION_PERIOD, Task, TaskStatus
from app.models.user import User, UserRole
from app.services.errors import (
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from app.utils.clock import Clock, elapsed_ms, local_date, parse_datetime, to_naive_utc, utcnow


def merge_daily_log(logs: Optional[List[Dict[str, Any]]], day: str, elapsed: int) -> List[Dict[str, Any]]:
    """Return a new log list with ``elapsed`` added to the entry for ``day``."""
    merged = [dict(entry) for entry in logs or []]
    for entry in merged:
        if entry.get("date") == day:
            entry["timeSpent"] = int(entry.get("timeSpent", 0)) + elapsed
            break
    else:
        merged.append({"date": day, "timeSpent": elapsed})
        merged.sort(key=lambda entry: entry["date"])
    return merged


@dataclass
class DeadlineChange:
    """Outcome of set_deadline: the updated task and the deadline it replaced."""

    task: Task
    previous_deadline: Optional[datetime]

    @property
    def is_update(self) -> bool:
        return self.previous_deadline is not None


class TaskService:
    """
    Applies lifecycle actions to tasks.

    Every mutation is one guarded UPDATE touching only lifecycle columns, so
    concurrent requests (double-clicked stop) and the reminder scheduler,
    which writes only ``reminders``, never overwrite each other.
    """

    # Optimistic attempts for stop/complete when another writer moved last_start
    MAX_ATTEMPTS = 3

    def __init__(self, session: Session, clock: Clock = utcnow, tz_name: Optional[str] = None):
        self.session = session
        self.clock = clock
        self.tz_name = tz_name

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, task_id: int) -> Task:
        task = self.session.get(Task, task_id, populate_existing=True)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def get_visible(self, task_id: int, user: CurrentUser) -> Task:
        """Get a task the user created, is assigned to, or may see as an admin."""
        task = self.get(task_id)
        if user.role == UserRole.ADMIN.value or user.user_id in task.participant_ids():
            return task
        raise NotFoundError(f"Task {task_id} not found")

    def list_for_user(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> List[Task]:
        """Tasks created by or assigned to the user, newest first."""
        statement = select(Task).where(
            or_(
                Task.user_id == user_id,
                cast(Task.assigned_users, String).like(f'%"{user_id}"%'),
            )
        )

        if search:
            statement = statement.where(Task.name.ilike(f"%{search}%"))

        if start and end:
            statement = statement.where(
                or_(
                    Task.start_date.between(start, end),
                    Task.end_date.between(start, end),
                )
            )

        statement = statement.order_by(Task.id.desc())
        return list(self.session.exec(statement).all())

    def list_all(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[Task]:
        """All tasks for the admin dashboard, optionally started and ended inside a window."""
        statement = select(Task)
        if start and end:
            statement = statement.where(Task.start_date >= start, Task.end_date <= end)
        statement = statement.order_by(Task.created_at.desc(), Task.id.desc())
        return list(self.session.exec(statement).all())

    def participants(self, task: Task) -> List[User]:
        """Users to notify about a task: creator and assignees that still exist."""
        ids = task.participant_ids()
        users = self.session.exec(select(User).where(User.id.in_(ids))).all()
        by_id = {user.id: user for user in users}
        return [by_id[user_id] for user_id in ids if user_id in by_id]

    def user_names(self, user_ids: List[str]) -> Dict[str, str]:
        users = self.session.exec(select(User).where(User.id.in_(set(user_ids)))).all()
        return {user.id: user.display_name for user in users}

    def time_log_summary(self, day: str) -> List[Dict[str, Any]]:
        """
        Per-user time spent on a calendar day.

        Sums the logged ``timeSpent`` for that date and the live time of tasks
        that are in progress and were last started on that date.
        """
        try:
            datetime.strptime(day, "%Y-%m-%d")
        except ValueError:
            raise ValidationError(f"Invalid date: {day!r}, expected YYYY-MM-DD")

        now = self.clock()
        tasks = self.session.exec(select(Task)).all()
        names = self.user_names([task.user_id for task in tasks])

        summary: Dict[str, Dict[str, Any]] = {}
        for task in tasks:
            logged = next(
                (int(entry.get("timeSpent", 0)) for entry in task.daily_logs or [] if entry.get("date") == day),
                0,
            )
            live = 0
            if (
                task.status == TaskStatus.IN_PROGRESS.value
                and task.last_start is not None
                and local_date(task.last_start, self.tz_name) == day
            ):
                live = max(elapsed_ms(task.last_start, now), 0)

            total = logged + live
            if total <= 0:
                continue

            user_name = names.get(task.user_id, task.user_id)
            entry = summary.setdefault(user_name, {
                "user_name": user_name,
                "total_ms": 0,
                "task_count": 0,
                "in_progress_today": False,
            })
            entry["total_ms"] += total
            entry["task_count"] += 1
            if live > 0:
                entry["in_progress_today"] = True

        return sorted(summary.values(), key=lambda entry: entry["user_name"])

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    def create(
        self,
        creator_id: str,
        name: str,
        assigned_user_ids: Optional[List[str]] = None,
        task_detail: Optional[str] = None,
        deadline: Optional[datetime] = None,
    ) -> Task:
        """Create a pending task. The deadline is optional."""
        if not name or not name.strip():
            raise ValidationError("Task name is required")
        assignees = self._existing_user_ids(assigned_user_ids or [])

        now = self.clock()
        task = Task(
            user_id=creator_id,
            assigned_users=assignees,
            name=name.strip(),
            task_detail=task_detail,
            status=TaskStatus.PENDING.value,
            total_time=0,
            last_start=None,
            daily_logs=[],
            reminders={},
            deadline=to_naive_utc(deadline) if deadline else None,
            created_at=now,
            updated_at=now,
        )

        try:
            self.session.add(task)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Failed to create task: {str(e)}") from e
        self.session.refresh(task)
        return task

    def start(self, task_id: int, explicit_start_date: Optional[datetime] = None) -> Task:
        """Resume the timer. The first start also records start_date."""
        now = self.clock()
        first_start = to_naive_utc(explicit_start_date) if explicit_start_date else now

        statement = (
            update(Task)
            .where(Task.id == task_id, Task.status != TaskStatus.COMPLETED.value)
            .values(
                status=TaskStatus.IN_PROGRESS.value,
                last_start=now,
                start_date=func.coalesce(Task.start_date, first_start),
                updated_at=now,
            )
        )
        if not self._execute(statement):
            self._raise_not_mutable(task_id)
        return self.get(task_id)

    def stop(self, task_id: int) -> Task:
        """Pause the timer, folding elapsed time into total_time and today's log."""
        for _ in range(self.MAX_ATTEMPTS):
            task = self.get(task_id)
            self._ensure_not_completed(task)
            if task.last_start is None:
                # Never started or already stopped: duplicate stops are harmless
                return task

            now = self.clock()
            elapsed = max(elapsed_ms(task.last_start, now), 0)
            statement = (
                update(Task)
                .where(
                    Task.id == task_id,
                    Task.status != TaskStatus.COMPLETED.value,
                    Task.last_start == task.last_start,
                )
                .values(
                    total_time=Task.total_time + elapsed,
                    daily_logs=merge_daily_log(task.daily_logs, local_date(now, self.tz_name), elapsed),
                    last_start=None,
                    status=TaskStatus.PAUSED.value,
                    updated_at=now,
                )
            )
            if self._execute(statement):
                return self.get(task_id)

        raise StorageError(f"Task {task_id} changed concurrently, please retry")

    def complete(self, task_id: int, explicit_end_date: Optional[datetime] = None) -> Task:
        """Finish the task. Completion is terminal and starts the retention window."""
        for _ in range(self.MAX_ATTEMPTS):
            task = self.get(task_id)
            self._ensure_not_completed(task)

            now = self.clock()
            end_date = to_naive_utc(explicit_end_date) if explicit_end_date else now
            values: Dict[str, Any] = {
                "status": TaskStatus.COMPLETED.value,
                "last_start": None,
                "end_date": end_date,
                "delete_at": end_date + RETENTION_PERIOD,
                "updated_at": now,
            }

            if task.last_start is not None:
                elapsed = max(elapsed_ms(task.last_start, now), 0)
                values["total_time"] = Task.total_time + elapsed
                values["daily_logs"] = merge_daily_log(task.daily_logs, local_date(now, self.tz_name), elapsed)
                timer_guard = Task.last_start == task.last_start
            else:
                timer_guard = Task.last_start.is_(None)

            statement = (
                update(Task)
                .where(Task.id == task_id, Task.status != TaskStatus.COMPLETED.value, timer_guard)
                .values(**values)
            )
            if self._execute(statement):
                return self.get(task_id)

        raise StorageError(f"Task {task_id} changed concurrently, please retry")

    def set_deadline(
        self,
        task_id: int,
        deadline: Any,
        assigned_user_ids: Optional[List[str]] = None,
    ) -> DeadlineChange:
        """Set or move the deadline; a non-empty assignee list replaces the current one."""
        if deadline is None or deadline == "":
            raise ValidationError("Deadline date required")
        try:
            deadline = parse_datetime(deadline)
        except ValueError:
            raise ValidationError(f"Invalid deadline: {deadline!r}")

        task = self.get(task_id)
        self._ensure_not_completed(task)
        previous_deadline = task.deadline

        now = self.clock()
        values: Dict[str, Any] = {"deadline": deadline, "updated_at": now}
        if assigned_user_ids:
            values["assigned_users"] = self._existing_user_ids(assigned_user_ids)

        statement = (
            update(Task)
            .where(Task.id == task_id, Task.status != TaskStatus.COMPLETED.value)
            .values(**values)
        )
        if not self._execute(statement):
            self._raise_not_mutable(task_id)
        return DeadlineChange(task=self.get(task_id), previous_deadline=previous_deadline)

    def delete(self, task_id: int) -> None:
        task = self.get(task_id)
        try:
            self.session.delete(task)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Failed to delete task: {str(e)}") from e

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _execute(self, statement) -> int:
        """Run one guarded UPDATE in its own transaction and return the matched row count."""
        try:
            result = self.session.exec(statement.execution_options(synchronize_session=False))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Failed to update task: {str(e)}") from e
        return result.rowcount

    def _ensure_not_completed(self, task: Task):
        if task.is_completed:
            raise InvalidStateError(f"Task {task.id} is already completed")

    def _raise_not_mutable(self, task_id: int):
        task = self.get(task_id)
        self._ensure_not_completed(task)
        raise StorageError(f"Task {task_id} could not be updated")

    def _existing_user_ids(self, user_ids: List[str]) -> List[str]:
        unique_ids: List[str] = []
        for user_id in user_ids:
            if user_id and user_id not in unique_ids:
                unique_ids.append(user_id)
        if not unique_ids:
            return []

        found = set(self.session.exec(select(User.id).where(User.id.in_(unique_ids))).all())
        missing = [user_id for user_id in unique_ids if user_id not in found]
        if missing:
            raise NotFoundError(f"Users not found: {', '.join(missing)}")
        return unique_ids
