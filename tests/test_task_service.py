# tests/test_task_service.py

from datetime import datetime, timedelta

import pytest
from sqlmodel import Session

from app.models.task import Task, TaskStatus
from app.services.errors import InvalidStateError, NotFoundError, StorageError, ValidationError
from app.services.task_service import TaskService, merge_daily_log

from .conftest import T0


@pytest.fixture()
def service(session, clock) -> TaskService:
    return TaskService(session, clock=clock, tz_name="UTC")


def test_create_starts_pending_with_empty_timer(service, alice):
    task = service.create(alice.id, "Write report")

    assert task.id is not None
    assert task.status == TaskStatus.PENDING.value
    assert task.total_time == 0
    assert task.last_start is None
    assert task.daily_logs == []
    assert task.reminders == {}
    assert task.created_at == T0
    assert task.deadline is None


@pytest.mark.parametrize("name", ["", "   "])
def test_create_rejects_empty_name(service, alice, name):
    with pytest.raises(ValidationError):
        service.create(alice.id, name)


def test_create_rejects_unknown_assignee(service, alice):
    with pytest.raises(NotFoundError):
        service.create(alice.id, "Review", assigned_user_ids=["nobody"])


def test_start_twice_keeps_first_start_date(service, clock, alice):
    task = service.create(alice.id, "task-A")

    first = service.start(task.id)
    assert first.status == TaskStatus.IN_PROGRESS.value
    assert first.start_date == T0
    assert first.last_start == T0

    clock.advance(minutes=5)
    second = service.start(task.id)
    assert second.start_date == T0
    assert second.last_start == T0 + timedelta(minutes=5)


def test_start_uses_explicit_start_date_only_the_first_time(service, clock, alice):
    task = service.create(alice.id, "Backfilled")
    explicit = datetime(2026, 3, 1, 8, 0)

    started = service.start(task.id, explicit_start_date=explicit)
    assert started.start_date == explicit
    assert started.last_start == T0

    service.stop(task.id)
    restarted = service.start(task.id, explicit_start_date=datetime(2026, 3, 2, 12, 0))
    assert restarted.start_date == explicit


def test_stop_adds_elapsed_time_and_daily_log(service, clock, alice):
    task = service.create(alice.id, "Timed")
    service.start(task.id)
    clock.advance(minutes=10)

    stopped = service.stop(task.id)

    assert stopped.status == TaskStatus.PAUSED.value
    assert stopped.last_start is None
    assert stopped.total_time == 10 * 60 * 1000
    assert stopped.daily_logs == [{"date": "2026-03-02", "timeSpent": 600000}]


def test_total_time_is_sum_of_intervals_and_same_day_logs_merge(service, clock, alice):
    task = service.create(alice.id, "Pairs")
    intervals = [timedelta(minutes=10), timedelta(minutes=5), timedelta(seconds=42)]

    for interval in intervals:
        service.start(task.id)
        clock.advance(seconds=interval.total_seconds())
        service.stop(task.id)
        clock.advance(minutes=1)

    task = service.get(task.id)
    expected = sum(int(i.total_seconds() * 1000) for i in intervals)
    assert task.total_time == expected
    assert task.daily_logs == [{"date": "2026-03-02", "timeSpent": expected}]


def test_logs_split_by_calendar_day(service, clock, alice):
    clock.now = datetime(2026, 3, 2, 23, 0)
    task = service.create(alice.id, "Late night")

    service.start(task.id)
    clock.advance(minutes=30)
    service.stop(task.id)

    clock.advance(hours=1)  # 00:30 next day
    service.start(task.id)
    clock.advance(minutes=15)
    task = service.stop(task.id)

    assert task.daily_logs == [
        {"date": "2026-03-02", "timeSpent": 30 * 60 * 1000},
        {"date": "2026-03-03", "timeSpent": 15 * 60 * 1000},
    ]
    assert task.total_time == 45 * 60 * 1000


def test_stop_twice_is_harmless(service, clock, alice):
    task = service.create(alice.id, "Double click")
    service.start(task.id)
    clock.advance(minutes=3)

    first = service.stop(task.id)
    clock.advance(minutes=3)
    second = service.stop(task.id)

    assert second.total_time == first.total_time == 180000
    assert second.daily_logs == first.daily_logs
    assert second.status == TaskStatus.PAUSED.value


def test_stop_on_never_started_task_returns_it_unchanged(service, alice):
    task = service.create(alice.id, "Idle")

    stopped = service.stop(task.id)

    assert stopped.status == TaskStatus.PENDING.value
    assert stopped.total_time == 0
    assert stopped.daily_logs == []


def test_complete_from_pending(service, clock, alice):
    task = service.create(alice.id, "Quick")

    done = service.complete(task.id)

    assert done.status == TaskStatus.COMPLETED.value
    assert done.total_time == 0
    assert done.end_date == T0
    assert done.delete_at == T0 + timedelta(days=45)
    assert done.last_start is None


def test_complete_folds_running_time(service, clock, alice):
    task = service.create(alice.id, "Running")
    service.start(task.id)
    clock.advance(minutes=20)

    done = service.complete(task.id)

    assert done.total_time == 20 * 60 * 1000
    assert done.daily_logs == [{"date": "2026-03-02", "timeSpent": 1200000}]
    assert done.last_start is None
    assert done.end_date == T0 + timedelta(minutes=20)


def test_complete_with_explicit_end_date(service, alice):
    task = service.create(alice.id, "Backdated")
    end = datetime(2026, 3, 1, 17, 0)

    done = service.complete(task.id, explicit_end_date=end)

    assert done.end_date == end
    assert done.delete_at == end + timedelta(days=45)


def test_completed_task_rejects_further_actions(service, clock, alice):
    task = service.create(alice.id, "Frozen")
    service.start(task.id)
    clock.advance(minutes=1)
    done = service.complete(task.id)

    clock.advance(minutes=1)
    with pytest.raises(InvalidStateError):
        service.complete(task.id)
    with pytest.raises(InvalidStateError):
        service.start(task.id)
    with pytest.raises(InvalidStateError):
        service.stop(task.id)
    with pytest.raises(InvalidStateError):
        service.set_deadline(task.id, T0 + timedelta(days=1))

    after = service.get(task.id)
    assert after.status == TaskStatus.COMPLETED.value
    assert after.total_time == done.total_time
    assert after.end_date == done.end_date
    assert after.deadline is None


@pytest.mark.parametrize("operation", ["start", "stop", "complete"])
def test_missing_task_raises_not_found(service, operation):
    with pytest.raises(NotFoundError):
        getattr(service, operation)(12345)


def test_set_deadline_requires_valid_timestamp(service, alice):
    task = service.create(alice.id, "Needs deadline")

    with pytest.raises(ValidationError):
        service.set_deadline(task.id, None)
    with pytest.raises(ValidationError):
        service.set_deadline(task.id, "next tuesday")
    with pytest.raises(NotFoundError):
        service.set_deadline(999, T0)


def test_set_deadline_reports_first_set_then_update(service, alice, bob):
    task = service.create(alice.id, "Ship it")

    first = service.set_deadline(task.id, "2026-03-05T12:00:00Z", assigned_user_ids=[bob.id])
    assert not first.is_update
    assert first.task.deadline == datetime(2026, 3, 5, 12, 0)
    assert first.task.assigned_users == [bob.id]

    second = service.set_deadline(task.id, datetime(2026, 3, 6, 12, 0), assigned_user_ids=[])
    assert second.is_update
    assert second.previous_deadline == datetime(2026, 3, 5, 12, 0)
    # An empty list leaves the assignees alone
    assert second.task.assigned_users == [bob.id]


def test_visibility_for_creator_assignee_and_admin(service, alice, bob, admin):
    from app.middleware.auth import CurrentUser

    task = service.create(alice.id, "Shared", assigned_user_ids=[bob.id])
    private = service.create(alice.id, "Private")

    assert service.get_visible(task.id, CurrentUser(user_id=bob.id)).id == task.id
    assert service.get_visible(private.id, CurrentUser(user_id=admin.id, role="admin")).id == private.id
    with pytest.raises(NotFoundError):
        service.get_visible(private.id, CurrentUser(user_id=bob.id))


def test_list_for_user_includes_assigned_tasks(service, alice, bob):
    own = service.create(bob.id, "Bob's own")
    assigned = service.create(alice.id, "For Bob", assigned_user_ids=[bob.id])
    service.create(alice.id, "Alice only")

    tasks = service.list_for_user(bob.id)

    assert [task.id for task in tasks] == [assigned.id, own.id]
    assert [task.name for task in service.list_for_user(bob.id, search="own")] == ["Bob's own"]


def test_time_log_summary_counts_logged_and_live_time(service, clock, alice, bob):
    logged = service.create(alice.id, "Logged")
    service.start(logged.id)
    clock.advance(minutes=30)
    service.stop(logged.id)

    running = service.create(bob.id, "Running")
    service.start(running.id)
    clock.advance(minutes=10)

    summary = service.time_log_summary("2026-03-02")

    assert summary == [
        {"user_name": "Alice", "total_ms": 30 * 60 * 1000, "task_count": 1, "in_progress_today": False},
        {"user_name": "Bob", "total_ms": 10 * 60 * 1000, "task_count": 1, "in_progress_today": True},
    ]
    assert service.time_log_summary("2026-03-01") == []
    with pytest.raises(ValidationError):
        service.time_log_summary("03/02/2026")


def test_merge_daily_log_keeps_dates_sorted():
    logs = [{"date": "2026-03-03", "timeSpent": 5}]

    merged = merge_daily_log(logs, "2026-03-01", 7)

    assert merged == [{"date": "2026-03-01", "timeSpent": 7}, {"date": "2026-03-03", "timeSpent": 5}]
    assert logs == [{"date": "2026-03-03", "timeSpent": 5}]


def stale_reader(service: TaskService, monkeypatch, snapshots):
    """Make ``service.get`` hand out the given snapshots before reading fresh rows."""
    pending = list(snapshots)
    fresh_get = service.get

    def get(task_id):
        return pending.pop(0) if pending else fresh_get(task_id)

    monkeypatch.setattr(service, "get", get)


def snapshot(task: Task) -> Task:
    return Task.model_validate(task.model_dump())


def test_concurrent_stops_count_the_interval_once(engine, session, clock, alice, monkeypatch):
    first = TaskService(session, clock=clock, tz_name="UTC")
    task = first.create(alice.id, "Double stop")
    first.start(task.id)
    clock.advance(minutes=10)

    with Session(engine) as other_session:
        second = TaskService(other_session, clock=clock, tz_name="UTC")
        stale = snapshot(second.get(task.id))

        first.stop(task.id)
        stale_reader(second, monkeypatch, [stale])
        result = second.stop(task.id)

    assert result.total_time == 600000
    assert result.daily_logs == [{"date": "2026-03-02", "timeSpent": 600000}]
    assert result.status == TaskStatus.PAUSED.value


def test_complete_racing_a_stop_does_not_double_count(engine, session, clock, alice, monkeypatch):
    first = TaskService(session, clock=clock, tz_name="UTC")
    task = first.create(alice.id, "Stop then complete")
    first.start(task.id)
    clock.advance(minutes=10)

    with Session(engine) as other_session:
        second = TaskService(other_session, clock=clock, tz_name="UTC")
        stale = snapshot(second.get(task.id))

        first.stop(task.id)
        stale_reader(second, monkeypatch, [stale])
        done = second.complete(task.id)

    assert done.status == TaskStatus.COMPLETED.value
    assert done.total_time == 600000
    assert done.daily_logs == [{"date": "2026-03-02", "timeSpent": 600000}]
    assert done.last_start is None


def test_stop_gives_up_after_max_attempts(engine, session, clock, alice, monkeypatch):
    first = TaskService(session, clock=clock, tz_name="UTC")
    task = first.create(alice.id, "Always stale")
    first.start(task.id)
    clock.advance(minutes=10)

    with Session(engine) as other_session:
        second = TaskService(other_session, clock=clock, tz_name="UTC")
        stale = snapshot(second.get(task.id))
        first.stop(task.id)

        stale_reader(second, monkeypatch, [stale] * TaskService.MAX_ATTEMPTS)
        with pytest.raises(StorageError):
            second.stop(task.id)

    assert first.get(task.id).total_time == 600000
