# tests/test_task_actions.py

from datetime import datetime, timezone

import pytest

from app.schemas.task import (
    CompleteTaskAction,
    CreateTaskAction,
    SetDeadlineAction,
    StartTaskAction,
    StopTaskAction,
    parse_task_action,
)
from app.services.errors import ValidationError


def test_parses_each_action_kind():
    assert isinstance(parse_task_action({"action": "create", "name": "A"}), CreateTaskAction)
    assert isinstance(parse_task_action({"action": "pending", "name": "A"}), CreateTaskAction)
    assert isinstance(parse_task_action({"action": "start", "taskId": 1}), StartTaskAction)
    assert isinstance(parse_task_action({"action": "stop", "task_id": 1}), StopTaskAction)
    assert isinstance(parse_task_action({"action": "complete", "taskId": 1}), CompleteTaskAction)
    assert isinstance(
        parse_task_action({"action": "set-deadline", "taskId": 1, "deadline": "2026-03-05T10:00:00Z"}),
        SetDeadlineAction,
    )


def test_camel_case_fields_are_accepted():
    action = parse_task_action({
        "action": "create",
        "name": "Review",
        "taskDetail": "Check the numbers",
        "assignedUsers": ["u1", "u2"],
        "deadline": "2026-03-05T10:00:00+00:00",
    })

    assert action.task_detail == "Check the numbers"
    assert action.assigned_users == ["u1", "u2"]
    assert action.deadline == datetime(2026, 3, 5, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("payload", [
    {"action": "pause", "taskId": 1},
    {"taskId": 1},
    {"action": "start"},
    {"action": "complete", "taskId": 1, "endDate": "not a date"},
    ["start"],
])
def test_rejects_malformed_actions(payload):
    with pytest.raises(ValidationError):
        parse_task_action(payload)


def test_set_deadline_without_deadline_parses_for_service_validation():
    action = parse_task_action({"action": "set-deadline", "taskId": 3})

    assert action.deadline is None
    assert action.assigned_users is None
