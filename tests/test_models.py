# tests/test_models.py

from datetime import timedelta

import pytest
from sqlalchemy import DateTime
from sqlmodel import Session, select

from app.models.billing import Billing, BillingID
from app.models.lead import Lead
from app.models.task import Task
from app.models.user import User

from .conftest import T0, make_user


@pytest.mark.parametrize("model", [User, Task, Lead, Billing, BillingID])
def test_timestamp_columns_store_naive_utc(model):
    columns = [column for column in model.__table__.columns if isinstance(column.type, DateTime)]

    assert columns
    assert all(column.type.timezone is False for column in columns)


def test_naive_timestamps_round_trip_and_compare(engine, session):
    alice = make_user(session, "Alice")
    with Session(engine) as writer:
        writer.add(Task(
            user_id=alice.id,
            name="Timestamps",
            status="in-progress",
            last_start=T0,
            deadline=T0 + timedelta(hours=2),
            created_at=T0,
            updated_at=T0,
        ))
        writer.commit()

    with Session(engine) as reader:
        task = reader.exec(select(Task).where(Task.last_start == T0)).one()
        assert task.last_start == T0
        assert task.last_start.tzinfo is None
        assert task.deadline - task.last_start == timedelta(hours=2)
        assert reader.exec(select(Task).where(Task.deadline <= T0)).all() == []
