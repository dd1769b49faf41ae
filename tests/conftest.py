# tests/conftest.py

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from datetime import datetime
from typing import Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.db.config import get_session
from app.db.init import init_db
from app.main import app
from app.middleware.auth import create_access_token
from app.models.user import User, UserRole
from app.services.notification_service import NotificationService, get_notification_service
from app.services.user_service import hash_password

from .fakes import FakeClock, FakeEmailProvider

PASSWORD = "secret123"
# Hashed once per test session
PASSWORD_HASH = hash_password(PASSWORD)

T0 = datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture()
def engine():
    """
    In-memory SQLite shared by every session of one test.

    StaticPool keeps the single connection alive so the request sessions,
    the scheduler sessions and the assertions all see the same database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine) -> Callable[[], Session]:
    return lambda: Session(engine)


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture()
def email_provider() -> FakeEmailProvider:
    return FakeEmailProvider()


@pytest.fixture()
def notifier(email_provider) -> NotificationService:
    return NotificationService(email_provider)


def make_user(session: Session, name: str, role: str = UserRole.USER.value) -> User:
    user = User(
        name=name,
        email=f"{name.lower()}@example.com",
        password_hash=PASSWORD_HASH,
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture()
def alice(session) -> User:
    return make_user(session, "Alice")


@pytest.fixture()
def bob(session) -> User:
    return make_user(session, "Bob")


@pytest.fixture()
def admin(session) -> User:
    return make_user(session, "Admin", role=UserRole.ADMIN.value)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email, user.role)}"}


@pytest.fixture()
def client(engine, notifier):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_notification_service] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()
