"""Retention sweep for completed tasks.

Completed tasks carry ``delete_at`` (end date + 45 days). This module is the
storage-side expiry: it removes rows whose ``delete_at`` has passed.
"""
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import delete
from sqlmodel import Session

from app.models.task import Task
from app.utils.clock import Clock, utcnow
from app.utils.logger import get_logger

logger = get_logger("retention-sweeper")


def purge_expired_tasks(session: Session, now: Optional[datetime] = None) -> int:
    """Delete tasks past their retention timestamp. Returns the number removed."""
    now = now or utcnow()
    statement = delete(Task).where(Task.delete_at.is_not(None), Task.delete_at <= now)
    result = session.exec(statement)
    session.commit()
    return result.rowcount or 0


class RetentionSweeper:
    """Periodic job body that purges expired tasks with a fresh session."""

    def __init__(self, session_factory: Callable[[], Session], clock: Clock = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    async def run_once(self) -> int:
        with self.session_factory() as session:
            removed = purge_expired_tasks(session, self.clock())
        if removed:
            logger.info("Purged expired tasks", removed=removed)
        return removed
