"""Database configuration for the Working Status API."""
from typing import Generator
from sqlmodel import create_engine, Session
import logging
import os
from dotenv import load_dotenv
from sqlalchemy import event

# Load environment variables before anything reads them
load_dotenv()

logger = logging.getLogger(__name__)

# Use the DATABASE_URL from environment variable, with fallback to SQLite for local dev
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./working_status.db")

if DATABASE_URL.startswith("postgresql"):
    logger.info("[DB CONFIG] Using PostgreSQL database")
else:
    logger.info("[DB CONFIG] Using SQLite database: %s", DATABASE_URL)

# SQLite connections are shared between the request threads and the scheduler
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args, pool_pre_ping=True)

if DATABASE_URL.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        # Enable foreign keys and WAL mode for better concurrency
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


def get_session() -> Generator[Session, None, None]:
    """Dependency for getting database sessions."""
    with Session(engine) as session:
        yield session


def new_session() -> Session:
    """Session for background jobs that run outside a request."""
    return Session(engine)
