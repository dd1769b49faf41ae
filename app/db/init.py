"""Initialize database tables."""
import logging

from sqlmodel import SQLModel
from app.models.user import User  # noqa: F401
from app.models.task import Task  # noqa: F401
from app.models.lead import Lead  # noqa: F401
from app.models.billing import Billing, BillingID  # noqa: F401
from app.db.config import engine

logger = logging.getLogger(__name__)


def init_db(bind=None):
    """Create all tables that do not exist yet."""
    logger.info("[DB INIT] Creating all tables...")
    SQLModel.metadata.create_all(bind or engine)
    logger.info("[DB INIT] Tables created successfully.")


if __name__ == "__main__":
    init_db()
    print("Database tables created successfully.")
