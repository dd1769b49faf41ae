"""Create the initial administrator account.

Usage: python -m app.db.seed (reads ADMIN_NAME, ADMIN_EMAIL, ADMIN_PASSWORD)
"""
import logging
import os

from sqlmodel import Session

from app.db.config import engine
from app.db.init import init_db
from app.models.user import UserRole
from app.services.user_service import UserService
from app.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def create_admin_user(session: Session, name: str, email: str, password: str) -> bool:
    """Create the admin account unless the email is taken. Returns True if created."""
    service = UserService(session)
    if service.get_by_email(email):
        logger.info("Admin user already exists: %s", email)
        return False

    user = service.create(name, email, password, UserRole.ADMIN.value)
    logger.info("Admin user created with id: %s", user.id)
    return True


def main():
    setup_logging()
    email = os.environ.get("ADMIN_EMAIL")
    password = os.environ.get("ADMIN_PASSWORD")
    if not email or not password:
        raise SystemExit("ADMIN_EMAIL and ADMIN_PASSWORD must be set")

    init_db()
    with Session(engine) as session:
        create_admin_user(session, os.environ.get("ADMIN_NAME", "Admin"), email, password)


if __name__ == "__main__":
    main()
