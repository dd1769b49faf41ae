"""User service: registration, login checks and admin management."""
from typing import List, Optional

import bcrypt
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.models.user import User, UserRole
from app.services.errors import ConflictError, NotFoundError, StorageError
from app.utils.clock import utcnow


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


class UserService:
    """Service class for user accounts."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.email == email.lower())).first()

    def get(self, user_id: str) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def list_users(self) -> List[User]:
        return list(self.session.exec(select(User).order_by(User.created_at.desc())).all())

    def create(self, name: str, email: str, password: str, role: str = UserRole.USER.value) -> User:
        if self.get_by_email(email):
            raise ConflictError("Email already in use")

        user = User(
            name=name,
            email=email.lower(),
            password_hash=hash_password(password),
            role=role,
        )
        self._commit(user)
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the user when the credentials match, otherwise None."""
        user = self.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            return None
        return user

    def update(
        self,
        user_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[str] = None,
    ) -> User:
        user = self.get(user_id)

        if email is not None and email.lower() != user.email:
            if self.get_by_email(email):
                raise ConflictError("Email already in use")
            user.email = email.lower()
        if name is not None:
            user.name = name
        if role is not None:
            user.role = role

        user.updated_at = utcnow()
        self._commit(user)
        return user

    def delete(self, user_id: str):
        user = self.get(user_id)
        try:
            self.session.delete(user)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Failed to delete user: {str(e)}") from e

    def _commit(self, user: User):
        try:
            self.session.add(user)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Failed to save user: {str(e)}") from e
        self.session.refresh(user)
