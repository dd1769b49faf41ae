# tests/test_seed.py

from app.db.seed import create_admin_user
from app.services.user_service import UserService, verify_password


def test_create_admin_user_is_idempotent(session):
    assert create_admin_user(session, "Root", "Root@Example.com", "changeme") is True
    assert create_admin_user(session, "Root", "root@example.com", "other-password") is False

    admin = UserService(session).get_by_email("root@example.com")
    assert admin.role == "admin"
    assert verify_password("changeme", admin.password_hash)
