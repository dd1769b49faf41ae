"""User router: sign-up and user administration."""
from fastapi import APIRouter, Depends, Query, status
from typing import List
from sqlmodel import Session

from app.db.config import get_session
from app.middleware.auth import CurrentUser, get_current_user, require_admin
from app.models.user import UserRole
from app.schemas.user import AdminUserCreate, SignUpRequest, UserResponse, UserUpdate
from app.services.user_service import UserService

router = APIRouter(tags=["Users"])


def get_user_service(session: Session = Depends(get_session)) -> UserService:
    """Dependency for getting UserService instance."""
    return UserService(session)


@router.post("/user", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    request: SignUpRequest,
    service: UserService = Depends(get_user_service),
):
    """Register a new account with the user role."""
    return service.create(request.name, request.email, request.password, UserRole.USER.value)


@router.get("/user", response_model=List[UserResponse])
async def list_users(
    current_user: CurrentUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """List users (for assignment pickers). Password hashes are never returned."""
    return service.list_users()


@router.post("/admin/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: AdminUserCreate,
    admin: CurrentUser = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Create an account with any role."""
    return service.create(request.name, request.email, request.password, request.role)


@router.put("/user", response_model=UserResponse)
async def update_user(
    request: UserUpdate,
    admin: CurrentUser = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Update name, email or role of a user."""
    return service.update(request.user_id, name=request.name, email=request.email, role=request.role)


@router.delete("/user", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str = Query(..., alias="userId"),
    admin: CurrentUser = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Delete a user together with the tasks they created."""
    service.delete(user_id)
