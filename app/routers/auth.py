"""Authentication router."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from app.db.config import get_session
from app.middleware.auth import create_access_token
from app.schemas.auth import LoginRequest, TokenResponse
from app.services.user_service import UserService

router = APIRouter(tags=["Authentication"])  # No prefix since main.py adds /auth prefix


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, session: Session = Depends(get_session)):
    """Exchange email and password for a bearer token."""
    user = UserService(session).authenticate(request.email, request.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    token = create_access_token(user.id, user.email, user.role)
    return TokenResponse(token=token, role=user.role, id=user.id)
