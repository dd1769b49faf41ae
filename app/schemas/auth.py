"""Authentication schemas."""
from pydantic import BaseModel, EmailStr, Field


class TokenResponse(BaseModel):
    """Response containing JWT token after login."""
    token: str
    role: str
    id: str


class LoginRequest(BaseModel):
    """Login request body."""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)
