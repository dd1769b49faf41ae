"""User schemas."""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Literal, Optional


class SignUpRequest(BaseModel):
    """Sign up request body. Self-registered accounts always get the user role."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)


class AdminUserCreate(SignUpRequest):
    role: Literal["admin", "user"] = "user"


class UserUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[Literal["admin", "user"]] = None


class UserResponse(BaseModel):
    id: str
    name: Optional[str]
    email: str
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
