"""Authentication schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from app.core.rbac import UserRole


class LoginRequest(BaseModel):
    """Login request body."""

    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=128)
    shop_id: Optional[int] = Field(default=None, ge=1)


class Token(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """Authenticated staff member."""

    id: int
    shop_id: int
    username: str
    role: UserRole
    name: Optional[str] = None
    is_active: bool = True

    model_config = {"from_attributes": True}
