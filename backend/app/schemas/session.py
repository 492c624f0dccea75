"""Ordering session schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SessionCreate(BaseModel):
    """Start (or resume) the ordering session for a table."""

    table_number: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    shop_id: Optional[int] = Field(default=None, ge=1)
    expiration_hours: Optional[int] = Field(default=None, ge=1, le=24)


class SessionResponse(BaseModel):
    """Session as seen by the customer app."""

    id: str
    table_number: str
    shop_id: int
    desk_id: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    expires_at: datetime
    metadata: Dict[str, Any] = {}
    fallback: bool = Field(default=False, validation_alias="is_fallback")

    model_config = {"from_attributes": True}


class SessionAdminResponse(BaseModel):
    """Persisted session row for staff tooling."""

    id: str
    table_number: str
    shop_id: int
    desk_id: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    expires_at: datetime

    model_config = {"from_attributes": True}


class CleanupExpiredResponse(BaseModel):
    deleted: int


class CleanupProblematicResponse(BaseModel):
    cleaned: int
    errors: List[str] = []

    model_config = {"from_attributes": True}
