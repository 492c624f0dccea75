"""Desk (table) schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.order import OrderResponse


class DeskCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    number: Optional[int] = None
    capacity: Optional[int] = Field(default=None, ge=1, le=100)
    area: Optional[str] = Field(default=None, max_length=50)


class DeskUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    number: Optional[int] = None
    capacity: Optional[int] = Field(default=None, ge=1, le=100)
    area: Optional[str] = Field(default=None, max_length=50)


class DeskStatusUpdate(BaseModel):
    """Manual override of the stored flag: ``available`` or ``occupied``."""

    status: str


class DeskResponse(BaseModel):
    """Desk with occupancy computed from its orders.

    ``status`` and ``is_occupied`` are derived; ``stored_status`` is the
    last manually set or auto-maintained flag.
    """

    id: int
    shop_id: int
    name: str
    number: Optional[int] = None
    capacity: int
    area: Optional[str] = None
    status: str
    stored_status: str
    is_occupied: bool
    order_count: int
    current_order: Optional[OrderResponse] = None

    model_config = {"from_attributes": True}


class ReleaseResponse(BaseModel):
    desk_id: int
    released_count: int
    orders: List[OrderResponse] = []


class TableResetResponse(BaseModel):
    table_number: str
    cancelled_orders: int
    cleared_cart_items: int
    expired_sessions: int
    desk_id: Optional[int] = None
