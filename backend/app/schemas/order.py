"""Order schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OrderItemResponse(BaseModel):
    """Line item snapshot. ``price`` includes the customization cost."""

    id: int
    menu_item_id: Optional[int] = None
    item_name: str
    price: Decimal
    quantity: int
    customizations: Optional[Dict[str, Any]] = None
    special_instructions: Optional[str] = None
    customization_cost: Decimal = Decimal("0")

    model_config = {"from_attributes": True}


class OrderDeskSummary(BaseModel):
    id: int
    name: str
    status: str

    model_config = {"from_attributes": True}


class OrderCustomerSummary(BaseModel):
    id: int
    username: str
    name: Optional[str] = None

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    """Order with items, desk and customer populated."""

    id: int
    shop_id: int
    customer_id: Optional[int] = None
    desk_id: Optional[int] = None
    session_id: Optional[str] = None
    table_number: Optional[str] = None
    status: str
    subtotal: Decimal
    service_fee: Decimal
    total: Decimal
    paid: bool
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    items: List[OrderItemResponse] = []
    desk: Optional[OrderDeskSummary] = None
    customer: Optional[OrderCustomerSummary] = None

    model_config = {"from_attributes": True}


class CheckoutRequest(BaseModel):
    """Place an order from the session's cart."""

    customer_name: Optional[str] = Field(default=None, max_length=100)
    customer_phone: Optional[str] = Field(default=None, max_length=30)
    notes: Optional[str] = Field(default=None, max_length=1000)


class OrderStatusUpdate(BaseModel):
    """Checked against the order status vocabulary by the service."""

    status: str = Field(..., min_length=1, max_length=20)


class OrderStats(BaseModel):
    today_orders: int
    revenue: Decimal
    active_customers: int
    menu_items_count: int
