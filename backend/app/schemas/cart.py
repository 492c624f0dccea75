"""Cart schemas."""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, StrictInt


class CartItemCreate(BaseModel):
    """Add a menu item to the session's cart."""

    menu_item_id: int
    quantity: StrictInt = Field(default=1, ge=1, le=99)
    customizations: Optional[Dict[str, Any]] = None
    special_instructions: Optional[str] = Field(default=None, max_length=500)


class CartQuantityUpdate(BaseModel):
    """Zero removes the row."""

    quantity: StrictInt = Field(..., ge=0, le=99)


class CartLineResponse(BaseModel):
    id: int
    menu_item_id: int
    name: str
    image_url: Optional[str] = None
    base_price: Decimal
    quantity: int
    customizations: Dict[str, Any] = {}
    special_instructions: Optional[str] = None
    customization_cost: Decimal
    unit_price: Decimal
    line_total: Decimal
    labels: List[str] = []
    is_available: bool = True

    model_config = {"from_attributes": True}


class CartResponse(BaseModel):
    items: List[CartLineResponse]
    item_count: int
    subtotal: Decimal
