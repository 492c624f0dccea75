"""Menu browsing schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, field_validator

from app.schemas.customization import CustomizationOption, parse_options


class CategoryResponse(BaseModel):
    id: int
    shop_id: int
    name: str
    description: Optional[str] = None
    sort_order: int = 0

    model_config = {"from_attributes": True}


class MenuItemResponse(BaseModel):
    """Menu item with its customization options in wire shape."""

    id: int
    shop_id: int
    category_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    price: Decimal
    image_url: Optional[str] = None
    is_available: bool = True
    customization_options: List[CustomizationOption] = []

    model_config = {"from_attributes": True}

    @field_validator("customization_options", mode="before")
    @classmethod
    def _parse_options(cls, value):
        return parse_options(value)
