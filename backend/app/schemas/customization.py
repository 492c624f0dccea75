"""Menu item customization option schemas.

Options are stored on ``MenuItem.customization_options`` as a JSON list and
exposed to clients in the same shape::

    [
        {"id": "size", "name": "Size", "type": "radio",
         "options": [{"id": "small", "name": "Small", "price": -20},
                     {"id": "large", "name": "Large", "price": 30}]},
        {"id": "cheese", "name": "Extra cheese", "type": "checkbox", "price": 15},
    ]
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class RadioChoice(BaseModel):
    """One mutually exclusive choice inside a radio option."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str
    price_delta: Decimal = Field(default=Decimal("0"), alias="price")


class RadioOption(BaseModel):
    """Pick exactly one of several choices, each with its own price delta."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str
    type: Literal["radio"] = "radio"
    choices: List[RadioChoice] = Field(default_factory=list, alias="options")


class CheckboxOption(BaseModel):
    """On/off add-on with a single price delta."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str
    type: Literal["checkbox"] = "checkbox"
    price_delta: Decimal = Field(default=Decimal("0"), alias="price")


CustomizationOption = Annotated[
    Union[RadioOption, CheckboxOption],
    Field(discriminator="type"),
]

_options_adapter = TypeAdapter(List[CustomizationOption])


def parse_options(raw) -> List[CustomizationOption]:
    """Parse the stored JSON list into typed options.

    Raises ``pydantic.ValidationError`` when the list is malformed.
    """
    if not raw:
        return []
    if isinstance(raw, list) and all(isinstance(o, (RadioOption, CheckboxOption)) for o in raw):
        return list(raw)
    return _options_adapter.validate_python(raw)


def dump_options(options: List[CustomizationOption]) -> list:
    """Serialize typed options back to the stored/wire JSON shape. Prices become decimal strings."""
    return _options_adapter.dump_python(options, mode="json", by_alias=True)
