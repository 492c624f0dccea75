"""Customization pricing.

Pure functions over a menu item's option list (see
``app.schemas.customization``) and a customer's selection map
``{option_id: value}``. Radio values are choice ids, checkbox values are
booleans.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.schemas.customization import CheckboxOption, RadioOption, parse_options

Selection = Optional[Dict[str, Any]]


def customization_price(options, selection: Selection) -> Decimal:
    """Sum the price deltas of the selected options.

    Unknown option ids and radio values that match no declared choice
    contribute nothing.
    """
    total = Decimal("0")
    if not selection:
        return total

    for option in parse_options(options):
        if option.id not in selection:
            continue
        value = selection[option.id]
        if isinstance(option, CheckboxOption):
            if value is True:
                total += option.price_delta
        elif isinstance(option, RadioOption):
            for choice in option.choices:
                if choice.id == value:
                    total += choice.price_delta
                    break
    return total


def validate_selection(options, selection: Selection) -> bool:
    """Check a selection against the declared options.

    False when a radio value names no declared choice or a checkbox value is
    not a boolean. Ids the item does not declare are ignored.
    """
    if not selection:
        return True
    if not isinstance(selection, dict):
        return False

    for option in parse_options(options):
        if option.id not in selection:
            continue
        value = selection[option.id]
        if isinstance(option, CheckboxOption):
            if not isinstance(value, bool):
                return False
        elif isinstance(option, RadioOption):
            if not any(choice.id == value for choice in option.choices):
                return False
    return True


def item_total(base_price, quantity: int, options, selection: Selection) -> Decimal:
    """(base price + customization price) * quantity."""
    unit = Decimal(str(base_price)) + customization_price(options, selection)
    return unit * quantity


def describe_selection(options, selection: Selection) -> List[str]:
    """Human-readable labels, e.g. ``["Size: Large", "Extra cheese"]``."""
    labels: List[str] = []
    if not selection:
        return labels

    for option in parse_options(options):
        value = selection.get(option.id)
        if value is None:
            continue
        if isinstance(option, RadioOption):
            choice = next((c for c in option.choices if c.id == value), None)
            if choice is not None:
                labels.append(f"{option.name}: {choice.name}")
        elif value is True:
            labels.append(option.name)
    return labels


def default_selection(options) -> Dict[str, Any]:
    """First choice of every radio option, every checkbox off."""
    selection: Dict[str, Any] = {}
    for option in parse_options(options):
        if isinstance(option, RadioOption):
            if option.choices:
                selection[option.id] = option.choices[0].id
        else:
            selection[option.id] = False
    return selection
