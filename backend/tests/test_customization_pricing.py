"""Customization option parsing and pricing."""

import pytest
from decimal import Decimal
from pydantic import ValidationError

from app.models.menu import MenuItem
from app.schemas.customization import CheckboxOption, RadioOption, dump_options, parse_options
from app.services.customization_pricing import (
    customization_price,
    default_selection,
    describe_selection,
    item_total,
    validate_selection,
)

PIZZA_OPTIONS = [
    {
        "id": "size",
        "name": "Size",
        "type": "radio",
        "options": [
            {"id": "small", "name": "Small", "price": -2},
            {"id": "large", "name": "Large", "price": 3},
        ],
    },
    {"id": "cheese", "name": "Extra cheese", "type": "checkbox", "price": 1.5},
]


# ============== Parsing ==============

class TestParseOptions:
    def test_empty(self):
        assert parse_options(None) == []
        assert parse_options([]) == []

    def test_discriminates_on_type(self):
        options = parse_options(PIZZA_OPTIONS)
        assert isinstance(options[0], RadioOption)
        assert isinstance(options[1], CheckboxOption)
        assert [c.id for c in options[0].choices] == ["small", "large"]
        assert options[1].price_delta == Decimal("1.5")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_options([{"id": "x", "name": "X", "type": "slider"}])

    def test_dump_keeps_wire_shape(self):
        dumped = dump_options(parse_options(PIZZA_OPTIONS))
        assert dumped[0]["options"][1] == {"id": "large", "name": "Large", "price": "3"}
        assert dumped[1]["price"] == "1.5"
        assert dumped[1]["type"] == "checkbox"

    def test_dump_keeps_exact_prices(self):
        dumped = dump_options([{"id": "tip", "name": "Tip", "type": "checkbox", "price": "2.675"}])
        assert dumped[0]["price"] == "2.675"

    def test_menu_item_rejects_malformed_options(self):
        with pytest.raises(ValueError, match="customization_options"):
            MenuItem(shop_id=1, name="Bad", price=Decimal("1"), customization_options=[{"name": "no id"}])


# ============== Pricing ==============

class TestCustomizationPrice:
    def test_no_selection_costs_nothing(self):
        assert customization_price(PIZZA_OPTIONS, None) == Decimal("0")
        assert customization_price(PIZZA_OPTIONS, {}) == Decimal("0")

    def test_radio_and_checkbox(self):
        selection = {"size": "large", "cheese": True}
        assert customization_price(PIZZA_OPTIONS, selection) == Decimal("4.5")

    def test_negative_delta(self):
        assert customization_price(PIZZA_OPTIONS, {"size": "small"}) == Decimal("-2")

    def test_unchecked_checkbox_is_free(self):
        assert customization_price(PIZZA_OPTIONS, {"cheese": False}) == Decimal("0")

    def test_truthy_non_boolean_does_not_count(self):
        assert customization_price(PIZZA_OPTIONS, {"cheese": "yes"}) == Decimal("0")

    def test_unknown_ids_ignored(self):
        assert customization_price(PIZZA_OPTIONS, {"sauce": "bbq", "size": "huge"}) == Decimal("0")

    def test_item_total(self):
        total = item_total(Decimal("10.00"), 2, PIZZA_OPTIONS, {"size": "large", "cheese": True})
        assert total == Decimal("29.00")


class TestValidateSelection:
    def test_empty_is_valid(self):
        assert validate_selection(PIZZA_OPTIONS, {}) is True

    def test_valid(self):
        assert validate_selection(PIZZA_OPTIONS, {"size": "small", "cheese": False}) is True

    def test_unknown_radio_choice(self):
        assert validate_selection(PIZZA_OPTIONS, {"size": "huge"}) is False

    def test_checkbox_needs_boolean(self):
        assert validate_selection(PIZZA_OPTIONS, {"cheese": 1}) is False

    def test_not_a_dict(self):
        assert validate_selection(PIZZA_OPTIONS, ["size"]) is False

    def test_undeclared_ids_ignored(self):
        assert validate_selection(PIZZA_OPTIONS, {"sauce": "bbq"}) is True


class TestLabels:
    def test_describe(self):
        labels = describe_selection(PIZZA_OPTIONS, {"size": "large", "cheese": True})
        assert labels == ["Size: Large", "Extra cheese"]

    def test_unchecked_not_described(self):
        assert describe_selection(PIZZA_OPTIONS, {"cheese": False}) == []

    def test_default_selection(self):
        assert default_selection(PIZZA_OPTIONS) == {"size": "small", "cheese": False}


def test_radio_prices_selected_choice_only():
    options = [{
        "id": "size", "name": "Size", "type": "radio",
        "options": [{"id": "small", "name": "Small", "price": -20}, {"id": "large", "name": "Large", "price": 30}],
    }]
    assert customization_price(options, {"size": "large"}) == Decimal("30")
    assert customization_price(options, {}) == Decimal("0")
    assert customization_price(options, {"size": "medium"}) == Decimal("0")
