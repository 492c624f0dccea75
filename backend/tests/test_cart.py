"""Session cart: merging, customizations and quantity updates."""

import pytest
from decimal import Decimal

from app.core.errors import NotFound, ValidationFailed
from app.services.cart_service import CartService


@pytest.fixture
def service(db_session, cache):
    return CartService(db_session, cache)


class TestAddToCart:
    def test_add_prices_customizations(self, service, customer_session, shop, pizza):
        line = service.add(customer_session.id, shop.id, pizza.id, 1, {"size": "large", "cheese": True})
        assert line.customization_cost == Decimal("4.50")
        assert line.unit_price == Decimal("14.50")
        assert line.labels == ["Size: Large", "Extra cheese"]

    def test_identical_add_merges(self, service, customer_session, shop, pizza):
        first = service.add(customer_session.id, shop.id, pizza.id, 1, {"size": "large"})
        second = service.add(customer_session.id, shop.id, pizza.id, 2, {"size": "large"})
        assert second.id == first.id
        assert second.quantity == 3
        assert len(service.items(customer_session.id)) == 1

    def test_different_customizations_are_separate_rows(self, service, customer_session, shop, pizza):
        service.add(customer_session.id, shop.id, pizza.id, 1, {"size": "large"})
        service.add(customer_session.id, shop.id, pizza.id, 1, {"size": "small"})
        assert len(service.items(customer_session.id)) == 2

    def test_different_instructions_are_separate_rows(self, service, customer_session, shop, soda):
        service.add(customer_session.id, shop.id, soda.id, 1, special_instructions="no ice")
        service.add(customer_session.id, shop.id, soda.id, 1)
        assert len(service.items(customer_session.id)) == 2

    def test_blank_instructions_merge_with_none(self, service, customer_session, shop, soda):
        service.add(customer_session.id, shop.id, soda.id, 1, special_instructions="  ")
        line = service.add(customer_session.id, shop.id, soda.id, 1)
        assert line.quantity == 2

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_bad_quantity(self, service, customer_session, shop, soda, quantity):
        with pytest.raises(ValidationFailed):
            service.add(customer_session.id, shop.id, soda.id, quantity)

    def test_invalid_customization(self, service, customer_session, shop, pizza):
        with pytest.raises(ValidationFailed) as exc_info:
            service.add(customer_session.id, shop.id, pizza.id, 1, {"size": "huge"})
        assert exc_info.value.code == "INVALID_CUSTOMIZATION"

    def test_customization_below_zero_rejected(self, service, db_session, customer_session, shop, pizza):
        pizza.price = Decimal("1.00")
        db_session.commit()
        with pytest.raises(ValidationFailed) as exc_info:
            service.add(customer_session.id, shop.id, pizza.id, 1, {"size": "small"})
        assert exc_info.value.code == "INVALID_CUSTOMIZATION"
        assert service.items(customer_session.id) == []

    def test_customization_down_to_zero_allowed(self, service, db_session, customer_session, shop, pizza):
        pizza.price = Decimal("2.00")
        db_session.commit()
        line = service.add(customer_session.id, shop.id, pizza.id, 1, {"size": "small"})
        assert line.unit_price == Decimal("0.00")

    def test_unavailable_item(self, service, db_session, customer_session, shop, soda):
        soda.is_available = False
        db_session.commit()
        with pytest.raises(ValidationFailed):
            service.add(customer_session.id, shop.id, soda.id, 1)

    def test_item_from_other_shop(self, service, customer_session, other_shop, soda):
        with pytest.raises(NotFound):
            service.add(customer_session.id, other_shop.id, soda.id, 1)


class TestUpdateCart:
    def test_update_quantity(self, service, customer_session, shop, soda):
        line = service.add(customer_session.id, shop.id, soda.id, 1)
        updated = service.update_quantity(customer_session.id, line.id, 4)
        assert updated.quantity == 4
        assert service.subtotal(customer_session.id) == Decimal("10.00")

    def test_zero_removes(self, service, customer_session, shop, soda):
        line = service.add(customer_session.id, shop.id, soda.id, 1)
        assert service.update_quantity(customer_session.id, line.id, 0) is None
        assert service.items(customer_session.id) == []

    def test_rows_of_other_session_not_found(self, service, customer_session, shop, soda):
        line = service.add(customer_session.id, shop.id, soda.id, 1)
        with pytest.raises(NotFound):
            service.remove("session-9-1700000000000-otherone1", line.id)

    def test_clear(self, service, customer_session, shop, soda, pizza):
        service.add(customer_session.id, shop.id, soda.id, 1)
        service.add(customer_session.id, shop.id, pizza.id, 1)
        assert service.clear(customer_session.id) == 2
        assert service.items(customer_session.id) == []
