"""Menu browsing and its read-through cache."""

import pytest
from decimal import Decimal

from app.core.cache import CacheKeys
from app.core.errors import NotFound
from app.models.menu import MenuItem
from app.services.menu_service import MenuService


@pytest.fixture
def service(db_session, cache):
    return MenuService(db_session, cache)


class TestMenuService:
    def test_items_include_options(self, service, shop, pizza):
        items = service.items(shop.id)
        assert items[0]["name"] == "Margherita Pizza"
        size = items[0]["customization_options"][0]
        assert size["type"] == "radio"
        assert [c["id"] for c in size["options"]] == ["small", "large"]

    def test_items_are_cached(self, service, db_session, cache, shop, pizza):
        service.items(shop.id)
        assert cache.get(CacheKeys.menu_items(shop.id)) is not None

        pizza.name = "Renamed"
        db_session.commit()
        assert service.items(shop.id)[0]["name"] == "Margherita Pizza"

        service.invalidate(shop.id)
        assert service.items(shop.id)[0]["name"] == "Renamed"

    def test_categories(self, service, shop, category):
        assert [c["name"] for c in service.categories(shop.id)] == ["Mains"]

    def test_tenant_scoped(self, service, shop, other_shop, pizza):
        assert service.items(other_shop.id) == []
        with pytest.raises(NotFound):
            service.item(pizza.id, other_shop.id)

    def test_search(self, service, db_session, shop, pizza, soda):
        assert [i["name"] for i in service.search("mozz", shop.id)] == ["Margherita Pizza"]
        soda.is_available = False
        db_session.commit()
        assert service.search("soda", shop.id) == []

    def test_similar(self, service, db_session, shop, category, pizza, soda):
        db_session.add(MenuItem(
            shop_id=shop.id, category_id=category.id, name="Calzone", price=Decimal("11.00"),
        ))
        db_session.commit()
        names = [i["name"] for i in service.similar(pizza.id, shop.id)]
        assert names == ["Calzone", "Soda"]
        assert len(service.similar(pizza.id, shop.id, limit=1)) == 1
