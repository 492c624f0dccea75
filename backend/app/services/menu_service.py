"""Read-only, shop-scoped menu browsing with read-through caching."""

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.cache import CacheKeys, RedisCacheClient
from app.core.config import settings
from app.core.errors import NotFound
from app.models.menu import Category, MenuItem
from app.schemas.menu import CategoryResponse, MenuItemResponse

logger = logging.getLogger(__name__)


def _dump_item(item: MenuItem) -> dict:
    return MenuItemResponse.model_validate(item).model_dump(mode="json", by_alias=True)


class MenuService:

    def __init__(self, db: Session, cache: RedisCacheClient):
        self.db = db
        self.cache = cache

    def categories(self, shop_id: int) -> List[dict]:
        key = CacheKeys.categories(shop_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        rows = (
            self.db.query(Category)
            .filter(Category.shop_id == shop_id)
            .order_by(Category.sort_order, Category.name)
            .all()
        )
        result = [CategoryResponse.model_validate(c).model_dump(mode="json") for c in rows]
        self.cache.set(key, result, settings.menu_cache_ttl_seconds)
        return result

    def items(self, shop_id: int, category_id: Optional[int] = None) -> List[dict]:
        key = CacheKeys.menu_items(shop_id, category_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        query = self.db.query(MenuItem).filter(MenuItem.shop_id == shop_id)
        if category_id is not None:
            query = query.filter(MenuItem.category_id == category_id)
        result = [_dump_item(i) for i in query.order_by(MenuItem.name).all()]
        self.cache.set(key, result, settings.menu_cache_ttl_seconds)
        return result

    def item(self, item_id: int, shop_id: int) -> dict:
        item = (
            self.db.query(MenuItem)
            .filter(MenuItem.id == item_id, MenuItem.shop_id == shop_id)
            .first()
        )
        if item is None:
            raise NotFound(f"Menu item {item_id} not found")
        return _dump_item(item)

    def search(self, q: str, shop_id: int) -> List[dict]:
        """Case-insensitive match on name or description, available items only."""
        term = f"%{q.strip()}%"
        rows = (
            self.db.query(MenuItem)
            .filter(
                MenuItem.shop_id == shop_id,
                MenuItem.is_available.is_(True),
                or_(MenuItem.name.ilike(term), MenuItem.description.ilike(term)),
            )
            .order_by(MenuItem.name)
            .all()
        )
        return [_dump_item(i) for i in rows]

    def similar(self, item_id: int, shop_id: int, limit: int = 3) -> List[dict]:
        """Other available items from the same category."""
        item = (
            self.db.query(MenuItem)
            .filter(MenuItem.id == item_id, MenuItem.shop_id == shop_id)
            .first()
        )
        if item is None:
            raise NotFound(f"Menu item {item_id} not found")
        if item.category_id is None:
            return []

        rows = (
            self.db.query(MenuItem)
            .filter(
                MenuItem.shop_id == shop_id,
                MenuItem.category_id == item.category_id,
                MenuItem.id != item.id,
                MenuItem.is_available.is_(True),
            )
            .order_by(MenuItem.name)
            .limit(limit)
            .all()
        )
        return [_dump_item(i) for i in rows]

    def invalidate(self, shop_id: int) -> None:
        """Drop every cached menu read for a shop."""
        self.cache.delete(CacheKeys.categories(shop_id))
        self.cache.invalidate_pattern(f"{CacheKeys.MENU_ITEMS}:{shop_id}:*")
        logger.debug(f"Menu cache invalidated for shop {shop_id}")
