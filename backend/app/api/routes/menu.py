"""Public menu browsing routes."""

from typing import List, Optional

from fastapi import APIRouter, Query, Request

from app.api.deps import Cache
from app.core.config import settings
from app.core.rate_limit import limiter
from app.db.session import DbSession
from app.schemas.menu import CategoryResponse, MenuItemResponse
from app.services.menu_service import MenuService

router = APIRouter()


def _shop(shop_id: Optional[int]) -> int:
    return shop_id or settings.default_shop_id


@router.get("", response_model=List[MenuItemResponse])
@limiter.limit("120/minute")
def list_menu_items(
    request: Request,
    db: DbSession,
    cache: Cache,
    shop_id: Optional[int] = Query(None, ge=1),
    category_id: Optional[int] = Query(None, ge=1),
):
    """List a shop's menu, optionally for one category."""
    return MenuService(db, cache).items(_shop(shop_id), category_id)


@router.get("/categories", response_model=List[CategoryResponse])
@limiter.limit("120/minute")
def list_categories(request: Request, db: DbSession, cache: Cache, shop_id: Optional[int] = Query(None, ge=1)):
    return MenuService(db, cache).categories(_shop(shop_id))


@router.get("/search", response_model=List[MenuItemResponse])
@limiter.limit("60/minute")
def search_menu(
    request: Request,
    db: DbSession,
    cache: Cache,
    q: str = Query(..., min_length=1, max_length=100),
    shop_id: Optional[int] = Query(None, ge=1),
):
    return MenuService(db, cache).search(q, _shop(shop_id))


@router.get("/{item_id}", response_model=MenuItemResponse)
@limiter.limit("120/minute")
def get_menu_item(request: Request, item_id: int, db: DbSession, cache: Cache, shop_id: Optional[int] = Query(None, ge=1)):
    return MenuService(db, cache).item(item_id, _shop(shop_id))


@router.get("/{item_id}/similar", response_model=List[MenuItemResponse])
@limiter.limit("60/minute")
def similar_menu_items(
    request: Request,
    item_id: int,
    db: DbSession,
    cache: Cache,
    shop_id: Optional[int] = Query(None, ge=1),
    limit: int = Query(3, ge=1, le=10),
):
    """Other available items from the same category."""
    return MenuService(db, cache).similar(item_id, _shop(shop_id), limit=limit)
