"""Demo data for local development.

Creates one shop with a staff admin, a small menu with radio and checkbox
customizations, and a few desks. Does nothing if any shop already exists.

Usage:
    cd backend
    python -m app.db.seed
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.rbac import UserRole
from app.core.security import get_password_hash
from app.models.menu import Category, MenuItem
from app.models.restaurant import Desk, DeskStatus
from app.models.shop import Shop
from app.models.user import User

logger = logging.getLogger(__name__)

SIZE_OPTION = {
    "id": "size",
    "name": "Size",
    "type": "radio",
    "options": [
        {"id": "small", "name": "Small", "price": -2},
        {"id": "regular", "name": "Regular", "price": 0},
        {"id": "large", "name": "Large", "price": 3},
    ],
}

MENU = [
    ("Mains", "Hearty plates", [
        ("Margherita Pizza", "Tomato, mozzarella, basil", "12.50", [
            SIZE_OPTION,
            {"id": "extra_cheese", "name": "Extra cheese", "type": "checkbox", "price": 1.5},
        ]),
        ("Classic Burger", "Beef patty, cheddar, pickles", "14.00", [
            {"id": "doneness", "name": "Doneness", "type": "radio", "options": [
                {"id": "medium", "name": "Medium", "price": 0},
                {"id": "well_done", "name": "Well done", "price": 0},
            ]},
            {"id": "bacon", "name": "Add bacon", "type": "checkbox", "price": 2},
            {"id": "no_bun", "name": "No bun", "type": "checkbox", "price": -1},
        ]),
        ("Caesar Salad", "Romaine, parmesan, croutons", "9.00", [
            {"id": "chicken", "name": "Add chicken", "type": "checkbox", "price": 3.5},
        ]),
    ]),
    ("Drinks", "Cold and hot", [
        ("Lemonade", "Fresh squeezed", "4.00", [SIZE_OPTION]),
        ("Espresso", None, "2.50", [
            {"id": "shot", "name": "Shots", "type": "radio", "options": [
                {"id": "single", "name": "Single", "price": 0},
                {"id": "double", "name": "Double", "price": 1},
            ]},
        ]),
    ]),
]

DESKS = [("1", "Main Floor"), ("2", "Main Floor"), ("3", "Main Floor"), ("A1", "Patio"), ("BAR", "Bar")]


def seed_demo_data(db: Session, admin_password: Optional[str] = None) -> Optional[Shop]:
    """Populate an empty database. Returns the new shop, or None if skipped."""
    if db.query(Shop.id).first() is not None:
        logger.debug("Demo data skipped: database already has shops")
        return None

    shop = Shop(name="Demo Bistro", slug="demo-bistro", currency="USD", active=True)
    db.add(shop)
    db.flush()

    db.add(User(
        shop_id=shop.id,
        username=settings.seed_admin_username,
        password_hash=get_password_hash(admin_password or settings.seed_admin_password),
        role=UserRole.ADMIN,
        name="Demo Admin",
        is_active=True,
    ))

    for sort_order, (category_name, description, items) in enumerate(MENU):
        category = Category(
            shop_id=shop.id, name=category_name, description=description, sort_order=sort_order,
        )
        db.add(category)
        db.flush()
        for name, item_description, price, options in items:
            db.add(MenuItem(
                shop_id=shop.id,
                category_id=category.id,
                name=name,
                description=item_description,
                price=Decimal(price),
                is_available=True,
                customization_options=options,
            ))

    for name, area in DESKS:
        db.add(Desk(
            shop_id=shop.id,
            name=name,
            number=int(name) if name.isdigit() else None,
            capacity=settings.default_desk_capacity,
            area=area,
            status=DeskStatus.AVAILABLE.value,
        ))

    db.commit()
    db.refresh(shop)
    logger.info(f"Seeded demo shop {shop.id} ({shop.slug})")
    return shop


if __name__ == "__main__":
    import app.models  # noqa: F401
    from app.db.base import Base
    from app.db.session import SessionLocal, engine

    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_demo_data(session)
    finally:
        session.close()
