"""Session cart.

Rows are keyed by (session, menu item, customizations, special instructions):
adding an identical combination again merges quantities, while a different
customization set for the same item is a separate row.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from app.core.cache import RedisCacheClient
from app.core.errors import NotFound, ValidationFailed
from app.models.menu import MenuItem
from app.models.restaurant import CartItem
from app.services.customization_pricing import (
    customization_price,
    describe_selection,
    validate_selection,
)

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    id: int
    menu_item_id: int
    name: str
    image_url: Optional[str]
    base_price: Decimal
    quantity: int
    customizations: Dict[str, Any]
    special_instructions: Optional[str]
    customization_cost: Decimal
    is_available: bool = True
    labels: List[str] = field(default_factory=list)

    @property
    def unit_price(self) -> Decimal:
        return self.base_price + self.customization_cost

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


def _normalize_instructions(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _check_quantity(quantity, minimum: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationFailed(f"Quantity must be an integer, got {quantity!r}")
    if quantity < minimum:
        raise ValidationFailed(f"Quantity must be at least {minimum}")
    return quantity


def _to_line(row: CartItem) -> CartLine:
    item = row.menu_item
    cost = Decimal(str(row.customization_cost or 0))
    return CartLine(
        id=row.id,
        menu_item_id=row.menu_item_id,
        name=item.name,
        image_url=item.image_url,
        base_price=item.base_price,
        quantity=row.quantity,
        customizations=dict(row.customizations or {}),
        special_instructions=row.special_instructions,
        customization_cost=cost,
        is_available=bool(item.is_available),
        labels=describe_selection(item.customization_options, row.customizations or {}),
    )


class CartService:
    """Cart operations for one ordering session at a time."""

    def __init__(self, db: Session, cache: Optional[RedisCacheClient] = None):
        self.db = db
        self.cache = cache

    def _rows(self, session_id: str) -> List[CartItem]:
        return (
            self.db.query(CartItem)
            .options(joinedload(CartItem.menu_item))
            .filter(CartItem.session_id == session_id)
            .order_by(CartItem.created_at, CartItem.id)
            .all()
        )

    def _row(self, session_id: str, cart_item_id: int) -> CartItem:
        row = (
            self.db.query(CartItem)
            .filter(CartItem.id == cart_item_id, CartItem.session_id == session_id)
            .first()
        )
        if row is None:
            raise NotFound(f"Cart item {cart_item_id} not found")
        return row

    def items(self, session_id: str) -> List[CartLine]:
        return [_to_line(row) for row in self._rows(session_id)]

    def subtotal(self, session_id: str) -> Decimal:
        return sum((line.line_total for line in self.items(session_id)), Decimal("0"))

    def add(
        self,
        session_id: str,
        shop_id: int,
        menu_item_id: int,
        quantity: int = 1,
        customizations: Optional[Dict[str, Any]] = None,
        special_instructions: Optional[str] = None,
    ) -> CartLine:
        """Add an item, merging with an identical existing row."""
        _check_quantity(quantity, 1)
        item = (
            self.db.query(MenuItem)
            .filter(MenuItem.id == menu_item_id, MenuItem.shop_id == shop_id)
            .first()
        )
        if item is None:
            raise NotFound(f"Menu item {menu_item_id} not found")
        if not item.is_available:
            raise ValidationFailed(f"{item.name} is currently unavailable")

        selection = customizations or {}
        if not validate_selection(item.customization_options, selection):
            raise ValidationFailed(
                f"Invalid customizations for {item.name}", code="INVALID_CUSTOMIZATION"
            )
        cost = customization_price(item.customization_options, selection)
        if item.base_price + cost < 0:
            raise ValidationFailed(
                f"Customizations bring {item.name} below zero", code="INVALID_CUSTOMIZATION"
            )
        instructions = _normalize_instructions(special_instructions)

        existing = (
            self.db.query(CartItem)
            .filter(CartItem.session_id == session_id, CartItem.menu_item_id == menu_item_id)
            .all()
        )
        for row in existing:
            if (row.customizations or {}) == selection and row.special_instructions == instructions:
                row.quantity = row.quantity + quantity
                self.db.commit()
                logger.debug(f"Merged cart row {row.id} for session {session_id}")
                return _to_line(row)

        row = CartItem(
            session_id=session_id,
            menu_item_id=menu_item_id,
            quantity=quantity,
            customizations=selection,
            special_instructions=instructions,
            customization_cost=cost,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return _to_line(row)

    def update_quantity(self, session_id: str, cart_item_id: int, quantity: int) -> Optional[CartLine]:
        """Set a row's quantity. Zero removes the row and returns None."""
        _check_quantity(quantity, 0)
        row = self._row(session_id, cart_item_id)
        if quantity == 0:
            self.db.delete(row)
            self.db.commit()
            return None
        row.quantity = quantity
        self.db.commit()
        return _to_line(row)

    def remove(self, session_id: str, cart_item_id: int) -> None:
        row = self._row(session_id, cart_item_id)
        self.db.delete(row)
        self.db.commit()

    def clear(self, session_id: str) -> int:
        deleted = self.db.query(CartItem).filter(
            CartItem.session_id == session_id
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted
