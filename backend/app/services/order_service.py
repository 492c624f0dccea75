"""Order lifecycle.

Creating an order is one transaction: the order row, desk resolution, item
snapshots and cart removal commit together or not at all. Marking the
originating session completed happens afterwards and never undoes an order.

Status moves forward along pending -> preparing -> ready -> completed, or to
cancelled from any non-terminal state. A terminal transition frees the desk's
stored flag when no other order still occupies it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy import String, cast, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.cache import RedisCacheClient
from app.core.config import settings
from app.core.errors import InvalidTransition, NotFound, TransactionFailed, ValidationFailed
from app.db.base import utcnow
from app.models.menu import MenuItem
from app.models.restaurant import (
    ORDER_STATUSES,
    CartItem,
    Desk,
    DeskStatus,
    Order,
    OrderItem,
    OrderStatus,
)
from app.services.cart_service import CartService
from app.services.desk_service import DeskService
from app.services.occupancy import belongs_to_desk_clause, occupies_desk_clause
from app.services.session_service import SessionService

logger = logging.getLogger(__name__)

STATUS_FLOW = [
    OrderStatus.PENDING.value,
    OrderStatus.PREPARING.value,
    OrderStatus.READY.value,
    OrderStatus.COMPLETED.value,
]
TERMINAL_STATUSES = {OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value}

CENTS = Decimal("0.01")


@dataclass
class OrderData:
    """Order header, priced by the caller."""

    shop_id: int
    subtotal: Decimal
    service_fee: Decimal
    total: Decimal
    table_number: Optional[str] = None
    session_id: Optional[str] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class OrderItemData:
    """Line item snapshot. ``price`` is the unit price incl. customization cost."""

    item_name: str
    price: Decimal
    quantity: int
    menu_item_id: Optional[int] = None
    customizations: Dict[str, Any] = field(default_factory=dict)
    special_instructions: Optional[str] = None
    customization_cost: Decimal = Decimal("0")


def service_fee_for(subtotal: Decimal, percent: Optional[Decimal] = None) -> Decimal:
    """Service fee on a subtotal, rounded half-up to cents."""
    if percent is None:
        percent = settings.service_fee_percent
    return (Decimal(subtotal) * Decimal(percent) / Decimal("100")).quantize(CENTS, rounding=ROUND_HALF_UP)


def can_transition(current: str, new: str) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    if new == OrderStatus.CANCELLED.value:
        return True
    return STATUS_FLOW.index(new) > STATUS_FLOW.index(current)


class OrderService:
    """Order creation, status progression and order reads."""

    def __init__(self, db: Session, cache: RedisCacheClient):
        self.db = db
        self.cache = cache

    def _query(self):
        return self.db.query(Order).options(
            selectinload(Order.items),
            selectinload(Order.desk),
            selectinload(Order.customer),
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(self, order_data: OrderData, items: List[OrderItemData]) -> Order:
        if not items:
            raise ValidationFailed("Order must contain at least one item", code="EMPTY_ORDER")

        try:
            order = Order(
                shop_id=order_data.shop_id,
                customer_id=order_data.customer_id,
                session_id=order_data.session_id,
                table_number=order_data.table_number,
                status=OrderStatus.PENDING.value,
                subtotal=order_data.subtotal,
                service_fee=order_data.service_fee,
                total=order_data.total,
                paid=False,
                customer_name=order_data.customer_name,
                customer_phone=order_data.customer_phone,
                notes=order_data.notes,
            )
            self.db.add(order)
            self.db.flush()

            if order_data.table_number:
                desk = DeskService(self.db, self.cache).resolve_or_create_for_order(
                    order_data.table_number, order_data.shop_id
                )
                order.desk_id = desk.id
                desk.status = DeskStatus.OCCUPIED.value

            self._insert_items(order, items)

            if order_data.session_id:
                self.db.query(CartItem).filter(
                    CartItem.session_id == order_data.session_id
                ).delete(synchronize_session=False)

            self.db.commit()
        except ValueError as e:
            self.db.rollback()
            raise ValidationFailed(str(e)) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(
                f"Order creation rolled back (shop {order_data.shop_id}, "
                f"table {order_data.table_number}, session {order_data.session_id})"
            )
            raise TransactionFailed("Failed to create order") from e

        order_id = order.id
        logger.info(f"Order {order_id} created for table {order_data.table_number} (shop {order_data.shop_id})")

        if order_data.session_id:
            try:
                SessionService(self.db, self.cache).complete(order_data.session_id)
            except SQLAlchemyError:
                logger.exception(
                    f"Order {order_id} stands but session {order_data.session_id} was not completed"
                )

        return self.get(order_id, order_data.shop_id)

    def _insert_items(self, order: Order, items: List[OrderItemData]) -> None:
        for item in items:
            self.db.add(OrderItem(
                order_id=order.id,
                menu_item_id=item.menu_item_id,
                item_name=item.item_name,
                price=item.price,
                quantity=item.quantity,
                customizations=item.customizations or {},
                special_instructions=item.special_instructions,
                customization_cost=item.customization_cost,
            ))
        self.db.flush()

    def checkout(
        self,
        session_id: str,
        table_number: Optional[str],
        shop_id: int,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None,
        notes: Optional[str] = None,
        customer_id: Optional[int] = None,
    ) -> Order:
        """Price the session's cart and place it as one order."""
        lines = CartService(self.db, self.cache).items(session_id)
        if not lines:
            raise ValidationFailed("Cart is empty", code="EMPTY_ORDER")

        unavailable = [line.name for line in lines if not line.is_available]
        if unavailable:
            raise ValidationFailed(f"No longer available: {', '.join(unavailable)}")

        items = [
            OrderItemData(
                menu_item_id=line.menu_item_id,
                item_name=line.name,
                price=line.unit_price,
                quantity=line.quantity,
                customizations=line.customizations,
                special_instructions=line.special_instructions,
                customization_cost=line.customization_cost,
            )
            for line in lines
        ]
        subtotal = sum((i.price * i.quantity for i in items), Decimal("0")).quantize(CENTS)
        fee = service_fee_for(subtotal)

        order_data = OrderData(
            shop_id=shop_id,
            subtotal=subtotal,
            service_fee=fee,
            total=subtotal + fee,
            table_number=table_number,
            session_id=session_id,
            customer_id=customer_id,
            customer_name=customer_name,
            customer_phone=customer_phone,
            notes=notes,
        )
        return self.create(order_data, items)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def update_status(self, order_id: int, shop_id: int, new_status: str) -> Order:
        if new_status not in ORDER_STATUSES:
            raise ValidationFailed(
                f"Invalid status {new_status!r}; expected one of {', '.join(sorted(ORDER_STATUSES))}"
            )

        order = self.db.query(Order).filter(Order.id == order_id, Order.shop_id == shop_id).first()
        if order is None:
            raise NotFound(f"Order {order_id} not found")

        current = order.status
        if current == new_status:
            return self.get(order_id, shop_id)
        if not can_transition(current, new_status):
            raise InvalidTransition(f"Cannot move order {order_id} from {current} to {new_status}")

        order.status = new_status

        if new_status in TERMINAL_STATUSES and order.desk_id is not None:
            desk = self.db.query(Desk).filter(Desk.id == order.desk_id, Desk.shop_id == shop_id).first()
            if desk is not None:
                still_occupied = (
                    self.db.query(Order.id)
                    .filter(
                        belongs_to_desk_clause(desk),
                        occupies_desk_clause(),
                        Order.id != order.id,
                    )
                    .first()
                )
                if still_occupied is None:
                    desk.status = DeskStatus.AVAILABLE.value
                    logger.info(f"Desk {desk.id} freed by order {order_id} -> {new_status}")

        self.db.commit()
        logger.info(f"Order {order_id} (shop {shop_id}): {current} -> {new_status}")
        return self.get(order_id, shop_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self, shop_id: int, status: Optional[str] = None) -> List[Order]:
        query = self._query().filter(Order.shop_id == shop_id)
        if status:
            if status not in ORDER_STATUSES:
                raise ValidationFailed(f"Invalid status filter {status!r}")
            query = query.filter(Order.status == status)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def get(self, order_id: int, shop_id: int) -> Order:
        order = self._query().filter(Order.id == order_id, Order.shop_id == shop_id).first()
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        return order

    def list_for_session(self, session_id: str, shop_id: Optional[int] = None) -> List[Order]:
        """The session's orders that have not been settled yet."""
        query = self._query().filter(Order.session_id == session_id, Order.paid.is_(False))
        if shop_id is not None:
            query = query.filter(Order.shop_id == shop_id)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def list_for_customer(self, customer_id: int, shop_id: int) -> List[Order]:
        return (
            self._query()
            .filter(Order.customer_id == customer_id, Order.shop_id == shop_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )

    def stats(self, shop_id: int) -> dict:
        """Today's (UTC) paid orders and revenue, distinct customers, menu size."""
        start = datetime.combine(utcnow().date(), time.min)

        paid_today = self.db.query(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total), 0),
        ).filter(
            Order.shop_id == shop_id,
            Order.created_at >= start,
            Order.paid.is_(True),
        ).one()

        # Anonymous orders count once per session
        customer_key = func.coalesce(cast(Order.customer_id, String), Order.session_id)
        active_customers = self.db.query(func.count(func.distinct(customer_key))).filter(
            Order.shop_id == shop_id,
            Order.created_at >= start,
        ).scalar()

        menu_items_count = self.db.query(func.count(MenuItem.id)).filter(
            MenuItem.shop_id == shop_id
        ).scalar()

        return {
            "today_orders": paid_today[0] or 0,
            "revenue": Decimal(str(paid_today[1] or 0)).quantize(CENTS),
            "active_customers": active_customers or 0,
            "menu_items_count": menu_items_count or 0,
        }
