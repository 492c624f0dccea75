"""Desk (table) occupancy and settlement.

A desk's displayed status is derived from its orders on every read: it is
occupied exactly when at least one order occupies it (see
``app.services.occupancy``). The stored ``Desk.status`` flag is only a quick
filter and a manual override for staff, e.g. marking a walk-in table occupied
before anything has been ordered.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.cache import RedisCacheClient
from app.core.config import settings
from app.core.errors import Conflict, NotFound, TransactionFailed, ValidationFailed
from app.db.base import utcnow
from app.models.ordering_session import OrderingSession, SessionStatus
from app.models.restaurant import CartItem, Desk, DeskStatus, Order, OrderStatus
from app.services.occupancy import belongs_to_desk_clause, occupies_desk_clause
from app.services.session_service import SessionService

logger = logging.getLogger(__name__)

TOGGLEABLE_STATUSES = {DeskStatus.AVAILABLE.value, DeskStatus.OCCUPIED.value}


@dataclass
class DeskStatusView:
    """A desk with its computed occupancy."""

    id: int
    shop_id: int
    name: str
    number: Optional[int]
    capacity: int
    area: Optional[str]
    stored_status: str
    status: str
    is_occupied: bool
    order_count: int
    current_order: Optional[Order] = None


def _build_view(desk: Desk, orders: List[Order]) -> DeskStatusView:
    current = None
    if orders:
        current = max(orders, key=lambda o: (o.created_at, o.id))
    occupied = len(orders) > 0
    return DeskStatusView(
        id=desk.id,
        shop_id=desk.shop_id,
        name=desk.name,
        number=desk.number,
        capacity=desk.capacity,
        area=desk.area,
        stored_status=desk.status,
        status=DeskStatus.OCCUPIED.value if occupied else DeskStatus.AVAILABLE.value,
        is_occupied=occupied,
        order_count=len(orders),
        current_order=current,
    )


class DeskService:
    """Computed desk status, staff overrides, release and reset."""

    def __init__(self, db: Session, cache: RedisCacheClient):
        self.db = db
        self.cache = cache

    def _get_desk(self, desk_id: int, shop_id: int) -> Desk:
        desk = self.db.query(Desk).filter(Desk.id == desk_id, Desk.shop_id == shop_id).first()
        if desk is None:
            raise NotFound(f"Desk {desk_id} not found")
        return desk

    def _occupying_orders(self, desk: Desk) -> List[Order]:
        return (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(belongs_to_desk_clause(desk), occupies_desk_clause())
            .all()
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_with_status(self, shop_id: int) -> List[DeskStatusView]:
        desks = self.db.query(Desk).filter(Desk.shop_id == shop_id).order_by(Desk.name).all()
        if not desks:
            return []

        desk_ids = [d.id for d in desks]
        desk_names = [d.name for d in desks]
        orders = (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(
                Order.shop_id == shop_id,
                occupies_desk_clause(),
                or_(Order.desk_id.in_(desk_ids), Order.table_number.in_(desk_names)),
            )
            .all()
        )

        by_desk_id: Dict[int, List[Order]] = {}
        by_table: Dict[str, List[Order]] = {}
        for order in orders:
            if order.desk_id is not None:
                by_desk_id.setdefault(order.desk_id, []).append(order)
            if order.table_number:
                by_table.setdefault(order.table_number, []).append(order)

        views = []
        for desk in desks:
            linked = {o.id: o for o in by_desk_id.get(desk.id, [])}
            for order in by_table.get(desk.name, []):
                linked[order.id] = order
            views.append(_build_view(desk, list(linked.values())))
        return views

    def get(self, desk_id: int, shop_id: int) -> DeskStatusView:
        desk = self._get_desk(desk_id, shop_id)
        return _build_view(desk, self._occupying_orders(desk))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def toggle_status(self, desk_id: int, shop_id: int, new_status: str) -> DeskStatusView:
        """Staff override of the stored flag. Orders are not touched."""
        if new_status not in TOGGLEABLE_STATUSES:
            raise ValidationFailed(
                f"Desk status must be one of {sorted(TOGGLEABLE_STATUSES)}, got {new_status!r}"
            )
        desk = self._get_desk(desk_id, shop_id)
        desk.status = new_status
        self.db.commit()
        logger.info(f"Desk {desk_id} (shop {shop_id}) manually set to {new_status}")
        return self.get(desk_id, shop_id)

    def complete_and_pay(self, desk_id: int, shop_id: int) -> List[Order]:
        """Settle a desk: every occupying order becomes completed and paid.

        Runs in one transaction. Returns the settled orders, empty when
        nothing was outstanding.
        """
        desk = self._get_desk(desk_id, shop_id)
        try:
            orders = self._occupying_orders(desk)
            for order in orders:
                order.status = OrderStatus.COMPLETED.value
                order.paid = True
            desk.status = DeskStatus.AVAILABLE.value
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Settlement of desk {desk_id} (shop {shop_id}) rolled back")
            raise TransactionFailed(f"Failed to release desk {desk_id}") from e

        logger.info(f"Desk {desk_id} (shop {shop_id}) released, {len(orders)} orders settled")
        return orders

    def resolve_or_create_for_order(self, table_number: str, shop_id: int) -> Desk:
        """Desk named after ``table_number``, provisioned on first use.

        Flushes but does not commit; runs inside the caller's transaction.
        """
        desk = (
            self.db.query(Desk)
            .filter(Desk.shop_id == shop_id, Desk.name == table_number)
            .first()
        )
        if desk is not None:
            return desk

        number = int(table_number) if table_number.isdigit() else None
        desk = Desk(
            shop_id=shop_id,
            name=table_number,
            number=number,
            capacity=settings.default_desk_capacity,
            status=DeskStatus.AVAILABLE.value,
        )
        self.db.add(desk)
        self.db.flush()
        logger.info(f"Provisioned desk {desk.id} for table {table_number} (shop {shop_id})")
        return desk

    def create(self, shop_id: int, name: str, capacity: Optional[int] = None,
               number: Optional[int] = None, area: Optional[str] = None) -> DeskStatusView:
        self._ensure_unique_name(shop_id, name)
        desk = Desk(
            shop_id=shop_id,
            name=name,
            number=number,
            capacity=capacity or settings.default_desk_capacity,
            area=area,
            status=DeskStatus.AVAILABLE.value,
        )
        self.db.add(desk)
        self.db.commit()
        self.db.refresh(desk)
        return _build_view(desk, self._occupying_orders(desk))

    def update(self, desk_id: int, shop_id: int, **changes) -> DeskStatusView:
        """Edit a desk. A rename carries the desk's orders to the new name."""
        desk = self._get_desk(desk_id, shop_id)
        new_name = changes.get("name")
        if new_name and new_name != desk.name:
            self._ensure_unique_name(shop_id, new_name)
            self._rename(desk, new_name)
        for key in ("number", "capacity", "area"):
            if changes.get(key) is not None:
                setattr(desk, key, changes[key])
        self.db.commit()
        return self.get(desk_id, shop_id)

    def _rename(self, desk: Desk, new_name: str) -> None:
        # session ids embed the table name, so a live session pins it
        active = (
            self.db.query(OrderingSession.id)
            .filter(
                OrderingSession.shop_id == desk.shop_id,
                or_(OrderingSession.desk_id == desk.id, OrderingSession.table_number == desk.name),
                OrderingSession.status == SessionStatus.ACTIVE.value,
                OrderingSession.expires_at >= utcnow(),
            )
            .first()
        )
        if active is not None:
            raise Conflict(f"Desk '{desk.name}' has an active session and cannot be renamed")

        moved = (
            self.db.query(Order)
            .filter(belongs_to_desk_clause(desk))
            .update({Order.table_number: new_name, Order.desk_id: desk.id}, synchronize_session=False)
        )
        logger.info(f"Desk {desk.id} renamed '{desk.name}' -> '{new_name}', {moved} order(s) moved")
        desk.name = new_name

    def delete(self, desk_id: int, shop_id: int) -> None:
        desk = self._get_desk(desk_id, shop_id)
        referenced = self.db.query(Order.id).filter(Order.desk_id == desk.id).first()
        if referenced is not None:
            raise Conflict(f"Desk {desk_id} has orders and cannot be deleted")
        self.db.delete(desk)
        self.db.commit()
        logger.info(f"Desk {desk_id} (shop {shop_id}) deleted")

    def _ensure_unique_name(self, shop_id: int, name: str) -> None:
        exists = self.db.query(Desk.id).filter(Desk.shop_id == shop_id, Desk.name == name).first()
        if exists is not None:
            raise Conflict(f"Desk '{name}' already exists")

    def reset_table(self, table_number: str, shop_id: int) -> dict:
        """Force-clear a table.

        Cancels the table's pending orders, empties the carts of sessions seen
        at the table and frees the desk if nothing occupies it any more. The
        table's active sessions are then expired.
        """
        try:
            pending = (
                self.db.query(Order)
                .filter(
                    Order.shop_id == shop_id,
                    Order.table_number == table_number,
                    Order.status == OrderStatus.PENDING.value,
                )
                .all()
            )
            for order in pending:
                order.status = OrderStatus.CANCELLED.value

            session_ids = {
                row.id
                for row in self.db.query(OrderingSession.id).filter(
                    OrderingSession.shop_id == shop_id,
                    OrderingSession.table_number == table_number,
                )
            }
            session_ids.update(
                row.session_id
                for row in self.db.query(Order.session_id).filter(
                    Order.shop_id == shop_id,
                    Order.table_number == table_number,
                    Order.session_id.isnot(None),
                )
            )
            cleared = 0
            if session_ids:
                cleared = self.db.query(CartItem).filter(
                    CartItem.session_id.in_(session_ids)
                ).delete(synchronize_session=False)

            desk = (
                self.db.query(Desk)
                .filter(Desk.shop_id == shop_id, Desk.name == table_number)
                .first()
            )
            if desk is not None:
                self.db.flush()
                if not self._occupying_orders(desk):
                    desk.status = DeskStatus.AVAILABLE.value
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Reset of table {table_number} (shop {shop_id}) rolled back")
            raise TransactionFailed(f"Failed to reset table {table_number}") from e

        expired = SessionService(self.db, self.cache).reset_table_sessions(table_number, shop_id)

        logger.info(
            f"Table {table_number} (shop {shop_id}) reset: {len(pending)} orders cancelled, "
            f"{cleared} cart items cleared, {expired} sessions expired"
        )
        return {
            "table_number": table_number,
            "cancelled_orders": len(pending),
            "cleared_cart_items": cleared,
            "expired_sessions": expired,
            "desk_id": desk.id if desk is not None else None,
        }
