"""Desk occupancy policy.

An order occupies a desk iff it is not cancelled and not yet paid. An order
belongs to a desk when it references the desk id or, for orders placed before
the desk existed, when its table number equals the desk name.

Every occupancy computation goes through these helpers.
"""

from sqlalchemy import and_, or_

from app.models.restaurant import Desk, Order, OrderStatus


def occupies_desk_clause():
    """SQL predicate for orders that count toward occupancy."""
    return and_(
        Order.status != OrderStatus.CANCELLED.value,
        Order.paid.is_(False),
    )


def belongs_to_desk_clause(desk: Desk):
    """SQL predicate for orders linked to ``desk`` by id or table number."""
    return and_(
        Order.shop_id == desk.shop_id,
        or_(Order.desk_id == desk.id, Order.table_number == desk.name),
    )


def occupies_desk(order: Order) -> bool:
    """In-memory counterpart of :func:`occupies_desk_clause`."""
    return order.status != OrderStatus.CANCELLED.value and not order.paid


def belongs_to_desk(order: Order, desk: Desk) -> bool:
    return order.shop_id == desk.shop_id and (
        order.desk_id == desk.id or order.table_number == desk.name
    )
