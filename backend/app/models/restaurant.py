"""Restaurant operations models - desks, orders, carts."""

from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, Boolean, ForeignKey, Text, JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, validates

from app.db.base import Base, utcnow
from app.models.validators import non_negative, positive, one_of, validate_dict


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DeskStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"


ORDER_STATUSES = {s.value for s in OrderStatus}
DESK_STATUSES = {s.value for s in DeskStatus}


class Desk(Base):
    """Restaurant table for seating."""
    __tablename__ = "desks"
    __table_args__ = (UniqueConstraint("shop_id", "name", name="uq_desks_shop_name"),)

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    name = Column(String(50), nullable=False)  # matches Order.table_number
    number = Column(Integer, nullable=True)
    capacity = Column(Integer, default=4)
    status = Column(String(20), default=DeskStatus.AVAILABLE.value)  # available, occupied, reserved
    area = Column(String(50), nullable=True)  # Main Floor, Bar, Patio
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    orders = relationship("Order", back_populates="desk")

    @validates('status')
    def _validate_status(self, key, value):
        value = value.value if isinstance(value, DeskStatus) else value
        return one_of(key, value, DESK_STATUSES)

    @validates('capacity')
    def _validate_capacity(self, key, value):
        return positive(key, value)


class Order(Base):
    """Customer order placed from a table."""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    desk_id = Column(Integer, ForeignKey("desks.id"), nullable=True, index=True)
    session_id = Column(String(100), nullable=True, index=True)
    table_number = Column(String(50), nullable=True, index=True)

    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False)

    subtotal = Column(Numeric(10, 2), default=Decimal("0"))
    service_fee = Column(Numeric(10, 2), default=Decimal("0"))
    total = Column(Numeric(10, 2), default=Decimal("0"))
    paid = Column(Boolean, default=False, nullable=False)

    customer_name = Column(String(100), nullable=True)
    customer_phone = Column(String(30), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    desk = relationship("Desk", back_populates="orders")
    customer = relationship("User")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @validates('status')
    def _validate_status(self, key, value):
        value = value.value if isinstance(value, OrderStatus) else value
        return one_of(key, value, ORDER_STATUSES)

    @validates('subtotal', 'service_fee', 'total')
    def _validate_amounts(self, key, value):
        return non_negative(key, value)


class OrderItem(Base):
    """Line item snapshot, frozen at order time."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=True)

    item_name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # unit price incl. customization cost
    quantity = Column(Integer, default=1, nullable=False)
    customizations = Column(JSON, nullable=True)
    special_instructions = Column(Text, nullable=True)
    customization_cost = Column(Numeric(10, 2), default=Decimal("0"))

    created_at = Column(DateTime, default=utcnow)

    order = relationship("Order", back_populates="items")

    @validates('quantity')
    def _validate_quantity(self, key, value):
        return positive(key, value)

    @validates('price')
    def _validate_price(self, key, value):
        return non_negative(key, value)

    @validates('customizations')
    def _validate_customizations(self, key, value):
        return validate_dict(key, value)

    @property
    def line_total(self) -> Decimal:
        return Decimal(str(self.price)) * self.quantity


class CartItem(Base):
    """Pre-order staging row for one session."""
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(100), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    customizations = Column(JSON, nullable=True)
    special_instructions = Column(Text, nullable=True)
    customization_cost = Column(Numeric(10, 2), default=Decimal("0"))
    created_at = Column(DateTime, default=utcnow)

    menu_item = relationship("MenuItem")

    @validates('quantity')
    def _validate_quantity(self, key, value):
        return positive(key, value)

    @validates('customizations')
    def _validate_customizations(self, key, value):
        return validate_dict(key, value)
