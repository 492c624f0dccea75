"""SQLAlchemy models."""

from app.models.shop import Shop
from app.models.user import User
from app.models.menu import Category, MenuItem
from app.models.restaurant import (
    Desk,
    DeskStatus,
    Order,
    OrderItem,
    OrderStatus,
    CartItem,
)
from app.models.ordering_session import OrderingSession, SessionStatus

__all__ = [
    "Shop",
    "User",
    "Category",
    "MenuItem",
    "Desk",
    "DeskStatus",
    "Order",
    "OrderItem",
    "OrderStatus",
    "CartItem",
    "OrderingSession",
    "SessionStatus",
]
