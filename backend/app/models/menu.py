"""Menu models - categories and orderable items."""

from decimal import Decimal

from pydantic import ValidationError
from sqlalchemy import Column, Integer, String, DateTime, Numeric, Boolean, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship, validates

from app.db.base import Base, utcnow
from app.models.validators import non_negative
from app.schemas.customization import dump_options, parse_options


class Category(Base):
    """Menu category for organizing items."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=utcnow)

    items = relationship("MenuItem", back_populates="category")


class MenuItem(Base):
    """Menu item for ordering."""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String(500), nullable=True)
    is_available = Column(Boolean, default=True)

    # Stored in wire shape; see app.schemas.customization
    customization_options = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="items")

    @validates('price')
    def _validate_price(self, key, value):
        return non_negative(key, value)

    @validates('customization_options')
    def _validate_customization_options(self, key, value):
        if value is None:
            return value
        try:
            return dump_options(parse_options(value))
        except ValidationError as e:
            raise ValueError(f"{key} is not a valid option list: {e}") from e

    @property
    def options(self):
        """Typed view of ``customization_options``."""
        return parse_options(self.customization_options)

    @property
    def base_price(self) -> Decimal:
        return Decimal(str(self.price)) if self.price is not None else Decimal("0")
