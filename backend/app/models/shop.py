"""Shop model - the tenant boundary."""

from sqlalchemy import Column, Integer, String, DateTime, Boolean

from app.db.base import Base, utcnow


class Shop(Base):
    """A restaurant. Every other row belongs to exactly one shop."""
    __tablename__ = "shops"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    currency = Column(String(3), default="USD")
    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
