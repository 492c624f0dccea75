"""Anonymous per-table ordering session."""

from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import validates

from app.db.base import Base, utcnow
from app.models.validators import one_of, validate_dict


class SessionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    COMPLETED = "completed"


SESSION_STATUSES = {s.value for s in SessionStatus}


class OrderingSession(Base):
    """A customer's visit to one table, identified by an opaque session id."""
    __tablename__ = "ordering_sessions"
    __table_args__ = (
        Index("ix_ordering_sessions_table_shop", "table_number", "shop_id"),
    )

    # session-{table}-{ms timestamp}-{random}; primary key rejects collisions
    id = Column(String(100), primary_key=True)
    table_number = Column(String(50), nullable=False)
    desk_id = Column(Integer, ForeignKey("desks.id", ondelete="SET NULL"), nullable=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    status = Column(String(20), default=SessionStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    last_activity = Column(DateTime, default=utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)
    session_metadata = Column("metadata", JSON, nullable=True)

    @validates('status')
    def _validate_status(self, key, value):
        value = value.value if isinstance(value, SessionStatus) else value
        return one_of(key, value, SESSION_STATUSES)

    @validates('session_metadata')
    def _validate_metadata(self, key, value):
        return validate_dict(key, value)
