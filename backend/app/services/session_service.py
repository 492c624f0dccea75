"""Anonymous per-table ordering sessions.

Customers never log in. Scanning a table's QR code yields a session id of the
form ``session-{table}-{13 digit ms timestamp}-{random}``; every customer
request carries it in ``X-Session-ID``. Ids issued before the table segment
was introduced (``session-{timestamp}-{random}``) are still accepted.

The cache is a best-effort accelerator: every cache failure is treated as a
miss. When persistence itself is unreachable during a lookup, a synthetic
fallback session is returned so menu browsing keeps working; it is labelled
``source="fallback"`` and write paths refuse it.
"""

import logging
import re
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.cache import CacheKeys, RedisCacheClient
from app.core.config import settings
from app.core.errors import InvalidSessionId, NotFound, TransactionFailed, ValidationFailed
from app.db.base import utcnow
from app.models.ordering_session import OrderingSession, SessionStatus
from app.models.restaurant import Desk
from app.models.shop import Shop

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(
    r"^session-(?P<table>[A-Za-z0-9_-]+)-(?P<ts>\d{13})-(?P<rand>[A-Za-z0-9]{6,15})$"
)
LEGACY_SESSION_ID_PATTERN = re.compile(r"^session-\d{13}-[A-Za-z0-9]{6,15}$")
TABLE_NUMBER_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

RANDOM_SUFFIX_LENGTH = 9
MAX_ID_ATTEMPTS = 5
MIN_EXPIRATION_HOURS = 1
MAX_EXPIRATION_HOURS = 24

_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class SessionLookup:
    """Snapshot of a session and where it came from.

    ``source`` is ``"cache"``, ``"database"`` or ``"fallback"``.
    """

    id: str
    table_number: str
    shop_id: int
    status: str
    expires_at: datetime
    created_at: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    desk_id: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    source: str = "database"

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE.value and self.expires_at >= utcnow()

    @classmethod
    def from_record(cls, record: OrderingSession, source: str = "database") -> "SessionLookup":
        return cls(
            id=record.id,
            table_number=record.table_number,
            shop_id=record.shop_id,
            status=record.status,
            expires_at=record.expires_at,
            created_at=record.created_at,
            last_activity=record.last_activity,
            desk_id=record.desk_id,
            metadata=dict(record.session_metadata or {}),
            source=source,
        )

    def to_cache(self) -> dict:
        return {
            "id": self.id,
            "table_number": self.table_number,
            "shop_id": self.shop_id,
            "status": self.status,
            "expires_at": self.expires_at.isoformat(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
            "desk_id": self.desk_id,
            "metadata": self.metadata,
        }

    @classmethod
    def from_cache(cls, data: dict) -> "SessionLookup":
        def _dt(value):
            return datetime.fromisoformat(value) if value else None

        return cls(
            id=data["id"],
            table_number=data["table_number"],
            shop_id=int(data["shop_id"]),
            status=data["status"],
            expires_at=_dt(data["expires_at"]),
            created_at=_dt(data.get("created_at")),
            last_activity=_dt(data.get("last_activity")),
            desk_id=data.get("desk_id"),
            metadata=data.get("metadata") or {},
            source="cache",
        )


@dataclass
class CleanupReport:
    cleaned: int = 0
    errors: List[str] = field(default_factory=list)


class SessionService:
    """Issues, validates and expires ordering sessions."""

    def __init__(self, db: Session, cache: RedisCacheClient):
        self.db = db
        self.cache = cache

    # ------------------------------------------------------------------
    # Id format
    # ------------------------------------------------------------------

    @staticmethod
    def generate_id(table_number: str) -> str:
        if not table_number or not TABLE_NUMBER_PATTERN.match(table_number):
            raise ValidationFailed(f"Invalid table number: {table_number!r}")
        timestamp = int(time.time() * 1000)
        suffix = "".join(secrets.choice(_ALPHABET) for _ in range(RANDOM_SUFFIX_LENGTH))
        return f"session-{table_number}-{timestamp}-{suffix}"

    @staticmethod
    def validate_id(session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        return bool(
            SESSION_ID_PATTERN.match(session_id) or LEGACY_SESSION_ID_PATTERN.match(session_id)
        )

    @staticmethod
    def extract_table_number(session_id: str) -> Optional[str]:
        """Table segment of a current-format id, None for legacy or invalid ids."""
        if not session_id or LEGACY_SESSION_ID_PATTERN.match(session_id):
            return None
        match = SESSION_ID_PATTERN.match(session_id)
        return match.group("table") if match else None

    # ------------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------------

    def _cache_get(self, session_id: str) -> Optional[dict]:
        try:
            return self.cache.get(CacheKeys.session(session_id))
        except Exception as e:
            logger.debug(f"Session cache read failed for {session_id}: {e}")
            return None

    def _cache_put(self, lookup: SessionLookup) -> None:
        try:
            self.cache.set(
                CacheKeys.session(lookup.id),
                lookup.to_cache(),
                settings.session_cache_ttl_seconds,
            )
        except Exception as e:
            logger.debug(f"Session cache write failed for {lookup.id}: {e}")

    def _cache_evict(self, session_id: str) -> None:
        try:
            self.cache.delete(CacheKeys.session(session_id))
        except Exception as e:
            logger.debug(f"Session cache evict failed for {session_id}: {e}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(
        self,
        table_number: str,
        shop_id: int,
        expiration_hours: Optional[int] = None,
        metadata: Optional[dict] = None,
    ) -> SessionLookup:
        """Persist a new active session and write it through to the cache."""
        hours = expiration_hours if expiration_hours is not None else settings.session_expiration_hours
        if not MIN_EXPIRATION_HOURS <= hours <= MAX_EXPIRATION_HOURS:
            raise ValidationFailed(
                f"expiration_hours must be between {MIN_EXPIRATION_HOURS} and {MAX_EXPIRATION_HOURS}"
            )
        if not table_number or not TABLE_NUMBER_PATTERN.match(table_number):
            raise ValidationFailed(f"Invalid table number: {table_number!r}")
        if self.db.query(Shop.id).filter(Shop.id == shop_id).first() is None:
            raise NotFound(f"Shop {shop_id} not found")

        desk = self.db.query(Desk).filter(Desk.shop_id == shop_id, Desk.name == table_number).first()

        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            now = utcnow()
            record = OrderingSession(
                id=self.generate_id(table_number),
                table_number=table_number,
                desk_id=desk.id if desk else None,
                shop_id=shop_id,
                status=SessionStatus.ACTIVE.value,
                created_at=now,
                last_activity=now,
                expires_at=now + timedelta(hours=hours),
                session_metadata=metadata or {},
            )
            self.db.add(record)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning(f"Session id collision for table {table_number} (attempt {attempt})")
                continue

            self.db.refresh(record)
            lookup = SessionLookup.from_record(record)
            self._cache_put(lookup)
            logger.info(f"Session created: {record.id} for table {table_number} (shop {shop_id})")
            return lookup

        raise TransactionFailed(f"Could not allocate a unique session id for table {table_number}")

    def get(self, session_id: str) -> Optional[SessionLookup]:
        """Look up an active, unexpired session.

        Returns None when the session is missing, expired or completed.
        Raises InvalidSessionId for ids matching neither accepted format.
        """
        if not self.validate_id(session_id):
            raise InvalidSessionId(session_id)

        cached = self._cache_get(session_id)
        if cached:
            try:
                lookup = SessionLookup.from_cache(cached)
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Discarding unreadable cache entry for {session_id}: {e}")
                lookup = None
            if lookup is not None and lookup.is_active:
                return lookup
            self._cache_evict(session_id)

        try:
            record = (
                self.db.query(OrderingSession)
                .filter(
                    OrderingSession.id == session_id,
                    OrderingSession.status == SessionStatus.ACTIVE.value,
                    OrderingSession.expires_at >= utcnow(),
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Session lookup failed for {session_id}, serving fallback: {e}")
            self.db.rollback()
            return self._fallback(session_id)

        if record is None:
            return None

        lookup = SessionLookup.from_record(record)
        self._cache_put(lookup)
        return lookup

    def _fallback(self, session_id: str) -> SessionLookup:
        now = utcnow()
        return SessionLookup(
            id=session_id,
            table_number=self.extract_table_number(session_id) or "unknown",
            shop_id=settings.default_shop_id,
            status=SessionStatus.ACTIVE.value,
            created_at=now,
            last_activity=now,
            expires_at=now + timedelta(hours=settings.session_expiration_hours),
            metadata={"fallback": True, "created": now.isoformat()},
            source="fallback",
        )

    def _active_record(self, session_id: str) -> Optional[OrderingSession]:
        return (
            self.db.query(OrderingSession)
            .filter(
                OrderingSession.id == session_id,
                OrderingSession.status == SessionStatus.ACTIVE.value,
            )
            .first()
        )

    def update_activity(self, session_id: str) -> bool:
        """Heartbeat. False when the session is missing or no longer active."""
        if not self.validate_id(session_id):
            return False
        try:
            record = self._active_record(session_id)
            if record is None:
                return False
            record.last_activity = utcnow()
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to update activity for session {session_id}")
            raise

        self._cache_put(SessionLookup.from_record(record))
        return True

    def get_or_create(
        self,
        table_number: str,
        shop_id: int,
        expiration_hours: Optional[int] = None,
    ) -> SessionLookup:
        """Reuse the table's most recently active session, or start a new one."""
        existing = (
            self.db.query(OrderingSession)
            .filter(
                OrderingSession.table_number == table_number,
                OrderingSession.shop_id == shop_id,
                OrderingSession.status == SessionStatus.ACTIVE.value,
                OrderingSession.expires_at >= utcnow(),
            )
            .order_by(OrderingSession.last_activity.desc())
            .first()
        )
        if existing is not None:
            existing.last_activity = utcnow()
            self.db.commit()
            lookup = SessionLookup.from_record(existing)
            self._cache_put(lookup)
            logger.debug(f"Reusing session {existing.id} for table {table_number}")
            return lookup

        return self.create(table_number, shop_id, expiration_hours=expiration_hours)

    def complete(self, session_id: str) -> bool:
        """Mark a session completed after its order was placed."""
        try:
            record = self._active_record(session_id)
            if record is None:
                return False
            record.status = SessionStatus.COMPLETED.value
            record.last_activity = utcnow()
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to complete session {session_id}")
            raise

        self._cache_evict(session_id)
        logger.info(f"Session completed: {session_id}")
        return True

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def cleanup_expired(self) -> int:
        """Delete sessions past their expiry or marked expired."""
        now = utcnow()
        expired_ids = [
            row.id
            for row in self.db.query(OrderingSession.id).filter(
                or_(
                    OrderingSession.expires_at < now,
                    OrderingSession.status == SessionStatus.EXPIRED.value,
                )
            )
        ]
        if not expired_ids:
            return 0

        self.db.query(OrderingSession).filter(
            OrderingSession.id.in_(expired_ids)
        ).delete(synchronize_session=False)
        self.db.commit()

        for session_id in expired_ids:
            self._cache_evict(session_id)
        logger.info(f"Cleaned up {len(expired_ids)} expired sessions")
        return len(expired_ids)

    def reset_table_sessions(self, table_number: str, shop_id: int) -> int:
        """Expire every active session at a table. Rows are kept."""
        records = (
            self.db.query(OrderingSession)
            .filter(
                OrderingSession.table_number == table_number,
                OrderingSession.shop_id == shop_id,
                OrderingSession.status == SessionStatus.ACTIVE.value,
            )
            .all()
        )
        now = utcnow()
        for record in records:
            record.status = SessionStatus.EXPIRED.value
            record.last_activity = now
        self.db.commit()

        for record in records:
            self._cache_evict(record.id)
        logger.info(f"Reset {len(records)} sessions for table {table_number} (shop {shop_id})")
        return len(records)

    def _problem(self, record: OrderingSession, now: datetime) -> Optional[str]:
        if not self.validate_id(record.id):
            return f"Invalid session ID format: {record.id}"
        if record.status == SessionStatus.ACTIVE.value and record.expires_at < now:
            return f"Expired session still marked as active: {record.id}"
        if not record.table_number or not TABLE_NUMBER_PATTERN.match(record.table_number):
            return f"Invalid table number for session: {record.id}"
        return None

    def cleanup_problematic(self) -> CleanupReport:
        """Delete malformed or stale-active sessions.

        ``errors`` lists the problem found for every deleted session, plus any
        failure of the cleanup itself.
        """
        report = CleanupReport()
        now = utcnow()
        problem_ids = []
        for record in self.db.query(OrderingSession).all():
            problem = self._problem(record, now)
            if problem:
                problem_ids.append(record.id)
                report.errors.append(problem)

        if not problem_ids:
            return report

        try:
            report.cleaned = self.db.query(OrderingSession).filter(
                OrderingSession.id.in_(problem_ids)
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Problematic session cleanup failed: {e}")
            report.errors.append(f"Cleanup failed: {e}")
            return report

        for session_id in problem_ids:
            self._cache_evict(session_id)
        logger.info(f"Cleaned up {report.cleaned} problematic sessions")
        return report

    def list_for_shop(self, shop_id: int, status: Optional[str] = None) -> List[OrderingSession]:
        query = self.db.query(OrderingSession).filter(OrderingSession.shop_id == shop_id)
        if status:
            query = query.filter(OrderingSession.status == status)
        return query.order_by(OrderingSession.last_activity.desc()).all()

    def table_sessions(self, table_number: str, shop_id: int) -> List[OrderingSession]:
        """Active, unexpired sessions at a table, most recent first."""
        return (
            self.db.query(OrderingSession)
            .filter(
                OrderingSession.table_number == table_number,
                OrderingSession.shop_id == shop_id,
                OrderingSession.status == SessionStatus.ACTIVE.value,
                OrderingSession.expires_at >= utcnow(),
            )
            .order_by(OrderingSession.last_activity.desc())
            .all()
        )

    def delete(self, session_id: str, shop_id: int) -> bool:
        deleted = self.db.query(OrderingSession).filter(
            OrderingSession.id == session_id,
            OrderingSession.shop_id == shop_id,
        ).delete(synchronize_session=False)
        self.db.commit()
        self._cache_evict(session_id)
        return bool(deleted)
