"""Shared route dependencies: cache handle and the customer session pipeline.

Customer requests identify themselves with ``X-Session-ID`` (and optionally
``X-Table-Number``). The pipeline validates the id format, resolves the
session, checks the table number and records a heartbeat.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Header

from app.core.cache import RedisCacheClient, get_cache
from app.core.errors import (
    InvalidSessionId,
    OrderingError,
    SessionNotFound,
    SessionUnverified,
    TableMismatch,
)
from app.db.session import DbSession
from app.services.session_service import SessionLookup, SessionService

logger = logging.getLogger(__name__)

Cache = Annotated[RedisCacheClient, Depends(get_cache)]

# Values some clients send when they have no table number
_UNSET_TABLE_HEADERS = {"", "undefined", "null"}


@dataclass
class CustomerContext:
    session: SessionLookup
    table_number: str

    @property
    def session_id(self) -> str:
        return self.session.id

    @property
    def shop_id(self) -> int:
        return self.session.shop_id


def get_customer_context(
    db: DbSession,
    cache: Cache,
    x_session_id: Annotated[Optional[str], Header()] = None,
    x_table_number: Annotated[Optional[str], Header()] = None,
) -> CustomerContext:
    """Authenticate a customer request by its ordering session."""
    if not x_session_id:
        raise OrderingError("Session ID required", code="SESSION_REQUIRED")

    service = SessionService(db, cache)
    if not service.validate_id(x_session_id):
        logger.warning(f"Rejected malformed session id: {x_session_id}")
        raise InvalidSessionId(x_session_id)

    lookup = service.get(x_session_id)
    if lookup is None:
        raise SessionNotFound("Session not found or expired")

    table_number = service.extract_table_number(x_session_id) or lookup.table_number
    supplied = (x_table_number or "").strip()
    if supplied not in _UNSET_TABLE_HEADERS and supplied != table_number:
        logger.warning(
            f"Table mismatch for session {x_session_id}: header {supplied}, session {table_number}"
        )
        raise TableMismatch(
            f"Session belongs to table {table_number}, not {supplied}"
        )

    if not lookup.is_fallback:
        service.update_activity(x_session_id)

    return CustomerContext(session=lookup, table_number=table_number)


CustomerContextDep = Annotated[CustomerContext, Depends(get_customer_context)]


def require_persisted_session(context: CustomerContextDep) -> CustomerContext:
    """Writes need a session verified against the database."""
    if context.session.is_fallback:
        raise SessionUnverified(
            "Session could not be verified right now; please try again shortly"
        )
    return context


PersistedCustomerContext = Annotated[CustomerContext, Depends(require_persisted_session)]
