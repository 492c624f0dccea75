"""Customer ordering session routes."""

import logging

from fastapi import APIRouter, Request, status

from app.api.deps import Cache
from app.core.config import settings
from app.core.errors import SessionNotFound
from app.core.rate_limit import limiter
from app.db.session import DbSession
from app.schemas.session import SessionCreate, SessionResponse
from app.services.session_service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def start_session(request: Request, body: SessionCreate, db: DbSession, cache: Cache):
    """Get the table's active session, or start a new one (QR code scan)."""
    service = SessionService(db, cache)
    lookup = service.get_or_create(
        body.table_number,
        body.shop_id or settings.default_shop_id,
        expiration_hours=body.expiration_hours,
    )
    return SessionResponse.model_validate(lookup)


@router.get("/{session_id}", response_model=SessionResponse)
@limiter.limit("60/minute")
def read_session(request: Request, session_id: str, db: DbSession, cache: Cache):
    """Check whether a stored session id is still usable."""
    lookup = SessionService(db, cache).get(session_id)
    if lookup is None:
        raise SessionNotFound("Session not found or expired")
    return SessionResponse.model_validate(lookup)
