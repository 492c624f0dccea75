"""Staff tooling for ordering sessions."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Query, Response, status

from app.api.deps import Cache
from app.core.errors import NotFound
from app.core.rbac import RequireAdmin, RequireStaff
from app.db.session import DbSession
from app.schemas.session import (
    CleanupExpiredResponse,
    CleanupProblematicResponse,
    SessionAdminResponse,
)
from app.services.session_service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[SessionAdminResponse])
def list_sessions(
    current_user: RequireStaff,
    db: DbSession,
    cache: Cache,
    status_filter: Optional[str] = Query(None, alias="status"),
    table_number: Optional[str] = Query(None),
):
    service = SessionService(db, cache)
    if table_number:
        return service.table_sessions(table_number, current_user.shop_id)
    return service.list_for_shop(current_user.shop_id, status=status_filter)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: str, current_user: RequireStaff, db: DbSession, cache: Cache):
    if not SessionService(db, cache).delete(session_id, current_user.shop_id):
        raise NotFound(f"Session {session_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/cleanup-expired", response_model=CleanupExpiredResponse)
def cleanup_expired_sessions(current_user: RequireAdmin, db: DbSession, cache: Cache):
    deleted = SessionService(db, cache).cleanup_expired()
    logger.info(f"Expired session cleanup by user {current_user.user_id}: {deleted} deleted")
    return CleanupExpiredResponse(deleted=deleted)


@router.post("/cleanup-problematic", response_model=CleanupProblematicResponse)
def cleanup_problematic_sessions(current_user: RequireAdmin, db: DbSession, cache: Cache):
    report = SessionService(db, cache).cleanup_problematic()
    logger.info(f"Problematic session cleanup by user {current_user.user_id}: {report.cleaned} deleted")
    return CleanupProblematicResponse.model_validate(report)
