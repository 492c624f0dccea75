"""Domain errors raised by services and rendered by a single API handler.

Every error carries a machine-checkable ``code`` so clients can branch on the
reason without parsing the message.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


ERROR_CATALOG = {
    "VALIDATION_FAILED": {
        "title": "Invalid input",
        "http_code": 400,
        "description": "Malformed input rejected before touching persistence.",
    },
    "EMPTY_ORDER": {
        "title": "Order without items",
        "http_code": 400,
        "description": "An order was submitted with no items (or from an empty cart).",
    },
    "INVALID_CUSTOMIZATION": {
        "title": "Invalid customization",
        "http_code": 400,
        "description": "A selection does not match the menu item's customization options.",
    },
    "INVALID_SESSION_FORMAT": {
        "title": "Invalid session id",
        "http_code": 401,
        "description": "Expected session-{table}-{timestamp}-{random} or session-{timestamp}-{random}.",
    },
    "SESSION_REQUIRED": {
        "title": "Session id missing",
        "http_code": 401,
        "description": "Customer requests must send the X-Session-ID header.",
    },
    "SESSION_NOT_FOUND": {
        "title": "Session not found or expired",
        "http_code": 401,
        "description": "The session is missing, expired or already completed.",
    },
    "TABLE_MISMATCH": {
        "title": "Table number mismatch",
        "http_code": 401,
        "description": "The session belongs to a different table than X-Table-Number.",
    },
    "SESSION_UNVERIFIED": {
        "title": "Session could not be verified",
        "http_code": 503,
        "description": "Storage is unavailable; only read-only browsing is possible.",
    },
    "NOT_FOUND": {
        "title": "Not found",
        "http_code": 404,
        "description": "The resource does not exist within the requested shop.",
    },
    "CONFLICT": {
        "title": "Conflict",
        "http_code": 409,
        "description": "The request conflicts with the current state of the resource.",
    },
    "INVALID_TRANSITION": {
        "title": "Illegal status transition",
        "http_code": 409,
        "description": "Orders move pending -> preparing -> ready -> completed, or to cancelled.",
    },
    "TRANSACTION_FAILED": {
        "title": "Operation rolled back",
        "http_code": 500,
        "description": "A transactional operation failed and no partial state was kept.",
    },
}


class OrderingError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "VALIDATION_FAILED"
    status_code = 400

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
            self.status_code = ERROR_CATALOG.get(code, {}).get("http_code", self.status_code)


class ValidationFailed(OrderingError):
    code = "VALIDATION_FAILED"
    status_code = 400


class InvalidSessionId(OrderingError):
    code = "INVALID_SESSION_FORMAT"
    status_code = 401

    def __init__(self, session_id: str):
        super().__init__(f"Invalid session ID format: {session_id}")
        self.session_id = session_id


class SessionNotFound(OrderingError):
    code = "SESSION_NOT_FOUND"
    status_code = 401


class TableMismatch(OrderingError):
    code = "TABLE_MISMATCH"
    status_code = 401


class SessionUnverified(OrderingError):
    code = "SESSION_UNVERIFIED"
    status_code = 503


class NotFound(OrderingError):
    code = "NOT_FOUND"
    status_code = 404


class Conflict(OrderingError):
    code = "CONFLICT"
    status_code = 409


class InvalidTransition(Conflict):
    code = "INVALID_TRANSITION"
    status_code = 409


class TransactionFailed(OrderingError):
    code = "TRANSACTION_FAILED"
    status_code = 500


async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    """Render an OrderingError as ``{"detail": ..., "error": ...}``."""
    log_level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(log_level, f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )
