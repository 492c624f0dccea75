"""Shared rate limiter instance for use across route files."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from app.core.config import settings


def get_session_or_ip(request: Request) -> str:
    """Rate limit customers by ordering session if present, else by IP."""
    session_id = request.headers.get("X-Session-ID")
    if session_id:
        return f"session:{session_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=get_session_or_ip, enabled=settings.rate_limit_enabled)
