"""FastAPI application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Query, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from sqlalchemy import text

import app.models  # noqa: F401  registers every table on Base.metadata
from app.api.routes import api_router
from app.core.cache import redis_cache
from app.core.config import settings
from app.core.errors import OrderingError, ordering_error_handler
from app.core.rate_limit import limiter
from app.core.realtime import authenticate_websocket, shop_channel, ws_loop, ws_manager
from app.db.base import Base
from app.db.session import SessionLocal, engine, is_sqlite

APP_VERSION = "1.0.0"

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    import json as _json
    import sys

    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return _json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next):
        import time

        if request.url.path in ["/health", "/", "/docs", "/openapi.json"]:
            return await call_next(request)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"
        session_id = request.headers.get("X-Session-ID", "-")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            request_logger.error(
                f"Error: {request.method} {request.url.path} - "
                f"Exception: {str(e)} - Time: {process_time:.3f}s - Client: {client_ip} - Session: {session_id}"
            )
            raise

        process_time = time.time() - start_time
        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        request_logger.log(
            log_level,
            f"{request.method} {request.url.path} - Status: {response.status_code} - "
            f"Time: {process_time:.3f}s - Client: {client_ip} - Session: {session_id}"
        )
        return response


def _cleanup_expired_sessions() -> int:
    from app.services.session_service import SessionService

    db = SessionLocal()
    try:
        return SessionService(db, redis_cache).cleanup_expired()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Tableside Ordering API")

    # Create tables if they don't exist (for SQLite dev)
    if is_sqlite(settings.database_url):
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (SQLite mode)")

    redis_cache.initialize(settings.redis_url)

    if settings.seed_demo_data:
        from app.db.seed import seed_demo_data

        db = SessionLocal()
        try:
            seed_demo_data(db)
        finally:
            db.close()

    async def _periodic_session_cleanup():
        """Delete expired ordering sessions on a fixed interval."""
        while True:
            try:
                await asyncio.sleep(settings.session_cleanup_interval_seconds)
                deleted = await asyncio.to_thread(_cleanup_expired_sessions)
                if deleted:
                    logger.info(f"Periodic cleanup: {deleted} expired sessions deleted")
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"Periodic session cleanup error: {e}")

    cleanup_task = None
    if settings.session_cleanup_interval_seconds > 0:
        cleanup_task = asyncio.create_task(_periodic_session_cleanup())
        logger.info(
            f"Background session cleanup started "
            f"(every {settings.session_cleanup_interval_seconds}s)"
        )

    yield

    if cleanup_task is not None:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass

    redis_cache.close()
    logger.info("Shutting down Tableside Ordering API")


app = FastAPI(
    title="Tableside Ordering API",
    description="QR table ordering: sessions, menu, cart, orders and desk occupancy",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(OrderingError, ordering_error_handler)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - added last so it runs first (Starlette LIFO order)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Requested-With",
        "X-Session-ID",
        "X-Table-Number",
    ],
    max_age=600,
)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": APP_VERSION}


@app.get("/health/ready")
def readiness_check():
    """Readiness probe with database, cache and WebSocket checks."""
    checks = {
        "database": "unknown",
        "redis": redis_cache.ping(),
        "websocket_manager": f"healthy ({ws_manager.get_connection_count()} connections)",
    }

    db = None
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unhealthy"
    finally:
        if db:
            db.close()

    # The cache is optional; a missing Redis is not a degradation
    all_healthy = all(
        c.startswith("healthy") or c == "not configured"
        for c in checks.values()
    )

    return {
        "status": "ready" if all_healthy else "degraded",
        "version": APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Tableside Ordering API",
        "docs": "/docs",
        "health": "/health",
    }


@app.websocket("/ws/shops/{shop_id}")
async def websocket_shop(
    websocket: WebSocket,
    shop_id: int,
    token: Optional[str] = Query(None),
):
    """Real-time order and desk events for a shop's staff. Requires JWT token."""
    user = await authenticate_websocket(websocket, token, shop_id)
    if user is None:
        return
    await ws_loop(websocket, shop_channel(shop_id), user.user_id)
