"""
Best-effort caching for sessions and menu reads.

Redis is used when REDIS_URL is configured and reachable; otherwise every call
degrades to an in-memory TTL cache. No caller may depend on the cache for
correctness: a failure is always treated as a miss.
"""
from typing import Optional, Any
from datetime import datetime, timedelta
import json
import logging

logger = logging.getLogger(__name__)


class SimpleCache:
    """In-memory cache with TTL support and size limit."""

    MAX_ENTRIES = 10000  # Prevent unbounded memory growth

    def __init__(self):
        self._cache: dict = {}
        self._expiry: dict = {}

    def _evict_expired(self):
        """Remove expired entries to reclaim memory."""
        now = datetime.now()
        expired = [k for k, exp in self._expiry.items() if exp <= now]
        for k in expired:
            self._cache.pop(k, None)
            self._expiry.pop(k, None)

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        if key in self._cache:
            if datetime.now() < self._expiry.get(key, datetime.min):
                return self._cache[key]
            del self._cache[key]
            del self._expiry[key]
        return None

    def set(self, key: str, value: Any, ttl_seconds: int = 300):
        """Set value in cache with TTL."""
        if len(self._cache) >= self.MAX_ENTRIES:
            self._evict_expired()
        if len(self._cache) >= self.MAX_ENTRIES:
            oldest_keys = sorted(self._expiry, key=self._expiry.get)[:100]
            for k in oldest_keys:
                self._cache.pop(k, None)
                self._expiry.pop(k, None)
        self._cache[key] = value
        self._expiry[key] = datetime.now() + timedelta(seconds=ttl_seconds)

    def delete(self, key: str):
        """Delete key from cache."""
        self._cache.pop(key, None)
        self._expiry.pop(key, None)

    def clear_prefix(self, prefix: str):
        """Clear all keys with given prefix."""
        keys_to_delete = [k for k in self._cache.keys() if k.startswith(prefix)]
        for key in keys_to_delete:
            self.delete(key)

    def clear(self):
        """Clear entire cache."""
        self._cache.clear()
        self._expiry.clear()


class RedisCacheClient:
    """Redis-backed cache with in-memory fallback.

    Values are stored as JSON, so callers get back plain dicts/lists rather
    than the objects they stored.
    """

    def __init__(self, fallback: Optional[SimpleCache] = None):
        self._redis = None
        self._fallback = fallback if fallback is not None else SimpleCache()

    @property
    def backend(self) -> str:
        return "redis" if self._redis else "memory"

    def initialize(self, redis_url: str | None = None):
        if redis_url:
            try:
                import redis
                self._redis = redis.from_url(
                    redis_url, socket_connect_timeout=2, decode_responses=True,
                )
                self._redis.ping()
                logger.info("Redis cache connected")
            except Exception as e:
                logger.warning(f"Redis unavailable, using memory cache: {e}")
                self._redis = None

    def close(self):
        if self._redis:
            try:
                self._redis.close()
            except Exception as e:
                logger.debug(f"Redis close failed: {e}")
            self._redis = None

    def get(self, key: str) -> Any | None:
        try:
            if self._redis:
                val = self._redis.get(key)
                return json.loads(val) if val else None
        except Exception as e:
            logger.debug(f"Redis get failed for {key}, using memory cache: {e}")
        return self._fallback.get(key)

    def set(self, key: str, value: Any, ttl_seconds: int = 300):
        # Round-trip through JSON so both backends hand back the same shapes
        serialized = json.dumps(value, default=str)
        try:
            if self._redis:
                self._redis.setex(key, ttl_seconds, serialized)
                return
        except Exception as e:
            logger.debug(f"Redis set failed for {key}, using memory cache: {e}")
        self._fallback.set(key, json.loads(serialized), ttl_seconds)

    def delete(self, key: str):
        try:
            if self._redis:
                self._redis.delete(key)
                return
        except Exception as e:
            logger.debug(f"Redis delete failed for {key}, using memory cache: {e}")
        self._fallback.delete(key)

    def invalidate_pattern(self, pattern: str):
        try:
            if self._redis:
                cursor = 0
                while True:
                    cursor, keys = self._redis.scan(cursor, match=pattern, count=100)
                    if keys:
                        self._redis.delete(*keys)
                    if cursor == 0:
                        break
                return
        except Exception as e:
            logger.debug(f"Redis scan failed for {pattern}, using memory cache: {e}")
        prefix = pattern.replace("*", "")
        self._fallback.clear_prefix(prefix)

    def ping(self) -> str:
        """Report backend health for readiness checks."""
        if not self._redis:
            return "not configured"
        try:
            self._redis.ping()
            return "healthy"
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return "unhealthy"


redis_cache = RedisCacheClient()


def get_cache() -> RedisCacheClient:
    """FastAPI dependency returning the process-wide cache handle."""
    return redis_cache


class CacheKeys:
    SESSION = "session"
    CATEGORIES = "categories"
    MENU_ITEMS = "menu_items"

    @staticmethod
    def session(session_id: str) -> str:
        return f"{CacheKeys.SESSION}:{session_id}"

    @staticmethod
    def categories(shop_id: int) -> str:
        return f"{CacheKeys.CATEGORIES}:{shop_id}"

    @staticmethod
    def menu_items(shop_id: int, category_id: Optional[int] = None) -> str:
        return f"{CacheKeys.MENU_ITEMS}:{shop_id}:{category_id if category_id is not None else 'all'}"
