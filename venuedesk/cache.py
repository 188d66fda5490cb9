"""
Redis render cache for the read endpoints.

Rendered JSON bodies are stored under their request path and grouped by tags
(e.g. "bookings", "booking:<id>") so a status update or an explicit
revalidation can drop every render that mentions an entity.
Reads fail open: when Redis is down the endpoints simply render fresh.
"""

import json
import logging
import time
from typing import Any, Callable, Iterable, Mapping, Optional

import redis

from .config import (
    REDIS_DB,
    REDIS_HOST,
    REDIS_PASSWORD,
    REDIS_PORT,
    REDIS_URL,
    RENDER_CACHE_TTL_SECONDS,
)

logger = logging.getLogger(__name__)

RENDER_PREFIX = "render:"
TAG_PREFIX = "render-tag:"

# Seconds to wait before trying to reconnect after a failed connection
RECONNECT_BACKOFF_SECONDS = 30

redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """
    Get or create the Redis client.
    Supports a REDIS_URL (managed Redis) or individual host settings.
    """
    global redis_client

    if redis_client is None:
        logger.info("🔄 Initializing Redis connection for render cache...")

        if REDIS_URL:
            if "@" in REDIS_URL:
                url_parts = REDIS_URL.split("@")
                protocol = url_parts[0].split(":")[0]
                masked_url = f"{protocol}:****@{url_parts[1]}"
            else:
                masked_url = "****"
            logger.info(f"📡 Using Redis URL connection: {masked_url}")
            client = redis.from_url(
                REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        else:
            client = redis.Redis(
                host=REDIS_HOST,
                port=REDIS_PORT,
                password=REDIS_PASSWORD,
                db=REDIS_DB,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )

        client.ping()
        redis_client = client
        logger.info("Redis connected successfully")

    return redis_client


def render_key(path: str) -> str:
    return f"{RENDER_PREFIX}{path}"


def glob_escape(value: str) -> str:
    """Make glob metacharacters literal for KEYS patterns"""
    return "".join(f"[{c}]" if c in "*?[" else c for c in value)


class RenderCache:
    """Redis-backed render cache with tag based invalidation"""

    def __init__(self, client: Optional[redis.Redis] = None, ttl: int = RENDER_CACHE_TTL_SECONDS):
        self.redis_client = client
        self.ttl = ttl
        self._retry_after = 0.0

    def _get_client(self) -> Optional[redis.Redis]:
        """Lazy load Redis client, backing off after a failed attempt"""
        if self.redis_client is None:
            if time.monotonic() < self._retry_after:
                return None
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                self._retry_after = time.monotonic() + RECONNECT_BACKOFF_SECONDS
                logger.warning(f"⚠️ Render cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, path: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        key = render_key(path)
        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, path: str, value: Any, tags: Iterable[str] = ()) -> bool:
        """Store a render and register it under each tag"""
        client = self._get_client()
        if not client:
            return False

        key = render_key(path)
        try:
            client.setex(key, self.ttl, json.dumps(value, default=str))
            for tag in tags:
                tag_key = f"{TAG_PREFIX}{tag}"
                client.sadd(tag_key, key)
                client.expire(tag_key, self.ttl)
            logger.debug(f"✅ Cache SET: {key} (TTL: {self.ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def invalidate_path(self, path: str) -> int:
        """Drop the render for a path, including its query-string variants"""
        client = self._get_client()
        if not client:
            return 0

        key = render_key(path)
        keys = [key] + list(client.keys(f"{glob_escape(key)}[?]*"))
        deleted = client.delete(*keys)
        logger.info(f"🧹 Revalidated path {path} ({deleted} renders)")
        return deleted

    def invalidate_tag(self, tag: str) -> int:
        """Drop every render registered under a tag"""
        client = self._get_client()
        if not client:
            return 0

        tag_key = f"{TAG_PREFIX}{tag}"
        keys = list(client.smembers(tag_key))
        deleted = client.delete(*keys) if keys else 0
        client.delete(tag_key)
        logger.info(f"🧹 Revalidated tag {tag} ({deleted} renders)")
        return deleted


def bypasses_render_cache(headers: Mapping[str, str]) -> bool:
    """True for reads that asked for no-cache; the control's refresh always does"""
    cache_control = headers.get("cache-control", "").lower()
    pragma = headers.get("pragma", "").lower()
    return "no-cache" in cache_control or "no-store" in cache_control or pragma == "no-cache"


def get_or_render(
    cache: RenderCache,
    path: str,
    tags: Iterable[str],
    render: Callable[[], Any],
    fresh: bool = False,
) -> Any:
    """
    Serve a cached render for `path`, or build it with `render` and cache it.
    With `fresh` the cache is neither read nor written: a render that started
    before a concurrent update could otherwise be stored after the purge.
    """
    if fresh:
        return render()

    cached_value = cache.get(path)
    if cached_value is not None:
        return cached_value

    value = render()
    if value is not None:
        cache.set(path, value, tags)
    return value


# Global cache instance
render_cache = RenderCache()


def get_render_cache() -> RenderCache:
    """Dependency hook so tests can swap the cache"""
    return render_cache
