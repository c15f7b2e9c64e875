import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING

import redis.asyncio as redis

from articles_api.config import settings
from articles_api.models import isoformat_utc

if TYPE_CHECKING:
    from articles_api.dependencies import ArticleListParams

logger = logging.getLogger(__name__)

ARTICLE_DETAIL_PREFIX = "article:"
ARTICLE_LIST_PREFIX = "articles:list"


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def article_detail_key(article_id) -> str:
    """Per-entity key for a single article snapshot."""
    return f"{ARTICLE_DETAIL_PREFIX}{article_id}"


def _key_timestamp(value: datetime) -> str:
    # Naive values count as UTC, offsets are folded into UTC.
    return isoformat_utc(value)


def article_list_key(params: "ArticleListParams") -> str:
    """
    Build the list-cache key from normalised query parameters.

    Segments are labelled and emitted in a fixed order: pagination and
    sort always, then each filter only when present.  Two logically equal
    queries therefore share a key and any differing dimension changes it.
    """
    parts = [
        ARTICLE_LIST_PREFIX,
        f"page:{params.page}",
        f"limit:{params.limit}",
        f"sort:{params.sort_by}:{params.sort_order}",
    ]
    if params.author_id is not None:
        parts.append(f"author:{params.author_id}")
    if params.published_from is not None:
        parts.append(f"from:{_key_timestamp(params.published_from)}")
    if params.published_to is not None:
        parts.append(f"to:{_key_timestamp(params.published_to)}")
    return ":".join(parts)


class CacheManager:
    """
    Read-through cache manager backed by Redis.

    All public methods are safe to call even when Redis is unavailable:
    read operations behave like a miss and write operations are skipped,
    so requests fall back to the database instead of failing.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, serving from database only: %s", exc)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss / error."""
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
            value = json.loads(data) if data is not None else None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None
        if value is None:
            self._misses += 1
            logger.debug("Cache MISS key=%r", key)
            return None
        self._hits += 1
        logger.debug("Cache HIT key=%r", key)
        return value

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        """
        Persist *value* under *key* with an optional TTL (seconds).

        Failures are logged and never propagated.
        """
        if not self._redis:
            return
        try:
            serialised = json.dumps(value, default=str)
            await self._redis.set(key, serialised, ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete(self, key: str) -> None:
        if not self._redis:
            return
        try:
            await self._redis.delete(key)
        except Exception as exc:
            logger.warning("Cache DELETE error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """
        Delete all keys matching *pattern* using SCAN (avoids blocking KEYS).
        """
        if not self._redis:
            return
        try:
            keys: list[str] = []
            async for key in self._redis.scan_iter(match=pattern):
                keys.append(key)
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except Exception as exc:
            logger.warning("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    async def clear(self) -> None:
        """Drop every entry in the configured Redis database."""
        if not self._redis:
            return
        try:
            await self._redis.flushdb()
            logger.info("Cache cleared")
        except Exception as exc:
            logger.warning("Cache CLEAR error: %s", exc)

    # ------------------------------------------------------------------
    # Domain-level invalidation helpers
    # ------------------------------------------------------------------

    async def invalidate_article(self, article_id=None) -> None:
        """
        Invalidate article caches after a write.

        Every list page is purged because any of them may contain (or now
        omit) the written article.  When *article_id* is provided the
        detail entry for that article is removed as well.
        """
        await self.delete_pattern(f"{ARTICLE_LIST_PREFIX}:*")
        if article_id is not None:
            await self.delete(article_detail_key(article_id))

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict:
        """Return a snapshot of hit/miss counters for the health endpoint."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


# Module-level instance shared by the application; reach it through get_cache().
cache = CacheManager()


def get_cache() -> CacheManager:
    """FastAPI dependency returning the process-wide cache manager."""
    return cache
