"""
Redis Caching Layer

This module caches room reads, which are by far the most frequent
requests of the booking frontend.

Features:
- Room list and room detail caching
- TTL-based expiration
- Invalidation by prefix whenever a room changes

Cache failures never fail a request: errors are logged and the
caller falls back to the database.
"""

import hashlib
import json
import logging
import os
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() == "true"

redis_client = redis.Redis(
    host=os.getenv('REDIS_HOST', 'localhost'),
    port=int(os.getenv('REDIS_PORT', 6379)),
    db=int(os.getenv('REDIS_CACHE_DB', 1)),
    decode_responses=True,
    socket_connect_timeout=1,
)

CACHE_TTL = {
    "room": 300,           # 5 minutes
}


def generate_cache_key(prefix: str, *args, **kwargs) -> str:
    """
    Generate unique cache key from function arguments.

    Args:
        prefix: Cache key prefix (e.g., "room")
        *args: Positional arguments
        **kwargs: Keyword arguments

    Returns:
        str: Cache key of the form cache:<prefix>:<hash>
    """
    key_parts = [prefix]

    for arg in args:
        key_parts.append(str(arg))

    for k, v in sorted(kwargs.items()):
        key_parts.append(f"{k}={v}")

    key_string = ":".join(key_parts)
    key_hash = hashlib.md5(key_string.encode()).hexdigest()[:16]

    return f"cache:{prefix}:{key_hash}"


def invalidate_cache(cache_type: str, *args, **kwargs) -> bool:
    """
    Invalidate specific cache entry.

    Example:
        invalidate_cache("room", room_id=1)
    """
    if not CACHE_ENABLED:
        return False
    try:
        redis_client.delete(generate_cache_key(cache_type, *args, **kwargs))
        return True
    except Exception as e:
        logger.warning(f"Cache invalidation error: {e}")
        return False


def invalidate_cache_pattern(pattern: str) -> int:
    """
    Invalidate all cache entries of a prefix.

    Args:
        pattern: Cache prefix (e.g., "room")

    Returns:
        int: Number of keys deleted
    """
    if not CACHE_ENABLED:
        return 0
    try:
        keys = list(redis_client.scan_iter(match=f"cache:{pattern}:*"))
        if keys:
            return redis_client.delete(*keys)
        return 0
    except Exception as e:
        logger.warning(f"Pattern invalidation error: {e}")
        return 0


def get_cache_stats() -> dict:
    """
    Get cache statistics.

    Returns:
        dict: Key count, memory usage and hit rate
    """
    if not CACHE_ENABLED:
        return {"enabled": False}
    try:
        info = redis_client.info()
        hits = info.get('keyspace_hits', 0)
        misses = info.get('keyspace_misses', 0)
        hit_rate = (hits / (hits + misses)) * 100 if hits + misses > 0 else 0

        return {
            "enabled": True,
            "total_keys": redis_client.dbsize(),
            "memory_used": info.get('used_memory_human', 'N/A'),
            "hit_rate_percent": round(hit_rate, 2),
            "hits": hits,
            "misses": misses,
        }
    except Exception as e:
        return {"enabled": True, "error": str(e)}


class CacheManager:
    """
    Context manager for cache operations of one cache type.

    Example:
        with CacheManager("room") as cache:
            data = cache.get(room_id=1)
            if data is None:
                data = fetch_from_db()
                cache.set(data, room_id=1)
    """

    def __init__(self, cache_type: str):
        self.cache_type = cache_type
        self.client = redis_client

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        pass

    def get(self, **kwargs) -> Optional[Any]:
        """Get JSON data from cache, None on a miss or error."""
        if not CACHE_ENABLED:
            return None
        try:
            cached_data = self.client.get(generate_cache_key(self.cache_type, **kwargs))
            if cached_data:
                return json.loads(cached_data)
        except Exception as e:
            logger.warning(f"Cache get error: {e}")
        return None

    def set(self, data: Any, ttl: Optional[int] = None, **kwargs) -> bool:
        """Store JSON-serializable data; datetimes are stored as ISO strings."""
        if not CACHE_ENABLED:
            return False
        try:
            cache_key = generate_cache_key(self.cache_type, **kwargs)
            cache_ttl = ttl or CACHE_TTL.get(self.cache_type, 300)
            self.client.setex(cache_key, cache_ttl, json.dumps(data, default=_isoformat))
            return True
        except Exception as e:
            logger.warning(f"Cache set error: {e}")
            return False

    def delete(self, **kwargs) -> bool:
        return invalidate_cache(self.cache_type, **kwargs)


def _isoformat(value):
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    raise TypeError(f"{type(value).__name__} is not JSON serializable")
