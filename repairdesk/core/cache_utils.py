"""
Caching utilities for expensive dashboard queries
Uses Redis (django-redis) when configured, any Django cache backend otherwise
"""
from django.conf import settings
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
SERVICE_STATS_CACHE_TTL = 300  # 5 minutes
CATALOG_STATS_CACHE_TTL = 600  # 10 minutes


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=120, key_prefix="service_stats")
        def get_service_stats(scope):
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result

        wrapper.cache_key = lambda *args, **kwargs: make_cache_key(key_prefix, *args, **kwargs)
        return wrapper
    return decorator


def uses_redis():
    backend = settings.CACHES.get('default', {}).get('BACKEND', '')
    return backend.startswith('django_redis')


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Note: This requires Redis with SCAN command support
    """
    if not uses_redis():
        return False
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")

        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
        return True
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")
        return False
