"""
Caching helpers for expensive aggregate queries
Backed by whatever Django cache is configured (Redis in production)
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
INSIGHTS_CACHE_TTL = 60
DASHBOARD_CACHE_TTL = 60

INSIGHTS_CACHE_PREFIX = 'insights'
DASHBOARD_CACHE_PREFIX = 'dashboard'


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=60, key_prefix="insights")
        def build_insights():
            # expensive aggregation here
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
        return wrapper
    return decorator


def invalidate_insights_cache():
    """Drop cached insights and dashboard aggregates"""
    try:
        cache.delete_many([
            make_cache_key(INSIGHTS_CACHE_PREFIX),
            make_cache_key(DASHBOARD_CACHE_PREFIX),
        ])
        logger.debug("Invalidated insights cache")
    except Exception as e:
        logger.warning(f"Could not invalidate insights cache: {str(e)}")
