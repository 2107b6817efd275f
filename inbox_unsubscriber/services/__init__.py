"""
Shared services: cache layer and rate limiter.
"""

from .cache import CacheService, TTLStore, CacheEntry, MISS
from .rate_limiter import RateLimiter

__all__ = ['CacheService', 'TTLStore', 'CacheEntry', 'MISS', 'RateLimiter']
