"""
Configuration module.
"""

from .settings import (
    Config, RateLimitConfig, CacheConfig,
    ClassifierConfig, ScanConfig, ResolverConfig
)

__all__ = [
    'Config', 'RateLimitConfig', 'CacheConfig',
    'ClassifierConfig', 'ScanConfig', 'ResolverConfig'
]
