"""
Configuration settings for the inbox unsubscriber.

Environment-driven defaults live on ``Config``; the typed dataclasses below
are what the pipeline components actually receive in their constructors.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional


class Config:
    """Configuration settings."""

    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///inbox_unsubscriber.db')

    # Message provider settings
    GMAIL_TOKEN_PATH = os.getenv('GMAIL_TOKEN_PATH', 'token.json')
    DISCOVERY_MAX_RESULTS = int(os.getenv('DISCOVERY_MAX_RESULTS', '50'))
    MAX_NEW_MESSAGES = int(os.getenv('MAX_NEW_MESSAGES', '100'))

    # Classification settings
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    AI_MODEL = os.getenv('AI_MODEL', 'gpt-3.5-turbo')
    AI_MAX_TOKENS = int(os.getenv('AI_MAX_TOKENS', '300'))
    AI_TEMPERATURE = float(os.getenv('AI_TEMPERATURE', '0.1'))
    AI_BATCH_SIZE = int(os.getenv('AI_BATCH_SIZE', '10'))
    AI_BATCH_DELAY = float(os.getenv('AI_BATCH_DELAY', '1.0'))
    REQUESTS_PER_SECOND = int(os.getenv('REQUESTS_PER_SECOND', '10'))

    # Domain expansion settings
    EXPANSION_CONCURRENCY = int(os.getenv('EXPANSION_CONCURRENCY', '3'))
    EXPANSION_MAX_RESULTS = int(os.getenv('EXPANSION_MAX_RESULTS', '500'))

    # Unsubscribe settings
    REQUEST_TIMEOUT = int(os.getenv('REQUEST_TIMEOUT', '30'))
    USER_AGENT = os.getenv('USER_AGENT', 'Inbox Unsubscriber/1.0')

    # Cache settings
    MEMORY_THRESHOLD_MB = int(os.getenv('MEMORY_THRESHOLD_MB', '500'))
    CACHE_SWEEP_INTERVAL = float(os.getenv('CACHE_SWEEP_INTERVAL', '60'))
    ANALYSIS_CACHE_DAYS = int(os.getenv('ANALYSIS_CACHE_DAYS', '7'))

    @classmethod
    def get_data_dir(cls) -> Path:
        """Get the data directory for storing database and tokens."""
        data_dir = Path(os.getenv('DATA_DIR', Path.cwd() / 'data'))
        data_dir.mkdir(exist_ok=True)
        return data_dir

    @classmethod
    def get_database_path(cls) -> str:
        """Get the full database URL, resolving relative sqlite paths into the data dir."""
        if cls.DATABASE_URL.startswith('sqlite:///'):
            db_file = cls.DATABASE_URL[10:]
            if not os.path.isabs(db_file):
                db_path = cls.get_data_dir() / db_file
                return f"sqlite:///{db_path}"
        return cls.DATABASE_URL

    @classmethod
    def get_token_path(cls) -> Path:
        """Get the path to the provider OAuth token file."""
        path = Path(cls.GMAIL_TOKEN_PATH)
        if not path.is_absolute():
            path = cls.get_data_dir() / path
        return path


@dataclass(frozen=True)
class RateLimitConfig:
    """Request window and backoff settings for external calls."""

    requests_per_second: int = 10
    retry_delay: float = 1.0
    backoff_multiplier: float = 2.0
    max_backoff_delay: float = 30.0
    max_retries: int = 3
    # Adaptive spacing between consecutive calls
    initial_request_delay: float = 1.0
    min_request_delay: float = 0.5
    max_request_delay: float = 5.0
    ease_factor: float = 0.9
    grow_factor: float = 1.5

    def backoff_delay(self, failure_count: int) -> float:
        """Delay imposed after ``failure_count`` consecutive failures."""
        if failure_count <= 0:
            return 0.0
        return min(self.retry_delay * self.backoff_multiplier ** failure_count,
                   self.max_backoff_delay)

    @classmethod
    def from_env(cls) -> 'RateLimitConfig':
        return cls(requests_per_second=Config.REQUESTS_PER_SECOND)


@dataclass(frozen=True)
class CacheConfig:
    """TTL (seconds) and key ceiling for one cache namespace."""

    ttl: float
    max_keys: int

    @classmethod
    def defaults(cls) -> Dict[str, 'CacheConfig']:
        """Per-namespace defaults: message, search, domain, classification."""
        return {
            'message': cls(ttl=3600, max_keys=1000),
            'search': cls(ttl=1800, max_keys=100),
            'domain': cls(ttl=7200, max_keys=500),
            'classification': cls(ttl=14400, max_keys=200),
        }


@dataclass(frozen=True)
class ClassifierConfig:
    """External classification call settings."""

    api_key: Optional[str] = None
    model: str = 'gpt-3.5-turbo'
    temperature: float = 0.1
    max_tokens: int = 300
    retry_delays: tuple = (2.0, 4.0, 8.0)

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> 'ClassifierConfig':
        return cls(
            api_key=Config.OPENAI_API_KEY,
            model=Config.AI_MODEL,
            temperature=Config.AI_TEMPERATURE,
            max_tokens=Config.AI_MAX_TOKENS,
        )


@dataclass(frozen=True)
class ScanConfig:
    """Bulk scan batching and bounds."""

    discovery_queries: tuple = (
        'in:inbox unsubscribe',
        'in:inbox from:noreply',
        'in:inbox from:newsletter',
        'in:inbox subject:newsletter',
        'in:inbox subject:promotional',
    )
    discovery_max_results: int = 50
    max_new_messages: int = 100
    batch_size: int = 10
    batch_delay: float = 1.0
    expansion_concurrency: int = 3
    expansion_max_results: int = 500
    cache_sweep_interval: float = 60.0

    @classmethod
    def from_env(cls) -> 'ScanConfig':
        return cls(
            discovery_max_results=Config.DISCOVERY_MAX_RESULTS,
            max_new_messages=Config.MAX_NEW_MESSAGES,
            batch_size=Config.AI_BATCH_SIZE,
            batch_delay=Config.AI_BATCH_DELAY,
            expansion_concurrency=Config.EXPANSION_CONCURRENCY,
            expansion_max_results=Config.EXPANSION_MAX_RESULTS,
            cache_sweep_interval=Config.CACHE_SWEEP_INTERVAL,
        )


@dataclass(frozen=True)
class ResolverConfig:
    """HTTP settings used by the unsubscribe strategies."""

    timeout: int = 30
    user_agent: str = 'Inbox Unsubscriber/1.0'

    @classmethod
    def from_env(cls) -> 'ResolverConfig':
        return cls(timeout=Config.REQUEST_TIMEOUT, user_agent=Config.USER_AGENT)

