"""
Tests for environment-backed configuration.
"""

from inbox_unsubscriber.config.settings import (
    CacheConfig,
    ClassifierConfig,
    Config,
    RateLimitConfig,
    ScanConfig,
)


class TestConfig:
    """Path resolution and typed config factories."""

    def test_relative_sqlite_path_goes_to_data_dir(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DATA_DIR", str(tmp_path))
        monkeypatch.setattr(Config, "DATABASE_URL", "sqlite:///app.db")

        assert Config.get_database_path() == f"sqlite:///{tmp_path / 'app.db'}"

    def test_non_sqlite_url_unchanged(self, monkeypatch):
        monkeypatch.setattr(Config, "DATABASE_URL", "postgresql://db/app")

        assert Config.get_database_path() == "postgresql://db/app"

    def test_token_path_in_data_dir(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DATA_DIR", str(tmp_path))
        monkeypatch.setattr(Config, "GMAIL_TOKEN_PATH", "token.json")

        assert Config.get_token_path() == tmp_path / "token.json"

    def test_classifier_config_from_env(self, monkeypatch):
        monkeypatch.setattr(Config, "OPENAI_API_KEY", None)
        monkeypatch.setattr(Config, "AI_MODEL", "gpt-4o-mini")

        config = ClassifierConfig.from_env()

        assert config.has_credentials is False
        assert config.model == "gpt-4o-mini"
        assert config.retry_delays == (2.0, 4.0, 8.0)

    def test_scan_config_from_env(self, monkeypatch):
        monkeypatch.setattr(Config, "AI_BATCH_SIZE", 4)
        monkeypatch.setattr(Config, "MAX_NEW_MESSAGES", 25)

        config = ScanConfig.from_env()

        assert config.batch_size == 4
        assert config.max_new_messages == 25
        assert len(config.discovery_queries) == 5

    def test_rate_limit_from_env(self, monkeypatch):
        monkeypatch.setattr(Config, "REQUESTS_PER_SECOND", 3)

        assert RateLimitConfig.from_env().requests_per_second == 3

    def test_cache_defaults(self):
        defaults = CacheConfig.defaults()

        assert defaults["message"] == CacheConfig(ttl=3600, max_keys=1000)
        assert defaults["search"] == CacheConfig(ttl=1800, max_keys=100)
        assert defaults["domain"] == CacheConfig(ttl=7200, max_keys=500)
