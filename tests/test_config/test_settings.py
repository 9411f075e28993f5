"""Tests for environment-based settings."""

from disclosure_crawler.config.settings import Settings, get_settings


class TestSettings:
    """Defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        for name in ("MAX_HTTP_RETRIES", "SOURCE_TIMEOUT_SECONDS", "MOPS_BASE_URL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.max_http_retries == 0
        assert settings.source_timeout_seconds == 30.0
        assert settings.mops_base_url == "https://mopsov.twse.com.tw"
        assert settings.is_production is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SOURCE_TIMEOUT_SECONDS", "12.5")
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("DATABASE_URL", "postgresql://crawler:secret@db:5432/disclosures")

        settings = Settings(_env_file=None)

        assert settings.source_timeout_seconds == 12.5
        assert settings.is_production is True
        assert settings.database_url.hosts()[0]["host"] == "db"

    def test_get_settings_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()
