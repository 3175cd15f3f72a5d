"""
Unit Tests - Configuration
Tests for application settings and config.
"""
import pytest


class TestSettings:
    """Tests for Settings configuration class."""

    def test_default_app_name(self):
        """Default app name should be set."""
        from investment_tracker.config import Settings
        settings = Settings()
        assert settings.APP_NAME == "Investment Tracker"

    def test_environment_from_env(self):
        """Environment should come from env vars."""
        from investment_tracker.config import Settings
        settings = Settings()
        assert settings.APP_ENV == "testing"

    def test_api_prefix(self):
        """API prefix should be /api/v1."""
        from investment_tracker.config import Settings
        settings = Settings()
        assert settings.API_V1_PREFIX == "/api/v1"

    def test_server_defaults(self):
        """Server configuration should have defaults."""
        from investment_tracker.config import Settings
        settings = Settings()
        assert settings.BACKEND_HOST == "0.0.0.0"
        assert settings.BACKEND_PORT == 8000

    def test_cors_origins_from_comma_list(self):
        """CORS origins accept a comma separated string."""
        from investment_tracker.config import Settings
        settings = Settings(CORS_ORIGINS="http://a.test, http://b.test")
        assert settings.CORS_ORIGINS == ["http://a.test", "http://b.test"]

    def test_cors_origins_from_json(self):
        """CORS origins accept a JSON list."""
        from investment_tracker.config import Settings
        settings = Settings(CORS_ORIGINS='["http://a.test"]')
        assert settings.CORS_ORIGINS == ["http://a.test"]


class TestDatabaseSettings:
    """Tests for database URLs."""

    def test_database_url_from_components(self):
        """Async URL is built from components without DATABASE_URL."""
        from investment_tracker.config import Settings
        settings = Settings(
            DATABASE_URL="",
            POSTGRES_HOST="db",
            POSTGRES_PORT=5433,
            POSTGRES_DB="tracker",
            POSTGRES_USER="user",
            POSTGRES_PASSWORD="pw",
        )
        assert settings.database_url == "postgresql+asyncpg://user:pw@db:5433/tracker"
        assert settings.DATABASE_URL_SYNC == "postgresql://user:pw@db:5433/tracker"

    def test_plain_postgres_url_gets_async_driver(self):
        from investment_tracker.config import Settings
        settings = Settings(DATABASE_URL="postgresql://u:p@h/d")
        assert settings.database_url == "postgresql+asyncpg://u:p@h/d"

    def test_sqlite_sync_url(self):
        from investment_tracker.config import Settings
        settings = Settings(DATABASE_URL="sqlite+aiosqlite:///tracker.db")
        assert settings.DATABASE_URL_SYNC == "sqlite:///tracker.db"


class TestRedisSettings:
    """Tests for Redis URL."""

    def test_redis_url_with_password(self):
        from investment_tracker.config import Settings
        settings = Settings(REDIS_URL="", REDIS_PASSWORD="secret", REDIS_HOST="cache", REDIS_PORT=6380, REDIS_DB=2)
        assert settings.redis_url == "redis://:secret@cache:6380/2"

    def test_explicit_redis_url_wins(self):
        from investment_tracker.config import Settings
        settings = Settings(REDIS_URL="redis://elsewhere:6379/0")
        assert settings.redis_url == "redis://elsewhere:6379/0"


class TestLedgerSettings:
    """Tests for ledger and performance settings."""

    def test_home_currency_normalized(self):
        from investment_tracker.config import Settings
        settings = Settings(DEFAULT_HOME_CURRENCY=" usd ")
        assert settings.DEFAULT_HOME_CURRENCY == "USD"

    def test_cash_check_off_in_tests(self):
        from investment_tracker.config import Settings
        settings = Settings()
        assert settings.ENFORCE_CASH_CHECK is False

    @pytest.mark.parametrize("name", ["XIRR_MAX_ITERATIONS", "XIRR_TOLERANCE", "PERFORMANCE_CACHE_TTL"])
    def test_performance_settings_positive(self, name):
        from investment_tracker.config import Settings
        assert getattr(Settings(), name) > 0
