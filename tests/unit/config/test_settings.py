"""Tests for Settings loaded from the environment."""

import pytest
from pydantic import ValidationError

from solwatch.config.settings import Settings, get_settings


class TestSettings:
    def test_defaults(self) -> None:
        """
        Given: Only the required Supabase variables are set
        When: Settings are loaded
        Then: Defaults match the documented values
        """
        settings = get_settings()

        assert settings.app_name == "Solwatch"
        assert settings.redis_url == ""
        assert settings.ingest_batch_size == 200
        assert settings.ingest_concurrency == 10
        assert settings.processed_marker_ttl_seconds == 60
        assert settings.dust_threshold_sol == 0.001
        assert settings.price_cache_ttl_seconds == 30
        assert settings.price_sources == ["pools", "dexscreener", "jupiter"]

    def test_secret_key_is_not_rendered(self) -> None:
        settings = get_settings()

        assert "test-key" not in repr(settings)
        assert settings.supabase_key.get_secret_value() == "test-key"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("INGEST_CONCURRENCY", "4")
        monkeypatch.setenv("PRICE_SOURCES", '["jupiter"]')

        settings = get_settings()

        assert settings.ingest_concurrency == 4
        assert settings.price_sources == ["jupiter"]

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("supabase_url", "localhost:54321"),
            ("solana_ws_url", "https://api.mainnet-beta.solana.com"),
            ("redis_url", "http://localhost:6379"),
        ],
    )
    def test_invalid_urls_rejected(self, field: str, value: str) -> None:
        with pytest.raises(ValidationError):
            Settings(**{field: value})

    def test_concurrency_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Settings(ingest_concurrency=0)
