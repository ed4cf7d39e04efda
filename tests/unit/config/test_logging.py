"""Tests for structlog configuration."""

import logging
from collections.abc import Generator

import pytest
import structlog

from solwatch.config.logging import NOISY_LOGGERS, configure_logging


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.mark.unit
class TestConfigureLogging:
    def test_binds_service_context(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_VERSION", "2.3.4")

        configure_logging()

        context = structlog.contextvars.get_contextvars()
        assert context == {"service": "solwatch", "version": "2.3.4"}

    def test_noisy_loggers_capped_at_warning(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        configure_logging()

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
