"""Root test configuration."""

import logging

import pytest
import structlog

from promtestgen.config.settings import get_settings


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep PROMTESTGEN_* variables and .env files out of every test."""
    for var in ("URL", "TOKEN_FILE", "CA_FILE", "INSECURE", "TIMEOUT", "LOG_LEVEL"):
        monkeypatch.delenv(f"PROMTESTGEN_{var}", raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def keep_test_logging(monkeypatch):
    """Stop CLI runs from replacing the test logging configuration."""
    monkeypatch.setattr("promtestgen.cli.main.configure_logging", lambda level: None)
