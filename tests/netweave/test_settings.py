from __future__ import annotations

import logging

import pytest

from netweave.environment import Environment, get_current_env, set_current_env
from netweave.log import configure_logging
from netweave.settings import Settings, get_settings, reset_settings


class TestSettings:
    def test_testing_environment_is_active(self):
        assert get_current_env() is Environment.TESTING
        assert get_settings().env is Environment.TESTING
        assert get_settings() is get_settings()

    def test_dotenv_filenames(self):
        assert Environment.DEVELOPMENT.dotenv_filename == ".env"
        assert Environment.TESTING.dotenv_filename == ".env.testing"

    def test_unknown_environment_is_rejected(self):
        with pytest.raises(ValueError):
            set_current_env("staging")
        assert get_current_env() is Environment.TESTING

    def test_nested_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("NETWEAVE_INGEST__MAX_STATIC_FILE_MB", "1")
        reset_settings()
        try:
            settings = get_settings()
            assert settings.ingest.max_static_file_mb == 1
            assert settings.max_static_file_bytes == 1024 * 1024
        finally:
            monkeypatch.delenv("NETWEAVE_INGEST__MAX_STATIC_FILE_MB")
            reset_settings()

    def test_configure_logging(self):
        settings = Settings(app={"log_level": "DEBUG"})
        logger = configure_logging(settings)
        assert logger.name == "netweave"
        assert logger.level == logging.DEBUG
        logger.setLevel(logging.NOTSET)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
