"""Unit tests for AppConfig and logging setup."""
import logging
import os

import pytest

from meetup.config import AppConfig
from meetup.logging_config import configure_logging

ENV_VARS = [
    "DATABASE_URL", "POLL_INTERVAL_MS", "STREAM_QUEUE_SIZE", "LOG_DIR",
    "LOG_LEVEL", "API_HOST", "API_PORT", "ENV",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run with none of our variables set and no .env file in reach."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestLoadFromEnv:
    """Test AppConfig.load_from_env."""

    def test_defaults(self, clean_env):
        config = AppConfig.load_from_env()

        assert config.database_url == "sqlite:///./data/meetup.db"
        assert config.poll_interval_ms == 3000
        assert config.poll_interval == 3.0
        assert config.env == "dev"

    def test_overrides(self, clean_env):
        clean_env.setenv("DATABASE_URL", "sqlite:///./other.db")
        clean_env.setenv("POLL_INTERVAL_MS", "500")
        clean_env.setenv("API_PORT", "9000")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("ENV", "PROD")

        config = AppConfig.load_from_env()

        assert config.database_url == "sqlite:///./other.db"
        assert config.poll_interval == 0.5
        assert config.api_port == 9000
        assert config.log_level == "DEBUG"
        assert config.env == "prod"

    def test_dotenv_file_is_read(self, clean_env, tmp_path):
        (tmp_path / ".env").write_text("POLL_INTERVAL_MS=1500\n", encoding="utf-8")
        try:
            assert AppConfig.load_from_env().poll_interval_ms == 1500
        finally:
            os.environ.pop("POLL_INTERVAL_MS", None)

    def test_invalid_env_falls_back_to_dev(self, clean_env):
        clean_env.setenv("ENV", "staging")
        assert AppConfig.load_from_env().env == "dev"

    def test_invalid_log_level_falls_back_to_info(self, clean_env, caplog):
        clean_env.setenv("LOG_LEVEL", "verbose")

        with caplog.at_level(logging.WARNING, logger="meetup.config"):
            config = AppConfig.load_from_env()

        assert config.log_level == "INFO"
        assert "Invalid LOG_LEVEL 'VERBOSE'" in caplog.text

    @pytest.mark.parametrize("level", ["debug", "Warning", "CRITICAL"])
    def test_valid_log_levels_kept(self, clean_env, level):
        clean_env.setenv("LOG_LEVEL", level)
        assert AppConfig.load_from_env().log_level == level.upper()

    def test_invalid_integer_raises(self, clean_env):
        clean_env.setenv("API_PORT", "eighty")
        with pytest.raises(RuntimeError, match="API_PORT"):
            AppConfig.load_from_env()

    def test_invalid_integer_hides_parse_error(self, clean_env):
        """Test the RuntimeError is raised without the int() traceback chained on."""
        clean_env.setenv("STREAM_QUEUE_SIZE", "lots")
        with pytest.raises(RuntimeError) as excinfo:
            AppConfig.load_from_env()

        assert excinfo.value.__cause__ is None
        assert excinfo.value.__suppress_context__ is True

    def test_non_positive_interval_raises(self, clean_env):
        clean_env.setenv("POLL_INTERVAL_MS", "0")
        with pytest.raises(RuntimeError, match="POLL_INTERVAL_MS"):
            AppConfig.load_from_env()


class TestConfigureLogging:
    """Test configure_logging."""

    def test_creates_log_file_once(self, tmp_path):
        config = AppConfig(log_dir=str(tmp_path / "logs"))
        root = logging.getLogger()
        before = list(root.handlers)
        try:
            log_file = configure_logging(config)
            count = len(root.handlers)
            configure_logging(config)

            assert os.path.exists(log_file)
            assert len(root.handlers) == count
        finally:
            for handler in list(root.handlers):
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()
