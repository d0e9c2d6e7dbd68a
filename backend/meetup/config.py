"""Application configuration loaded from the environment."""

import logging
import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class AppConfig:
    """
    Central settings for the meetup site.

    Everything the process needs at startup lives here so tests can build
    an app against a throwaway database without touching the environment.
    """
    database_url: str = "sqlite:///./data/meetup.db"
    poll_interval_ms: int = 3000  # how often each SSE session re-reads the table
    stream_queue_size: int = 16  # frames buffered per client before it is dropped
    log_dir: str = "logs"
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    env: str = "dev"  # "dev" or "prod"

    @property
    def poll_interval(self) -> float:
        """Polling interval in seconds."""
        return self.poll_interval_ms / 1000.0

    @classmethod
    def load_from_env(cls) -> "AppConfig":
        """
        Load configuration from environment variables.
        A .env file in the working directory is read first if present.
        """
        load_dotenv(find_dotenv(usecwd=True))

        env = os.getenv("ENV", "dev").lower()
        if env not in ("dev", "prod"):
            logger.warning(f"Invalid ENV '{env}', falling back to 'dev'")
            env = "dev"

        poll_interval_ms = _int_env("POLL_INTERVAL_MS", 3000)
        if poll_interval_ms <= 0:
            raise RuntimeError("POLL_INTERVAL_MS must be positive")

        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        if log_level not in LOG_LEVELS:
            logger.warning(f"Invalid LOG_LEVEL '{log_level}', falling back to 'INFO'")
            log_level = "INFO"

        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./data/meetup.db"),
            poll_interval_ms=poll_interval_ms,
            stream_queue_size=_int_env("STREAM_QUEUE_SIZE", 16),
            log_dir=os.getenv("LOG_DIR", "logs"),
            log_level=log_level,
            api_host=os.getenv("API_HOST", "0.0.0.0"),
            api_port=_int_env("API_PORT", 8000),
            env=env,
        )
