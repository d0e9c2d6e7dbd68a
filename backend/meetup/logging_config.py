"""Process-wide logging setup."""

import logging
import os
from logging.handlers import RotatingFileHandler

from .config import AppConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(config: AppConfig) -> str:
    """
    Attach a console handler and a rotating file handler to the root logger.

    Returns the path of the log file. Calling it again does not add
    duplicate handlers.
    """
    os.makedirs(config.log_dir, exist_ok=True)
    log_file = os.path.join(config.log_dir, "meetup.log")
    level = getattr(logging, config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if any(getattr(h, "_meetup_handler", False) for h in root_logger.handlers):
        return log_file

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # 10MB per file, 5 backups
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    for handler in (console_handler, file_handler):
        handler._meetup_handler = True
        root_logger.addHandler(handler)

    logging.info(f"Logging configured, file: {log_file}")
    return log_file
