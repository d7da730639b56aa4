"""Logging setup for the session ledger.

Every module logs through ``logging.getLogger(__name__)``; this module only
wires handlers onto the package logger.
"""

import logging
from logging.handlers import RotatingFileHandler

from session_ledger.config import StoreConfig
from session_ledger.constants import LOGGER_ROOT


def configure_logging(config: StoreConfig) -> logging.Logger:
    """Configure the package logger from configuration.

    Args:
        config: Store configuration (log level, file and rotation settings).

    Returns:
        The configured package logger.
    """
    level = getattr(logging, config.get_effective_log_level(), logging.INFO)

    ledger_logger = logging.getLogger(LOGGER_ROOT)
    ledger_logger.setLevel(level)
    ledger_logger.propagate = False

    # Clear any existing handlers to avoid duplicates on reconfigure
    for handler in list(ledger_logger.handlers):
        ledger_logger.removeHandler(handler)
        handler.close()

    if level == logging.DEBUG:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
            datefmt="%H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%H:%M:%S",
        )

    handler: logging.Handler | None = None
    if config.log_file:
        try:
            config.log_file.parent.mkdir(parents=True, exist_ok=True)
            rotation = config.log_rotation
            if rotation.enabled:
                handler = RotatingFileHandler(
                    config.log_file,
                    mode="a",
                    maxBytes=rotation.get_max_bytes(),
                    backupCount=rotation.backup_count,
                    encoding="utf-8",
                )
            else:
                handler = logging.FileHandler(config.log_file, mode="a", encoding="utf-8")
        except OSError as e:
            fallback = logging.StreamHandler()
            fallback.setFormatter(formatter)
            ledger_logger.addHandler(fallback)
            ledger_logger.warning(f"Could not set up file logging to {config.log_file}: {e}")
            return ledger_logger

    if handler is None:
        handler = logging.StreamHandler()

    handler.setFormatter(formatter)
    ledger_logger.addHandler(handler)
    return ledger_logger
