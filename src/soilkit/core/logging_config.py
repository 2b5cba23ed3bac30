"""
Centralized logging configuration for soilkit.

Console output plus an optional rotating log file, driven by LoggingConfig.
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

from soilkit.core.config import LoggingConfig

PACKAGE_LOGGER = "soilkit"


def setup_logging(
    level: str = "INFO",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Set up logging for the soilkit package.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_format: Format string for console and file handlers
        log_file: Path to a rotating log file, or None for console only

    Returns:
        Configured package logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(
        logging.Formatter(log_format, datefmt="%Y-%m-%d %H:%M:%S")
    )
    logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Rotating file handler (max 10MB, keep 5 backups)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=10 * 1024 * 1024, backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger


def setup_logging_from_config(config: LoggingConfig) -> logging.Logger:
    """Set up logging from a LoggingConfig section"""
    return setup_logging(
        level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module (typically __name__)"""
    return logging.getLogger(name)
