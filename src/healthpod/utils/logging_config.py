"""
Logging setup for HealthPod commands.

Log records go to stderr and optionally to a file, so that stdout only
carries command output such as JSON listings.
"""

import logging
import sys
from pathlib import Path

from healthpod.utils.exceptions import ConfigurationError
from healthpod.utils.parameters import LoggingConfig

# Loggers of the HTTP stack used by the Solid client.
HTTP_LOGGERS = ("urllib3", "requests")


def _add_handler(
    logger: logging.Logger, handler: logging.Handler, level: int, formatter: logging.Formatter
) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def setup_logging(config: LoggingConfig, logger_name: str = "healthpod") -> logging.Logger:
    """
    Configure the HealthPod package logger.

    Handlers from an earlier call are replaced, so commands can be invoked
    repeatedly in one process. HTTP request logs are only shown at DEBUG.

    Args:
        config: Logging configuration.
        logger_name: Logger to configure. Module loggers under it inherit its handlers.

    Returns:
        Configured logger.

    Raises:
        ConfigurationError: If the level name is unknown.
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown logging level: {config.level}")

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    if config.console:
        _add_handler(logger, logging.StreamHandler(sys.stderr), level, formatter)

    if config.file:
        log_file = Path(config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _add_handler(logger, logging.FileHandler(log_file, encoding="utf-8"), level, formatter)

    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return logger
