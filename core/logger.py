"""
====================================
Logging setup for the query builder.
====================================

Library modules only create loggers (``logging.getLogger(__name__)``); nothing
is configured on import. Applications call setup_logging() once to attach
console and/or file handlers to the project's logger namespaces.

Example:
    >>> from core.logger import get_logger, setup_logging
    >>>
    >>> setup_logging(log_level='DEBUG', log_file='queries.log')
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.debug("select * from \"users\" [] (0.41 ms)")
"""

import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

# Top-level packages whose loggers setup_logging configures.
PACKAGE_LOGGERS = ('query', 'database', 'utils', 'core')

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name.

    Attributes:
        COLORS: Dict mapping log levels to ANSI color codes
        EMOJI: Dict mapping log levels to emoji indicators
    """

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    EMOJI = {
        'DEBUG': '🔍',
        'INFO': 'ℹ️ ',
        'WARNING': '⚠️ ',
        'ERROR': '❌',
        'CRITICAL': '🔥'
    }

    def format(self, record: logging.LogRecord) -> str:
        # The record is shared with other handlers, so restore the level name.
        levelname = record.levelname
        record.emoji = self.EMOJI.get(levelname, '')

        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"

        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a logger instance for the specified module.

    Args:
        name: Logger name (typically __name__ of calling module)
        level: Optional logging level override (DEBUG/INFO/WARNING/ERROR/CRITICAL)

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if level:
        logger.setLevel(_parse_level(level))

    return logger


def setup_logging(
    log_level: str = 'INFO',
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None,
    console_output: bool = True,
    use_colors: bool = True,
    loggers: Iterable[str] = PACKAGE_LOGGERS
) -> List[logging.Handler]:
    """Configure the project's loggers.

    Replaces any handlers previously attached to the given loggers, so it is
    safe to call again with new settings.

    Args:
        log_level: Logging level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        log_file: Optional log file name (e.g., 'queries.log')
        log_dir: Optional log directory path (defaults to 'logs/')
        console_output: If True, output to console (stdout)
        use_colors: If True, use colored output for console
        loggers: Logger names to configure

    Returns:
        The handlers that were attached

    Raises:
        ValueError: If the log level is unknown
    """
    level = _parse_level(log_level)
    handlers: List[logging.Handler] = []

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)

        if use_colors:
            console_handler.setFormatter(ColoredFormatter('%(emoji)s ' + LOG_FORMAT, datefmt=DATE_FORMAT))
        else:
            console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

        handlers.append(console_handler)

    if log_file:
        log_path = Path(log_dir) if log_dir else Path('logs')
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / log_file, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

        handlers.append(file_handler)

    for name in loggers:
        logger = logging.getLogger(name)
        logger.setLevel(level)

        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        for handler in handlers:
            handler.setLevel(level)
            logger.addHandler(handler)

        # Handlers live on the package loggers; don't duplicate via root.
        logger.propagate = not handlers

    return handlers


def setup_logging_from_config(config=None) -> List[logging.Handler]:
    """Configure logging from a Config instance (the global one by default)."""
    if config is None:
        from core.config import config

    return setup_logging(
        log_level=config.logging.level,
        log_file=config.logging.log_file,
        log_dir=config.logging.log_dir,
        use_colors=config.logging.use_colors,
    )


def _parse_level(level: str) -> int:
    value = logging.getLevelName(level.upper())

    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")

    return value
