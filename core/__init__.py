"""
=============================================
Core infrastructure package for the builder.
=============================================

Centralized configuration management and logging setup shared by the query
and database packages.

Modules:
    config: Configuration management from environment variables
    logger: Logging setup and utilities

Example:
    >>> from core.config import config
    >>> from core.logger import get_logger
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.info(f"Using the {config.db_driver} driver")
"""

__version__ = "0.1.0"
__all__ = ['get_logger', 'setup_logging', 'setup_logging_from_config', 'config', 'Config']

from core.config import Config, config
from core.logger import get_logger, setup_logging, setup_logging_from_config
