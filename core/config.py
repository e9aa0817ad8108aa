"""
==========================================
Configuration management for the builder.
==========================================

Loads connection and logging settings from environment variables (.env file)
and provides a centralized Config instance for application-wide access.

Environment variables:
- DB_CONNECTION: Driver name (mysql, pgsql, postgresql, sqlite)
- DB_HOST, DB_PORT, DB_USERNAME, DB_PASSWORD, DB_DATABASE: Server settings
- DB_PREFIX: Table prefix applied by the query grammar
- LOG_LEVEL, LOG_FILE, LOG_DIR, LOG_COLORS: Logging output
- LOG_QUERIES: Keep an in-memory log of executed statements

Example:
    >>> from core.config import config
    >>>
    >>> print(f"Driver: {config.db_driver}, prefix: {config.db_prefix!r}")
    >>> engine_url = config.get_connection_string()
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

DEFAULT_PORTS = {
    'mysql': 3306,
    'pgsql': 5432,
    'postgresql': 5432,
}

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)

    if value is None:
        return default

    return value.strip().lower() in TRUE_VALUES


@dataclass
class DatabaseConfig:
    """Database connection settings.

    Attributes:
        driver: Driver name selecting the grammar and SQLAlchemy dialect
        host: Database server hostname or IP address
        port: Database server port (None uses the driver default)
        user: Database username
        password: Database password
        database: Database name, or file path for SQLite
        prefix: Table prefix prepended to every wrapped table name
    """

    driver: str
    host: str
    port: Optional[int]
    user: str
    password: str
    database: str
    prefix: str = ''

    def get_connection_string(self) -> str:
        """Get the SQLAlchemy URL for these settings.

        Returns:
            SQLAlchemy-compatible connection string
        """
        # Import here to avoid circular import issues
        from utils.database_utils import get_connection_string

        return get_connection_string(
            driver=self.driver,
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database,
        )

    def get_connection_params(self) -> dict:
        """Get connection parameters as dictionary.

        Returns:
            Dictionary with keys: driver, host, port, user, password, database
        """
        return {
            'driver': self.driver,
            'host': self.host,
            'port': self.port,
            'user': self.user,
            'password': self.password,
            'database': self.database,
        }


@dataclass
class LoggingConfig:
    """Logging settings.

    Attributes:
        level: Logging level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        log_file: Optional log file name
        log_dir: Directory the log file is written to
        use_colors: Colored console output
        log_queries: Whether connections keep an in-memory query log
    """

    level: str = 'INFO'
    log_file: Optional[str] = None
    log_dir: str = 'logs'
    use_colors: bool = True
    log_queries: bool = False


class Config:
    """Centralized configuration manager.

    Attributes:
        db: DatabaseConfig with connection settings
        logging: LoggingConfig with logging settings

    Example:
        >>> config = Config()
        >>> print(f"Connecting to {config.db_host}:{config.db_port}")
    """

    def __init__(self):
        driver = os.getenv('DB_CONNECTION', 'sqlite').lower()
        port = os.getenv('DB_PORT')

        self.db = DatabaseConfig(
            driver=driver,
            host=os.getenv('DB_HOST', 'localhost'),
            port=int(port) if port else DEFAULT_PORTS.get(driver),
            user=os.getenv('DB_USERNAME', ''),
            password=os.getenv('DB_PASSWORD', ''),
            database=os.getenv('DB_DATABASE', ':memory:' if driver == 'sqlite' else ''),
            prefix=os.getenv('DB_PREFIX', ''),
        )

        self.logging = LoggingConfig(
            level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            log_file=os.getenv('LOG_FILE') or None,
            log_dir=os.getenv('LOG_DIR', 'logs'),
            use_colors=_env_bool('LOG_COLORS', True),
            log_queries=_env_bool('LOG_QUERIES', False),
        )

    @property
    def db_driver(self) -> str:
        return self.db.driver

    @property
    def db_host(self) -> str:
        return self.db.host

    @property
    def db_port(self) -> Optional[int]:
        return self.db.port

    @property
    def db_name(self) -> str:
        return self.db.database

    @property
    def db_prefix(self) -> str:
        """Get the table prefix."""
        return self.db.prefix

    def get_connection_string(self) -> str:
        """Get the SQLAlchemy URL of the configured database."""
        return self.db.get_connection_string()

    def get_connection_params(self) -> dict:
        return self.db.get_connection_params()


# Global configuration instance
config = Config()
