"""
==========================
Named connection registry.
==========================

ConnectionResolver keeps connections by name and hands out the default one
when no name is given.

Example:
    >>> from database.resolver import ConnectionResolver
    >>>
    >>> resolver = ConnectionResolver.from_config()
    >>> resolver.add_connection('reporting', reporting_connection)
    >>> resolver.connection('reporting').table('orders').count()
"""

import logging
from typing import Dict, Optional

from database.connection import Connection, DatabaseConnectionError

logger = logging.getLogger(__name__)


class ConnectionResolver:
    """Registry of connections by name.

    Attributes:
        default: Name returned by connection() when no name is given
    """

    def __init__(self, connections: Optional[Dict[str, Connection]] = None, default: str = 'default'):
        self._connections: Dict[str, Connection] = dict(connections or {})
        self.default = default

    def connection(self, name: Optional[str] = None) -> Connection:
        """Get a connection by name (the default connection if None).

        Raises:
            DatabaseConnectionError: If no connection has that name
        """
        name = name or self.default

        try:
            return self._connections[name]
        except KeyError:
            raise DatabaseConnectionError(f"Database connection [{name}] not configured.") from None

    def add_connection(self, name: str, connection: Connection) -> None:
        if name in self._connections:
            logger.warning(f"Replacing database connection '{name}'")

        self._connections[name] = connection

    def has_connection(self, name: str) -> bool:
        return name in self._connections

    def get_default_connection(self) -> str:
        return self.default

    def set_default_connection(self, name: str) -> None:
        self.default = name

    @classmethod
    def from_config(cls, config=None) -> 'ConnectionResolver':
        """Build a resolver whose default connection comes from configuration.

        Args:
            config: Config instance (the global config when None)
        """
        # Import here to avoid circular import issues
        from utils.database_utils import create_connection

        if config is None:
            from core.config import config

        connection = create_connection(
            driver=config.db.driver,
            table_prefix=config.db.prefix,
            host=config.db.host,
            port=config.db.port,
            user=config.db.user,
            password=config.db.password,
            database=config.db.database,
        )

        logger.info(f"Configured default '{config.db.driver}' connection")

        return cls({connection.name: connection}, default=connection.name)
