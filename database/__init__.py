"""
=============================
Database connection package.
=============================

Connections run the SQL compiled by query builders on a SQLAlchemy engine;
the resolver keeps named connections.

Modules:
    connection: Connection, placeholder conversion and execution errors
    resolver: Named connection registry
"""

__all__ = [
    'Connection',
    'ConnectionResolver',
    'DatabaseConnectionError',
    'QueryExecutionError',
    'convert_placeholders',
]

from .connection import Connection, DatabaseConnectionError, QueryExecutionError, convert_placeholders
from .resolver import ConnectionResolver
