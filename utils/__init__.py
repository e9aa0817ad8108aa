"""
==========================
Utility Functions Package.
==========================

Engine and connection factories plus database availability checks.

Modules:
    database_utils: SQLAlchemy engines, grammar resolution, health checks
"""

__version__ = "0.1.0"
__all__ = [
    'check_database_available',
    'create_connection',
    'create_sqlalchemy_engine',
    'get_connection_string',
    'resolve_grammar',
    'wait_for_database',
]

from .database_utils import (
    check_database_available,
    create_connection,
    create_sqlalchemy_engine,
    get_connection_string,
    resolve_grammar,
    wait_for_database,
)
