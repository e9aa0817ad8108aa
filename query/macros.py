"""
==============================
Query builder macro registry.
==============================

Macros are named functions that extend the Builder's fluent API at runtime.
The registry is process-wide; registration goes through a single locked
method so builders reading it never see a half-applied change.

Example:
    >>> from query.macros import registry
    >>>
    >>> def where_active(query, flag=True):
    ...     return query.where('active', '=', flag)
    >>>
    >>> registry.register('where_active', where_active)
    >>> connection.table('users').where_active().to_sql()
    'select * from "users" where "active" = ?'
"""

import logging
import threading
from typing import Callable, Dict, Optional

from query.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


class MacroRegistry:
    """Thread-safe name to function table for builder macros."""

    def __init__(self):
        self._macros: Dict[str, Callable] = {}
        self._lock = threading.Lock()

    def register(self, name: str, macro: Callable) -> None:
        """Register a macro under a name.

        Args:
            name: Method name the macro is reachable as
            macro: Function receiving the builder as first argument

        Raises:
            InvalidArgumentError: If the name is not an identifier or the
                macro is not callable
        """
        if not name.isidentifier() or name.startswith('_'):
            raise InvalidArgumentError(f"Invalid macro name: {name!r}")

        if not callable(macro):
            raise InvalidArgumentError(f"Macro {name!r} must be callable")

        with self._lock:
            if name in self._macros:
                logger.warning(f"Replacing existing query macro '{name}'")
            self._macros[name] = macro

    def get(self, name: str) -> Optional[Callable]:
        return self._macros.get(name)

    def has(self, name: str) -> bool:
        return name in self._macros

    def flush(self) -> None:
        """Remove every registered macro."""
        with self._lock:
            self._macros.clear()


registry = MacroRegistry()
