"""
==============================
SQL dialect grammars package.
==============================

Modules:
    base: Identifier quoting and parameter primitives shared by all grammars
    grammar: Statement compiler (ANSI flavour) extended by the dialects
    mysql: MySQL / MariaDB grammar
    postgres: PostgreSQL grammar
    sqlite: SQLite grammar
"""

__all__ = ['BaseGrammar', 'Grammar', 'MySqlGrammar', 'PostgresGrammar', 'SQLiteGrammar']

from .base import BaseGrammar
from .grammar import Grammar
from .mysql import MySqlGrammar
from .postgres import PostgresGrammar
from .sqlite import SQLiteGrammar
