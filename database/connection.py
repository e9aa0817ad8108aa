"""
=====================================
Database connection for the builder.
=====================================

Connection pairs a query grammar with a SQLAlchemy engine. It hands out
Builder instances bound to itself and runs the SQL they compile, converting
the builder's "?" placeholders to whatever parameter style the engine's
DB-API driver expects.

Every executed statement is logged at DEBUG with its bindings and elapsed
time, and can also be kept in an in-memory query log.

Example:
    >>> from sqlalchemy import create_engine
    >>> from database.connection import Connection
    >>> from query.grammars import SQLiteGrammar
    >>>
    >>> connection = Connection(create_engine('sqlite://'), grammar=SQLiteGrammar())
    >>> connection.statement('create table users (id integer primary key, name text)')
    >>> connection.table('users').insert({'name': 'Ada'})
    >>> connection.table('users').where('name', 'Ada').first()
    {'id': 1, 'name': 'Ada'}
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from query.builder import Builder
from query.expression import Expression
from query.grammars.grammar import Grammar

logger = logging.getLogger(__name__)

QUOTES = ("'", '"', '`')


class DatabaseConnectionError(Exception):
    """Exception raised when no usable database connection is available."""
    pass


class QueryExecutionError(Exception):
    """Exception raised when the database rejects a statement.

    Attributes:
        sql: The statement as compiled by the grammar
        bindings: The values bound to it
    """

    def __init__(self, message: str, sql: str, bindings: Sequence[Any]):
        super().__init__(f"{message} (SQL: {sql})")
        self.sql = sql
        self.bindings = list(bindings)


def convert_placeholders(sql: str, paramstyle: str, bindings: Sequence[Any]) -> Tuple[str, Any]:
    """
    Rewrite "?" placeholders for a DB-API parameter style.

    Placeholders inside quoted literals and identifiers are left alone. For
    the format styles, literal percent signs are doubled when parameters
    are passed.

    Args:
        sql: Statement using "?" placeholders
        paramstyle: DB-API paramstyle (qmark, format, pyformat, numeric, named)
        bindings: Values for the placeholders, in order

    Returns:
        Tuple of (converted sql, parameters for exec_driver_sql)
    """
    if not bindings:
        return sql, None

    if paramstyle == 'qmark':
        return sql, tuple(bindings)

    escape_percent = paramstyle in ('format', 'pyformat')
    segments = []
    quote = None
    index = 0

    for char in sql:
        if escape_percent and char == '%':
            segments.append('%%')
            continue

        if quote is not None:
            segments.append(char)
            if char == quote:
                quote = None
            continue

        if char in QUOTES:
            quote = char
            segments.append(char)
        elif char == '?':
            segments.append(_placeholder(paramstyle, index))
            index += 1
        else:
            segments.append(char)

    if paramstyle == 'named':
        return ''.join(segments), {f"p{i}": value for i, value in enumerate(bindings)}

    return ''.join(segments), tuple(bindings)


def _placeholder(paramstyle: str, index: int) -> str:
    if paramstyle in ('format', 'pyformat'):
        return '%s'

    if paramstyle == 'numeric':
        return f":{index + 1}"

    if paramstyle == 'named':
        return f":p{index}"

    raise DatabaseConnectionError(f"Unsupported parameter style: {paramstyle}")


class Connection:
    """Grammar plus SQLAlchemy engine that builders compile and run against.

    Attributes:
        engine: SQLAlchemy Engine statements run on (None for compile-only use)
        database: Database name
        table_prefix: Prefix applied by the grammar to every table name
        config: Extra connection options
        name: Connection name used by the resolver
    """

    def __init__(
        self,
        engine: Optional[Engine] = None,
        database: str = '',
        table_prefix: str = '',
        config: Optional[Dict[str, Any]] = None,
        grammar: Optional[Grammar] = None,
        name: str = 'default',
        log_queries: bool = False
    ):
        self.engine = engine
        self.database = database
        self.table_prefix = table_prefix
        self.config = config or {}
        self.name = name

        self._query_log: List[Dict[str, Any]] = []
        self._logging_queries = log_queries

        if grammar is None:
            self.use_default_query_grammar()
        else:
            self.set_query_grammar(grammar)

    # ====================
    # Grammar
    # ====================

    def use_default_query_grammar(self) -> None:
        self.set_query_grammar(Grammar())

    def get_query_grammar(self) -> Grammar:
        return self.query_grammar

    def set_query_grammar(self, grammar: Grammar) -> 'Connection':
        """Use a grammar, applying this connection's table prefix to it."""
        grammar.set_table_prefix(self.table_prefix)
        self.query_grammar = grammar

        return self

    def get_table_prefix(self) -> str:
        return self.table_prefix

    def set_table_prefix(self, prefix: str) -> 'Connection':
        self.table_prefix = prefix
        self.query_grammar.set_table_prefix(prefix)

        return self

    # ====================
    # Builders
    # ====================

    def query(self) -> Builder:
        """Get a new query builder on this connection."""
        return Builder(self, self.query_grammar)

    def table(self, table: Any, as_: Optional[str] = None) -> Builder:
        """Begin a fluent query against a table."""
        return self.query().from_(table, as_)

    def raw(self, value: Any) -> Expression:
        return Expression(value)

    # ====================
    # Execution
    # ====================

    def select(self, sql: str, bindings: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a select statement and return the rows as dicts."""
        return self._run(sql, bindings, lambda result: [dict(row) for row in result.mappings()])

    def select_one(self, sql: str, bindings: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        rows = self.select(sql, bindings)

        return rows[0] if rows else None

    def insert(self, sql: str, bindings: Sequence[Any] = ()) -> bool:
        return self.statement(sql, bindings)

    def insert_get_id(self, sql: str, bindings: Sequence[Any] = (), sequence: Optional[str] = None) -> Any:
        """Run an insert and return the new row's id.

        Statements with a RETURNING clause yield the returned value; otherwise
        the driver's lastrowid is used.
        """
        def fetch_id(result):
            if result.returns_rows:
                row = result.first()
                return row[0] if row is not None else None

            return result.lastrowid

        return self._run(sql, bindings, fetch_id)

    def update(self, sql: str, bindings: Sequence[Any] = ()) -> int:
        return self.affecting_statement(sql, bindings)

    def delete(self, sql: str, bindings: Sequence[Any] = ()) -> int:
        return self.affecting_statement(sql, bindings)

    def statement(self, sql: str, bindings: Sequence[Any] = ()) -> bool:
        """Run a statement that returns nothing."""
        return self._run(sql, bindings, lambda result: True)

    def affecting_statement(self, sql: str, bindings: Sequence[Any] = ()) -> int:
        """Run a statement and return the number of affected rows."""
        return self._run(sql, bindings, lambda result: result.rowcount)

    def get_engine(self) -> Engine:
        if self.engine is None:
            raise DatabaseConnectionError(
                f"Connection '{self.name}' has no engine; it can compile queries but not run them"
            )

        return self.engine

    def _run(self, sql: str, bindings: Sequence[Any], callback: Callable[[Any], Any]) -> Any:
        """Execute a statement in its own transaction and pass the result to the callback.

        Raises:
            DatabaseConnectionError: If the connection has no engine
            QueryExecutionError: If the database rejects the statement
        """
        engine = self.get_engine()
        bindings = list(bindings or [])

        statement, parameters = convert_placeholders(sql, engine.dialect.paramstyle, bindings)

        start = time.perf_counter()

        try:
            with engine.begin() as conn:
                result = conn.exec_driver_sql(statement, parameters)
                value = callback(result)
        except SQLAlchemyError as e:
            logger.error(f"❌ Query failed on '{self.name}': {sql} {bindings}")
            raise QueryExecutionError(str(e.orig if getattr(e, 'orig', None) else e), sql, bindings) from e

        elapsed = (time.perf_counter() - start) * 1000

        self._log_query(sql, bindings, elapsed)

        return value

    # ====================
    # Query log
    # ====================

    def _log_query(self, sql: str, bindings: List[Any], elapsed: float) -> None:
        logger.debug(f"{sql} {bindings} ({elapsed:.2f} ms)")

        if self._logging_queries:
            self._query_log.append({'query': sql, 'bindings': bindings, 'time': round(elapsed, 2)})

    def enable_query_log(self) -> None:
        self._logging_queries = True

    def disable_query_log(self) -> None:
        self._logging_queries = False

    def logging(self) -> bool:
        """Whether executed statements are being kept in the query log."""
        return self._logging_queries

    def get_query_log(self) -> List[Dict[str, Any]]:
        return list(self._query_log)

    def flush_query_log(self) -> None:
        self._query_log = []
