"""
=====================================================
Engine and connection factory for the query builder.
=====================================================

Builds SQLAlchemy URLs and engines from configuration, picks the query
grammar for a driver name, and wires both into a ready-to-use Connection.
Also provides availability checks for server databases.

Example:
    >>> from utils.database_utils import create_connection
    >>>
    >>> connection = create_connection(driver='sqlite', database=':memory:')
    >>> connection.table('users').where('id', 1).to_sql()
    'select * from "users" where "id" = ?'
"""

import logging
import time
from typing import Any, Dict, Optional, Type

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from core.config import DEFAULT_PORTS, config
from database.connection import Connection, DatabaseConnectionError
from query.exceptions import InvalidArgumentError
from query.grammars import Grammar, MySqlGrammar, PostgresGrammar, SQLiteGrammar

logger = logging.getLogger(__name__)

GRAMMARS: Dict[str, Type[Grammar]] = {
    'mysql': MySqlGrammar,
    'pgsql': PostgresGrammar,
    'postgresql': PostgresGrammar,
    'sqlite': SQLiteGrammar,
}

# SQLAlchemy dialect+driver names for each driver name.
DRIVER_NAMES = {
    'mysql': 'mysql+pymysql',
    'pgsql': 'postgresql+psycopg2',
    'postgresql': 'postgresql+psycopg2',
    'sqlite': 'sqlite',
}


def resolve_grammar(driver: str, table_prefix: str = '') -> Grammar:
    """
    Get the query grammar for a driver name.

    Args:
        driver: Driver name (mysql, pgsql, postgresql, sqlite)
        table_prefix: Table prefix for the grammar

    Returns:
        Grammar instance for the driver

    Raises:
        InvalidArgumentError: If the driver is not supported
    """
    try:
        grammar_class = GRAMMARS[driver.lower()]
    except KeyError:
        raise InvalidArgumentError(
            f"Unsupported database driver: {driver} (expected one of {', '.join(GRAMMARS)})"
        ) from None

    return grammar_class(table_prefix)


def get_connection_string(
    driver: str = None,
    host: str = None,
    port: int = None,
    user: str = None,
    password: str = None,
    database: str = None
) -> str:
    """
    Build a SQLAlchemy connection string.

    Arguments left as None fall back to the global configuration.

    Returns:
        Connection string with the password rendered

    Example:
        >>> get_connection_string(driver='pgsql', host='db', user='app', database='shop')
        'postgresql+psycopg2://app@db:5432/shop'
    """
    return _build_url(driver, host, port, user, password, database).render_as_string(hide_password=False)


def create_sqlalchemy_engine(
    driver: str = None,
    host: str = None,
    port: int = None,
    user: str = None,
    password: str = None,
    database: str = None,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10
) -> Engine:
    """
    Create a SQLAlchemy engine.

    Server databases get a connection pool with pre-ping; SQLite uses the
    dialect's default pool.

    Args:
        driver: Driver name (defaults to config.db_driver)
        host: Database hostname
        port: Database port
        user: Database user
        password: Database password
        database: Database name or SQLite file path
        echo: Enable SQLAlchemy statement logging
        pool_size: Connection pool size
        max_overflow: Maximum overflow connections

    Returns:
        Configured SQLAlchemy Engine
    """
    url = _build_url(driver, host, port, user, password, database)

    if url.get_backend_name() == 'sqlite':
        return create_engine(url, echo=echo)

    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True  # Verify connections before using
    )


def create_connection(
    driver: str = None,
    engine: Optional[Engine] = None,
    table_prefix: str = None,
    name: str = 'default',
    **engine_options: Any
) -> Connection:
    """
    Create a Connection with the grammar and engine for a driver.

    Args:
        driver: Driver name (defaults to config.db_driver)
        engine: Existing engine to use instead of creating one
        table_prefix: Table prefix (defaults to config.db_prefix)
        name: Connection name
        **engine_options: Passed to create_sqlalchemy_engine

    Returns:
        Connection ready to build and run queries

    Example:
        >>> connection = create_connection(driver='sqlite', database=':memory:')
    """
    driver = driver or config.db_driver
    table_prefix = table_prefix if table_prefix is not None else config.db_prefix

    grammar = resolve_grammar(driver)

    if engine is None:
        engine = create_sqlalchemy_engine(driver=driver, **engine_options)

    logger.debug(f"Created '{name}' connection using the {driver} grammar")

    return Connection(
        engine=engine,
        database=engine.url.database or '',
        table_prefix=table_prefix,
        grammar=grammar,
        name=name,
        log_queries=config.logging.log_queries,
    )


def check_database_available(engine: Engine) -> bool:
    """
    Check if the database behind an engine accepts connections.

    Example:
        >>> if check_database_available(engine):
        ...     print("Database ready")
    """
    try:
        with engine.connect() as conn:
            conn.execute(text('SELECT 1'))
        return True
    except SQLAlchemyError as e:
        logger.debug(f"Database not available: {e}")
        return False


def wait_for_database(engine: Engine, max_retries: int = 10, retry_delay: float = 2) -> bool:
    """
    Wait for the database behind an engine to become available.

    Args:
        engine: Engine to check
        max_retries: Maximum number of attempts
        retry_delay: Delay between attempts in seconds

    Returns:
        True once the database is available

    Raises:
        DatabaseConnectionError: If the database never becomes available
    """
    target = engine.url.render_as_string(hide_password=True)
    logger.info(f"Waiting for database at {target}...")

    for attempt in range(1, max_retries + 1):
        if check_database_available(engine):
            logger.info(f"✅ Database is available (attempt {attempt}/{max_retries})")
            return True

        if attempt < max_retries:
            logger.warning(
                f"⏳ Database not available yet (attempt {attempt}/{max_retries}), "
                f"retrying in {retry_delay}s..."
            )
            time.sleep(retry_delay)

    error_msg = f"Database at {target} did not become available after {max_retries} attempts"
    logger.error(f"❌ {error_msg}")
    raise DatabaseConnectionError(error_msg)


def _build_url(
    driver: Optional[str],
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    password: Optional[str],
    database: Optional[str]
) -> URL:
    driver = (driver or config.db_driver).lower()

    if driver not in DRIVER_NAMES:
        raise InvalidArgumentError(f"Unsupported database driver: {driver}")

    if driver == 'sqlite':
        return URL.create(drivername='sqlite', database=database or config.db_name or ':memory:')

    return URL.create(
        drivername=DRIVER_NAMES[driver],
        username=(user if user is not None else config.db.user) or None,
        password=(password if password is not None else config.db.password) or None,
        host=host or config.db_host,
        port=port or (config.db_port if driver == config.db_driver else DEFAULT_PORTS.get(driver)),
        database=database if database is not None else config.db_name
    )
