"""
Fixtures for the connection tests.

Key fixtures:
- engine: in-memory SQLite engine, disposed after the test
- connection: Connection on that engine with the SQLite grammar and a
  ``users`` / ``archive`` schema already created
"""

import pytest
from sqlalchemy import create_engine

from database.connection import Connection
from query.grammars import SQLiteGrammar

SCHEMA = (
    """
    create table users (
        id integer primary key autoincrement,
        email text unique,
        name text,
        votes integer default 0,
        created_at text
    )
    """,
    "create table archive (email text)",
)


@pytest.fixture
def engine():
    engine = create_engine('sqlite://')
    yield engine
    engine.dispose()


@pytest.fixture
def connection(engine):
    connection = Connection(engine, database=':memory:', grammar=SQLiteGrammar(), name='test')

    for statement in SCHEMA:
        connection.statement(statement)

    return connection


@pytest.fixture
def seeded(connection):
    """Connection with two users: Ada (3 votes) and Bob (5 votes)."""
    connection.table('users').insert([
        {'email': 'ada@example.com', 'name': 'Ada', 'votes': 3, 'created_at': '2024-01-05 10:00:00'},
        {'email': 'bob@example.com', 'name': 'Bob', 'votes': 5, 'created_at': '2023-11-20 08:30:00'},
    ])

    return connection
