"""
Fixtures for the query builder tests.

Key fixtures:
- builder: Builder on the base (ANSI) grammar, no engine
- mysql / postgres / sqlite: Builders on each dialect grammar
- make_builder: factory for a builder on any grammar, with optional table prefix
"""

import pytest

from database.connection import Connection
from query.grammars import Grammar, MySqlGrammar, PostgresGrammar, SQLiteGrammar

GRAMMARS = {
    'base': Grammar,
    'mysql': MySqlGrammar,
    'postgres': PostgresGrammar,
    'sqlite': SQLiteGrammar,
}


@pytest.fixture
def make_builder():
    """
    Factory that returns a fresh builder for a dialect.
    The builder's connection has no engine, so only compilation is possible.
    """
    def factory(dialect='base', table_prefix=''):
        connection = Connection(grammar=GRAMMARS[dialect](), table_prefix=table_prefix)
        return connection.query()

    return factory


@pytest.fixture
def builder(make_builder):
    return make_builder('base')


@pytest.fixture
def mysql(make_builder):
    return make_builder('mysql')


@pytest.fixture
def postgres(make_builder):
    return make_builder('postgres')


@pytest.fixture
def sqlite(make_builder):
    return make_builder('sqlite')
