"""
==========================================
Pytest suite for database/resolver.py
==========================================

Sections:
---------
1. Unit tests - Registration and lookup by name
2. Integration tests - Building the default connection from configuration
3. Edge case tests - Unknown connection names

How to Execute:
---------------
All tests:          pytest tests/tests_database/test_resolver.py -v
"""

from types import SimpleNamespace

import pytest

from database.connection import Connection, DatabaseConnectionError
from database.resolver import ConnectionResolver
from query.grammars import SQLiteGrammar


def make_config(**overrides):
    """Config stand-in with only the attributes from_config reads."""
    db = dict(driver='sqlite', prefix='', host='localhost', port=None, user='', password='', database=':memory:')
    db.update(overrides)

    return SimpleNamespace(db=SimpleNamespace(**db))


# ===============
# 1. UNIT TESTS
# ===============

@pytest.mark.unit
def test_connection_by_name_and_default():
    primary = Connection(name='default')
    reporting = Connection(name='reporting')

    resolver = ConnectionResolver({'default': primary})
    resolver.add_connection('reporting', reporting)

    assert resolver.connection() is primary
    assert resolver.connection('reporting') is reporting
    assert resolver.has_connection('reporting')
    assert not resolver.has_connection('archive')


@pytest.mark.unit
def test_set_default_connection():
    reporting = Connection(name='reporting')
    resolver = ConnectionResolver({'reporting': reporting})

    resolver.set_default_connection('reporting')

    assert resolver.get_default_connection() == 'reporting'
    assert resolver.connection() is reporting


@pytest.mark.unit
def test_replacing_connection_logs_warning(caplog):
    resolver = ConnectionResolver({'default': Connection()})

    resolver.add_connection('default', Connection())

    assert "Replacing database connection 'default'" in caplog.text


# ======================
# 2. INTEGRATION TESTS
# ======================

@pytest.mark.integration
def test_from_config_builds_sqlite_connection():
    resolver = ConnectionResolver.from_config(make_config(prefix='app_'))

    connection = resolver.connection()

    assert isinstance(connection.get_query_grammar(), SQLiteGrammar)
    assert connection.table('users').to_sql() == 'select * from "app_users"'
    assert connection.select_one('select 1 as one') == {'one': 1}


# ===================
# 3. EDGE CASE TESTS
# ===================

@pytest.mark.edge_case
def test_unknown_connection_raises():
    resolver = ConnectionResolver()

    with pytest.raises(DatabaseConnectionError, match=r'Database connection \[missing\] not configured'):
        resolver.connection('missing')
