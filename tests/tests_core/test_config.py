"""
========================================
Pytest suite for core/config.py
========================================

Sections:
---------
1. Unit tests - Environment parsing into DatabaseConfig / LoggingConfig
2. Edge case tests - Boolean flags, ports, driver defaults

How to Execute:
---------------
All tests:          pytest tests/tests_core/test_config.py -v
"""

import pytest

from core.config import Config, DatabaseConfig, _env_bool

ENV_VARS = (
    'DB_CONNECTION', 'DB_HOST', 'DB_PORT', 'DB_USERNAME', 'DB_PASSWORD', 'DB_DATABASE', 'DB_PREFIX',
    'LOG_LEVEL', 'LOG_FILE', 'LOG_DIR', 'LOG_COLORS', 'LOG_QUERIES',
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable Config reads."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    return monkeypatch


# ===============
# 1. UNIT TESTS
# ===============

@pytest.mark.unit
def test_defaults_use_in_memory_sqlite(clean_env):
    config = Config()

    assert config.db_driver == 'sqlite'
    assert config.db_name == ':memory:'
    assert config.db_port is None
    assert config.db_prefix == ''
    assert config.logging.level == 'INFO'
    assert config.logging.log_file is None
    assert config.logging.use_colors is True
    assert config.logging.log_queries is False


@pytest.mark.unit
def test_server_settings_from_environment(clean_env):
    clean_env.setenv('DB_CONNECTION', 'MySQL')
    clean_env.setenv('DB_HOST', 'db.internal')
    clean_env.setenv('DB_USERNAME', 'app')
    clean_env.setenv('DB_PASSWORD', 'secret')
    clean_env.setenv('DB_DATABASE', 'shop')
    clean_env.setenv('DB_PREFIX', 'app_')

    config = Config()

    assert config.db_driver == 'mysql'
    assert config.db_host == 'db.internal'
    assert config.db_port == 3306
    assert config.db_prefix == 'app_'
    assert config.get_connection_params() == {
        'driver': 'mysql',
        'host': 'db.internal',
        'port': 3306,
        'user': 'app',
        'password': 'secret',
        'database': 'shop',
    }


@pytest.mark.unit
def test_connection_string_from_environment(clean_env):
    clean_env.setenv('DB_CONNECTION', 'pgsql')
    clean_env.setenv('DB_HOST', 'db')
    clean_env.setenv('DB_USERNAME', 'admin')
    clean_env.setenv('DB_PASSWORD', 'secret')
    clean_env.setenv('DB_DATABASE', 'shop')

    assert Config().get_connection_string() == 'postgresql+psycopg2://admin:secret@db:5432/shop'


@pytest.mark.unit
def test_logging_settings_from_environment(clean_env):
    clean_env.setenv('LOG_LEVEL', 'debug')
    clean_env.setenv('LOG_FILE', 'queries.log')
    clean_env.setenv('LOG_DIR', '/tmp/query-logs')
    clean_env.setenv('LOG_COLORS', 'off')
    clean_env.setenv('LOG_QUERIES', 'yes')

    logging_config = Config().logging

    assert logging_config.level == 'DEBUG'
    assert logging_config.log_file == 'queries.log'
    assert logging_config.log_dir == '/tmp/query-logs'
    assert logging_config.use_colors is False
    assert logging_config.log_queries is True


@pytest.mark.unit
def test_database_config_connection_string():
    db = DatabaseConfig(driver='sqlite', host='', port=None, user='', password='', database='app.db')

    assert db.get_connection_string() == 'sqlite:///app.db'


# ===================
# 2. EDGE CASE TESTS
# ===================

@pytest.mark.edge_case
def test_explicit_port_overrides_default(clean_env):
    clean_env.setenv('DB_CONNECTION', 'postgresql')
    clean_env.setenv('DB_PORT', '6432')

    assert Config().db_port == 6432


@pytest.mark.edge_case
@pytest.mark.parametrize("raw, expected", [
    ('1', True),
    ('TRUE', True),
    (' on ', True),
    ('0', False),
    ('no', False),
    ('', False),
])
def test_env_bool(monkeypatch, raw, expected):
    monkeypatch.setenv('FLAG', raw)

    assert _env_bool('FLAG', not expected) is expected


@pytest.mark.edge_case
def test_env_bool_default_when_unset(monkeypatch):
    monkeypatch.delenv('FLAG', raising=False)

    assert _env_bool('FLAG', True) is True
