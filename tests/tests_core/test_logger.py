"""
========================================
Pytest suite for core/logger.py
========================================

Sections:
---------
1. Unit tests - Formatter, get_logger, handler setup
2. Integration tests - File output, configuration-driven setup
3. Edge case tests - Unknown levels, repeated setup

How to Execute:
---------------
All tests:          pytest tests/tests_core/test_logger.py -v
"""

import logging
from types import SimpleNamespace

import pytest

from core.logger import PACKAGE_LOGGERS, ColoredFormatter, get_logger, setup_logging, setup_logging_from_config


@pytest.fixture(autouse=True)
def restore_package_loggers():
    """Put the package loggers back the way the other suites expect them."""
    saved = {
        name: (logging.getLogger(name).level, list(logging.getLogger(name).handlers), logging.getLogger(name).propagate)
        for name in PACKAGE_LOGGERS + ('tests.logger',)
    }

    yield

    for name, (level, handlers, propagate) in saved.items():
        logger = logging.getLogger(name)

        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        for handler in handlers:
            logger.addHandler(handler)

        logger.setLevel(level)
        logger.propagate = propagate


def make_record(level=logging.WARNING, msg='slow query'):
    return logging.LogRecord('query.builder', level, __file__, 1, msg, None, None)


# ===============
# 1. UNIT TESTS
# ===============

@pytest.mark.unit
def test_colored_formatter_restores_level_name():
    formatter = ColoredFormatter('%(emoji)s %(levelname)s %(message)s')
    record = make_record()

    output = formatter.format(record)

    assert '\033[33mWARNING\033[0m' in output
    assert 'slow query' in output
    assert record.levelname == 'WARNING'


@pytest.mark.unit
def test_get_logger_sets_level():
    logger = get_logger('tests.logger', 'debug')

    assert logger.name == 'tests.logger'
    assert logger.level == logging.DEBUG


@pytest.mark.unit
def test_setup_logging_attaches_console_handler():
    handlers = setup_logging(log_level='WARNING', use_colors=False)

    assert len(handlers) == 1

    for name in PACKAGE_LOGGERS:
        logger = logging.getLogger(name)

        assert logger.level == logging.WARNING
        assert logger.handlers == handlers
        assert logger.propagate is False


@pytest.mark.unit
def test_setup_logging_without_outputs_propagates():
    handlers = setup_logging(console_output=False)

    assert handlers == []
    assert logging.getLogger('query').propagate is True


# ======================
# 2. INTEGRATION TESTS
# ======================

@pytest.mark.integration
def test_setup_logging_writes_file(tmp_path):
    setup_logging(log_level='DEBUG', log_file='queries.log', log_dir=str(tmp_path / 'logs'), console_output=False)

    logging.getLogger('database.connection').debug('select 1 [] (0.10 ms)')

    for handler in logging.getLogger('database').handlers:
        handler.flush()

    content = (tmp_path / 'logs' / 'queries.log').read_text(encoding='utf-8')

    assert 'database.connection - DEBUG - select 1 [] (0.10 ms)' in content


@pytest.mark.integration
def test_setup_logging_from_config(tmp_path):
    config = SimpleNamespace(logging=SimpleNamespace(
        level='ERROR', log_file='app.log', log_dir=str(tmp_path), use_colors=False, log_queries=False
    ))

    handlers = setup_logging_from_config(config)

    assert len(handlers) == 2
    assert logging.getLogger('utils').level == logging.ERROR
    assert (tmp_path / 'app.log').exists()


# ===================
# 3. EDGE CASE TESTS
# ===================

@pytest.mark.edge_case
def test_unknown_level_raises():
    with pytest.raises(ValueError, match='Unknown log level'):
        setup_logging(log_level='LOUD')


@pytest.mark.edge_case
def test_repeated_setup_replaces_handlers():
    setup_logging(use_colors=False)
    handlers = setup_logging(use_colors=True)

    assert logging.getLogger('core').handlers == handlers
    assert isinstance(handlers[0].formatter, ColoredFormatter)
