"""
=====================================
Exceptions raised by the query layer.
=====================================

Every failure the builder or a grammar can raise derives from
QueryBuilderError so callers can catch compilation problems in one place.

Classes:
    QueryBuilderError: Base class for query construction and compilation errors
    UnsupportedFeatureError: The active dialect cannot express a construct
    InvalidArgumentError: A clause was built with malformed arguments
"""


class QueryBuilderError(Exception):
    """Base exception for query construction and compilation errors."""
    pass


class UnsupportedFeatureError(QueryBuilderError):
    """Exception raised when a grammar cannot compile a construct.
    
    The construct has no equivalent in the target engine.
    """
    pass


class InvalidArgumentError(QueryBuilderError, ValueError):
    """Exception raised when a fluent call receives malformed arguments."""
    pass
