__all__ = [
    'Builder',
    'JoinClause',
    'Expression',
    'JsonExpression',
    'MacroRegistry',
    'registry',
    'QueryBuilderError',
    'UnsupportedFeatureError',
    'InvalidArgumentError',
]

from .builder import Builder
from .exceptions import InvalidArgumentError, QueryBuilderError, UnsupportedFeatureError
from .expression import Expression, JsonExpression
from .join_clause import JoinClause
from .macros import MacroRegistry, registry
