"""
==================================================
Dialect-agnostic SQL identifier and value grammar.
==================================================

BaseGrammar holds the primitives every SQL-rendering strategy shares:
identifier quoting, table prefixing, alias splitting, placeholder generation
and literal quoting. The query grammars build on it and a schema grammar can
use the same primitives without pulling in statement compilation.

Primitives:
- wrap: Quote a column or table reference, honouring aliases and dots
- wrap_table: Quote a table reference with the table prefix applied
- wrap_value: Quote a single identifier segment (dialect specific)
- columnize: Comma-join wrapped columns
- parameter / parameterize: Placeholders for bound values
- quote_string: Single-quote literals for contexts that cannot bind

Example:
    >>> from query.grammars.base import BaseGrammar
    >>>
    >>> grammar = BaseGrammar(table_prefix='app_')
    >>> grammar.wrap_table('users as u')
    '"app_users" as "app_u"'
    >>> grammar.columnize(['id', 'users.email'])
    '"id", "app_users"."email"'
"""

import re
from typing import Any, Iterable, List, Sequence, Union

from query.exceptions import UnsupportedFeatureError
from query.expression import Expression

ALIAS_PATTERN = re.compile(r'\s+as\s+', re.IGNORECASE)


class BaseGrammar:
    """Identifier and parameter primitives shared by all grammars.

    Attributes:
        table_prefix: Prefix prepended to every wrapped table name
    """

    def __init__(self, table_prefix: str = ''):
        self.table_prefix = table_prefix

    def wrap_array(self, values: Iterable[Any]) -> List[str]:
        """Wrap each value of a sequence in keyword identifiers."""
        return [self.wrap(value) for value in values]

    def wrap_table(self, table: Union[str, Expression]) -> str:
        """Wrap a table in keyword identifiers.

        Args:
            table: Table name, optionally aliased ("users as u"), or Expression

        Returns:
            Quoted table reference with the table prefix applied
        """
        if self.is_expression(table):
            return self.get_value(table)

        return self.wrap(self.table_prefix + table, True)

    def wrap(self, value: Union[str, Expression], prefix_alias: bool = False) -> str:
        """Wrap a value in keyword identifiers.

        Args:
            value: Column or table reference, or an Expression
            prefix_alias: Prefix the alias with the table prefix (tables only)

        Returns:
            Quoted reference
        """
        if self.is_expression(value):
            return self.get_value(value)

        value = str(value)

        # Aliased values are split so each side is wrapped on its own and
        # joined back with the "as" connector.
        if ALIAS_PATTERN.search(value):
            return self.wrap_aliased_value(value, prefix_alias)

        if self.is_json_selector(value):
            return self.wrap_json_selector(value)

        return self.wrap_segments(value.split('.'))

    def columnize(self, columns: Iterable[Union[str, Expression]]) -> str:
        """Convert a sequence of column names into a delimited string."""
        return ', '.join(self.wrap(column) for column in columns)

    def parameterize(self, values: Iterable[Any]) -> str:
        """Create query parameter placeholders for a sequence of values."""
        return ', '.join(self.parameter(value) for value in values)

    def parameter(self, value: Any) -> str:
        """Get the query parameter placeholder for a value.

        Expressions are emitted verbatim and take no binding slot.
        """
        return self.get_value(value) if self.is_expression(value) else '?'

    def quote_string(self, value: Union[str, Sequence[str]]) -> str:
        """Quote the given string literal, or each element of a list.

        Only for contexts that cannot take bound parameters. Never pass
        untrusted input through here.
        """
        if isinstance(value, (list, tuple)):
            return ', '.join(self.quote_string(item) for item in value)

        return f"'{value}'"

    def is_expression(self, value: Any) -> bool:
        return isinstance(value, Expression)

    def get_value(self, expression: Expression) -> Any:
        return expression.get_value()

    def get_date_format(self) -> str:
        """Get the strftime format for database stored dates."""
        return '%Y-%m-%d %H:%M:%S'

    def get_table_prefix(self) -> str:
        return self.table_prefix

    def set_table_prefix(self, prefix: str) -> 'BaseGrammar':
        """Set the grammar's table prefix.

        Returns:
            The grammar itself for chaining
        """
        self.table_prefix = prefix
        return self

    def is_json_selector(self, value: str) -> bool:
        return '->' in value

    def wrap_json_selector(self, value: str) -> str:
        """Wrap a JSON selector ("column->path") for the dialect."""
        raise UnsupportedFeatureError('This database engine does not support JSON operations.')

    def wrap_aliased_value(self, value: str, prefix_alias: bool = False) -> str:
        """Wrap a value that has an alias.

        When wrapping a table the alias also receives the table prefix so
        later references to it resolve. Columns never do.
        """
        segments = ALIAS_PATTERN.split(value, maxsplit=1)

        if prefix_alias:
            segments[1] = self.table_prefix + segments[1]

        return f"{self.wrap(segments[0])} as {self.wrap_value(segments[1])}"

    def wrap_segments(self, segments: List[str]) -> str:
        """Wrap the given value segments, the first as a table if dotted."""
        return '.'.join(
            self.wrap_table(segment) if index == 0 and len(segments) > 1
            else self.wrap_value(segment)
            for index, segment in enumerate(segments)
        )

    def wrap_value(self, value: str) -> str:
        """Wrap a single string in keyword identifiers."""
        if value == '*':
            return value

        return '"' + value.replace('"', '""') + '"'
