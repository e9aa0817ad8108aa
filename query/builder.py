"""
=========================
Fluent SQL query builder.
=========================

Builder accumulates the clauses of one statement (select list, source table,
joins, where/having predicates, grouping, ordering, paging, unions, locks)
together with the values bound to its placeholders. A Grammar turns the
accumulated state into dialect SQL; the connection executes it.

Every fluent method mutates the builder and returns it so calls chain.
Compilation (to_sql and friends) never changes what the builder compiles to.

Bindings are kept in named groups that are flattened in a fixed order:
select, from, join, where, group_by, having, order, union, union_order.

Example:
    >>> from query.builder import Builder
    >>> from query.grammars import MySqlGrammar
    >>>
    >>> query = (
    ...     Builder(None, MySqlGrammar())
    ...     .from_('users')
    ...     .where('votes', '>', 100)
    ...     .or_where(lambda q: q.where('name', 'John').where('active', 1))
    ... )
    >>> query.to_sql()
    'select * from `users` where `votes` > ? or (`name` = ? and `active` = ?)'
    >>> query.get_bindings()
    [100, 'John', 1]
"""

import copy
import functools
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from query.clauses import (
    Aggregate,
    BasicHaving,
    BasicWhere,
    BetweenHaving,
    BetweenWhere,
    ColumnWhere,
    DateBasedWhere,
    ExistsWhere,
    InRawWhere,
    InWhere,
    JsonContainsWhere,
    JsonLengthWhere,
    NestedWhere,
    NotExistsWhere,
    NotInRawWhere,
    NotInWhere,
    NotNullHaving,
    NotNullWhere,
    NullHaving,
    NullWhere,
    Order,
    RawHaving,
    RawOrder,
    RawWhere,
    RowValuesWhere,
    SubWhere,
    UnionClause,
)
from query.exceptions import InvalidArgumentError, QueryBuilderError
from query.expression import Expression, JsonExpression
from query.grammars.grammar import Grammar
from query.macros import registry

BINDING_GROUPS = (
    'select',
    'from',
    'join',
    'where',
    'group_by',
    'having',
    'order',
    'union',
    'union_order',
)

OPERATORS = (
    '=', '<', '>', '<=', '>=', '<>', '!=', '<=>',
    'like', 'like binary', 'not like', 'ilike',
    '&', '|', '^', '<<', '>>',
    'rlike', 'not rlike', 'regexp', 'not regexp',
    '~', '~*', '!~', '!~*', 'similar to', 'not similar to', 'not ilike', '~~*', '!~~*',
)

# strftime formats applied to date/time objects passed to the date wheres.
DATE_VALUE_FORMATS = {
    'date': '%Y-%m-%d',
    'time': '%H:%M:%S',
    'day': '%d',
    'month': '%m',
    'year': '%Y',
}

# Marks an argument the caller did not pass, so that None stays a value.
_MISSING = object()


class Builder:
    """Fluent builder for one SQL statement.

    Attributes:
        connection: Connection the query executes on (None for compile-only use)
        grammar: Grammar compiling the query
        bindings: Placeholder values, by binding group
        columns: Selected columns, None meaning every column
        from_table: Source table or raw table expression
        joins: JoinClause entries
        wheres: Where clause variants
        groups / havings / orders: Grouping, having and ordering clauses
        limit_ / offset_: Paging of the statement
        unions: Union entries, with union_orders, union_limit, union_offset
            applying to the combined result
        aggregate_: Aggregate set by count/sum/... for the next compile
        distinct_: Whether the select is distinct
        lock_: True (exclusive), False (shared) or a raw lock string
    """

    where_keyword = 'where'

    operators: Tuple[str, ...] = OPERATORS

    def __init__(self, connection: Any = None, grammar: Optional[Grammar] = None):
        if grammar is None:
            grammar = connection.get_query_grammar() if connection is not None else Grammar()

        self.connection = connection
        self.grammar = grammar
        self.bindings: Dict[str, List[Any]] = {group: [] for group in BINDING_GROUPS}

        for name, value in self._default_state().items():
            setattr(self, name, value)

    @staticmethod
    def _default_state() -> Dict[str, Any]:
        return {
            'aggregate_': None,
            'columns': None,
            'distinct_': False,
            'from_table': None,
            'joins': [],
            'wheres': [],
            'groups': [],
            'havings': [],
            'orders': [],
            'limit_': None,
            'offset_': None,
            'unions': [],
            'union_limit': None,
            'union_offset': None,
            'union_orders': [],
            'lock_': None,
        }

    def __getattr__(self, name: str) -> Callable:
        # Only reached when normal lookup fails, so builder attributes win
        # over macros with the same name.
        if name.startswith('__'):
            raise AttributeError(name)

        macro = registry.get(name)

        if macro is None:
            raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

        return functools.partial(macro, self)

    # ====================
    # Select / from
    # ====================

    def select(self, *columns: Any) -> 'Builder':
        """Set the columns to be selected, replacing any previous list.

        Columns may be passed as separate arguments or as one list. A mapping
        entry selects each value as its key: sub-queries become sub-selects,
        anything else "value as key".
        """
        self.columns = []
        self.bindings['select'] = []

        return self.add_select(*(self._flatten(columns) or ['*']))

    def add_select(self, *columns: Any) -> 'Builder':
        """Add columns to the select list."""
        if self.columns is None:
            self.columns = []

        for column in self._flatten(columns):
            if isinstance(column, Mapping):
                for alias, value in column.items():
                    if self._is_queryable(value):
                        self.select_sub(value, alias)
                    else:
                        self.columns.append(f"{value} as {alias}")
            else:
                self.columns.append(column)

        return self

    def select_raw(self, expression: str, bindings: Optional[Sequence[Any]] = None) -> 'Builder':
        self.add_select(Expression(expression))

        if bindings:
            self.add_binding(list(bindings), 'select')

        return self

    def select_sub(self, query: Any, as_: str) -> 'Builder':
        """Add a sub-select expression to the query."""
        sql, bindings = self._create_sub(query)

        return self.select_raw(f"({sql}) as {self.grammar.wrap(as_)}", bindings)

    def distinct(self) -> 'Builder':
        self.distinct_ = True
        return self

    def from_(self, table: Any, as_: Optional[str] = None) -> 'Builder':
        """Set the table the query targets.

        Args:
            table: Table name, raw expression, sub-query or callable
            as_: Optional alias (required for sub-queries)
        """
        if self._is_queryable(table):
            if as_ is None:
                raise InvalidArgumentError('A sub-query used as a table requires an alias.')
            return self.from_sub(table, as_)

        self.from_table = f"{table} as {as_}" if as_ else table

        return self

    def from_sub(self, query: Any, as_: str) -> 'Builder':
        sql, bindings = self._create_sub(query)

        return self.from_raw(f"({sql}) as {self.grammar.wrap_table(as_)}", bindings)

    def from_raw(self, expression: str, bindings: Optional[Sequence[Any]] = None) -> 'Builder':
        self.from_table = Expression(expression)
        self.add_binding(list(bindings or []), 'from')

        return self

    # ====================
    # Joins
    # ====================

    def join(
        self,
        table: Any,
        first: Any,
        operator: Optional[str] = None,
        second: Any = None,
        type_: str = 'inner',
        where: bool = False
    ) -> 'Builder':
        """Add a join clause to the query.

        A callable ``first`` receives the JoinClause to build compound
        conditions on it. With ``where=True`` the condition compares the
        column to a bound value instead of another column.
        """
        join = self.new_join_clause(self, type_, table)

        if callable(first):
            first(join)
        elif where:
            join.where(first, operator, second)
        else:
            join.on(first, operator, second)

        self.joins.append(join)
        self.add_binding(join.get_bindings(), 'join')

        return self

    def join_where(self, table: Any, first: Any, operator: str, second: Any, type_: str = 'inner') -> 'Builder':
        return self.join(table, first, operator, second, type_, True)

    def join_sub(
        self,
        query: Any,
        as_: str,
        first: Any,
        operator: Optional[str] = None,
        second: Any = None,
        type_: str = 'inner',
        where: bool = False
    ) -> 'Builder':
        """Join a sub-query under the given alias."""
        sql, bindings = self._create_sub(query)
        expression = Expression(f"({sql}) as {self.grammar.wrap_table(as_)}")

        self.add_binding(bindings, 'join')

        return self.join(expression, first, operator, second, type_, where)

    def left_join(self, table: Any, first: Any, operator: Optional[str] = None, second: Any = None) -> 'Builder':
        return self.join(table, first, operator, second, 'left')

    def left_join_where(self, table: Any, first: Any, operator: str, second: Any) -> 'Builder':
        return self.join_where(table, first, operator, second, 'left')

    def left_join_sub(
        self,
        query: Any,
        as_: str,
        first: Any,
        operator: Optional[str] = None,
        second: Any = None
    ) -> 'Builder':
        return self.join_sub(query, as_, first, operator, second, 'left')

    def right_join(self, table: Any, first: Any, operator: Optional[str] = None, second: Any = None) -> 'Builder':
        return self.join(table, first, operator, second, 'right')

    def right_join_where(self, table: Any, first: Any, operator: str, second: Any) -> 'Builder':
        return self.join_where(table, first, operator, second, 'right')

    def right_join_sub(
        self,
        query: Any,
        as_: str,
        first: Any,
        operator: Optional[str] = None,
        second: Any = None
    ) -> 'Builder':
        return self.join_sub(query, as_, first, operator, second, 'right')

    def cross_join(
        self,
        table: Any,
        first: Any = None,
        operator: Optional[str] = None,
        second: Any = None
    ) -> 'Builder':
        if first is not None:
            return self.join(table, first, operator, second, 'cross')

        self.joins.append(self.new_join_clause(self, 'cross', table))

        return self

    def new_join_clause(self, parent_query: 'Builder', type_: str, table: Any) -> 'Builder':
        # Import here to avoid circular import issues
        from query.join_clause import JoinClause

        return JoinClause(parent_query, type_, table)

    # ====================
    # Where
    # ====================

    def where(
        self,
        column: Any,
        operator: Any = _MISSING,
        value: Any = _MISSING,
        boolean: str = 'and'
    ) -> 'Builder':
        """Add a basic where clause to the query.

        Forms:
            where('votes', 100)              -> "votes" = ?
            where('votes', '>', 100)         -> "votes" > ?
            where('deleted_at', None)        -> "deleted_at" is null
            where({'a': 1, 'b': 2})          -> ("a" = ? and "b" = ?)
            where([['a', 1], ['b', '>', 2]]) -> ("a" = ? and "b" > ?)
            where(lambda q: ...)             -> nested, parenthesized group
            where('id', 'in', sub_builder)   -> "id" in (select ...)

        Args:
            column: Column name, expression, mapping/list of conditions,
                callable for a nested group, or a sub-query builder
            operator: Comparison operator, or the value when only two
                arguments are given
            value: Value to compare against; a callable or builder makes a
                sub-select
            boolean: Conjunction joining this clause to the previous one

        Raises:
            InvalidArgumentError: On an unknown operator, or None compared
                with an operator other than =, <> or !=
        """
        if isinstance(column, (Mapping, list, tuple)):
            return self._add_array_of_wheres(column, boolean)

        if callable(column) and not isinstance(column, Builder) and operator is _MISSING:
            return self.where_nested(column, boolean)

        value, operator = self._prepare_value_and_operator(value, operator)

        if isinstance(column, Builder):
            sql, bindings = self._create_sub(column)
            self.add_binding(bindings, 'where')
            column = Expression(f"({sql})")

        if self._is_queryable(value):
            return self.where_sub(column, operator, value, boolean)

        if value is None:
            if operator == '=':
                return self.where_null(column, boolean)
            return self.where_not_null(column, boolean)

        # JSON booleans are compared against the JSON literal, not a binding.
        if isinstance(column, str) and '->' in column and isinstance(value, bool):
            value = JsonExpression(value)

        self.wheres.append(BasicWhere(column, operator, value, boolean))

        if not isinstance(value, Expression):
            self._add_value_binding(value, 'where')

        return self

    def or_where(self, column: Any, operator: Any = _MISSING, value: Any = _MISSING) -> 'Builder':
        return self.where(column, operator, value, 'or')

    def where_not(self, column: Any, operator: Any = _MISSING, value: Any = _MISSING, boolean: str = 'and') -> 'Builder':
        """Add a negated, parenthesized where group."""
        if callable(column) and not isinstance(column, Builder):
            callback = column
        else:
            def callback(query):
                query.where(column, operator, value)

        return self.where_nested(callback, boolean + ' not')

    def where_column(
        self,
        first: Any,
        operator: Optional[str] = None,
        second: Any = None,
        boolean: str = 'and'
    ) -> 'Builder':
        """Add a column to column comparison.

        ``where_column('a', 'b')`` compares with "=".
        """
        if isinstance(first, (Mapping, list, tuple)):
            return self._add_array_of_wheres(first, boolean, column_comparison=True)

        if self._invalid_operator(operator):
            operator, second = '=', operator

        if second is None:
            raise InvalidArgumentError('A column comparison requires a second column.')

        self.wheres.append(ColumnWhere(first, operator.lower(), second, boolean))

        return self

    def or_where_column(self, first: Any, operator: Optional[str] = None, second: Any = None) -> 'Builder':
        return self.where_column(first, operator, second, 'or')

    def where_raw(self, sql: str, bindings: Optional[Sequence[Any]] = None, boolean: str = 'and') -> 'Builder':
        self.wheres.append(RawWhere(sql, boolean))
        self.add_binding(list(bindings or []), 'where')

        return self

    def or_where_raw(self, sql: str, bindings: Optional[Sequence[Any]] = None) -> 'Builder':
        return self.where_raw(sql, bindings, 'or')

    def where_in(self, column: Any, values: Any, boolean: str = 'and', not_: bool = False) -> 'Builder':
        """Add a "where in" clause.

        ``values`` may be an iterable or a sub-query (builder or callable).
        An empty list compiles to a predicate that is always false
        (or always true for "not in").
        """
        if self._is_queryable(values):
            sql, bindings = self._create_sub(values)
            self.add_binding(bindings, 'where')
            values = [Expression(sql)]

        values = list(values)

        clause = NotInWhere if not_ else InWhere
        self.wheres.append(clause(column, values, boolean))

        self.add_binding(self._clean_bindings(values), 'where')

        return self

    def or_where_in(self, column: Any, values: Any) -> 'Builder':
        return self.where_in(column, values, 'or')

    def where_not_in(self, column: Any, values: Any, boolean: str = 'and') -> 'Builder':
        return self.where_in(column, values, boolean, True)

    def or_where_not_in(self, column: Any, values: Any) -> 'Builder':
        return self.where_not_in(column, values, 'or')

    def where_integer_in_raw(self, column: Any, values: Iterable[Any], boolean: str = 'and', not_: bool = False) -> 'Builder':
        """Add a "where in" clause of integers inlined into the SQL.

        Raises:
            InvalidArgumentError: If a value cannot be converted to int
        """
        integers = []

        for value in values:
            try:
                integers.append(int(value))
            except (TypeError, ValueError) as e:
                raise InvalidArgumentError(f"Raw in-list values must be integers, got {value!r}") from e

        clause = NotInRawWhere if not_ else InRawWhere
        self.wheres.append(clause(column, integers, boolean))

        return self

    def where_integer_not_in_raw(self, column: Any, values: Iterable[Any], boolean: str = 'and') -> 'Builder':
        return self.where_integer_in_raw(column, values, boolean, True)

    def where_null(self, columns: Any, boolean: str = 'and', not_: bool = False) -> 'Builder':
        clause = NotNullWhere if not_ else NullWhere

        for column in self._wrap_list(columns):
            self.wheres.append(clause(column, boolean))

        return self

    def or_where_null(self, columns: Any) -> 'Builder':
        return self.where_null(columns, 'or')

    def where_not_null(self, columns: Any, boolean: str = 'and') -> 'Builder':
        return self.where_null(columns, boolean, True)

    def or_where_not_null(self, columns: Any) -> 'Builder':
        return self.where_not_null(columns, 'or')

    def where_between(self, column: Any, values: Sequence[Any], boolean: str = 'and', not_: bool = False) -> 'Builder':
        """Add a between clause; only the first and last values are used."""
        values = list(values)

        if not values:
            raise InvalidArgumentError('A between clause requires at least one value.')

        self.wheres.append(BetweenWhere(column, values, not_, boolean))
        self.add_binding(self._clean_bindings([values[0], values[-1]]), 'where')

        return self

    def or_where_between(self, column: Any, values: Sequence[Any]) -> 'Builder':
        return self.where_between(column, values, 'or')

    def where_not_between(self, column: Any, values: Sequence[Any], boolean: str = 'and') -> 'Builder':
        return self.where_between(column, values, boolean, True)

    def or_where_not_between(self, column: Any, values: Sequence[Any]) -> 'Builder':
        return self.where_not_between(column, values, 'or')

    def where_date(self, column: Any, operator: Any, value: Any = _MISSING, boolean: str = 'and') -> 'Builder':
        return self._add_date_based_where('date', column, operator, value, boolean)

    def or_where_date(self, column: Any, operator: Any, value: Any = _MISSING) -> 'Builder':
        return self.where_date(column, operator, value, 'or')

    def where_time(self, column: Any, operator: Any, value: Any = _MISSING, boolean: str = 'and') -> 'Builder':
        return self._add_date_based_where('time', column, operator, value, boolean)

    def or_where_time(self, column: Any, operator: Any, value: Any = _MISSING) -> 'Builder':
        return self.where_time(column, operator, value, 'or')

    def where_day(self, column: Any, operator: Any, value: Any = _MISSING, boolean: str = 'and') -> 'Builder':
        return self._add_date_based_where('day', column, operator, value, boolean)

    def where_month(self, column: Any, operator: Any, value: Any = _MISSING, boolean: str = 'and') -> 'Builder':
        return self._add_date_based_where('month', column, operator, value, boolean)

    def where_year(self, column: Any, operator: Any, value: Any = _MISSING, boolean: str = 'and') -> 'Builder':
        return self._add_date_based_where('year', column, operator, value, boolean)

    def _add_date_based_where(self, part: str, column: Any, operator: Any, value: Any, boolean: str) -> 'Builder':
        value, operator = self._prepare_value_and_operator(value, operator)

        if hasattr(value, 'strftime'):
            value = value.strftime(DATE_VALUE_FORMATS[part])
        elif part in ('day', 'month') and not isinstance(value, Expression):
            value = str(value).zfill(2)

        self.wheres.append(DateBasedWhere(part, column, operator, value, boolean))

        if not isinstance(value, Expression):
            self._add_value_binding(value, 'where')

        return self

    def where_nested(self, callback: Callable[['Builder'], Any], boolean: str = 'and') -> 'Builder':
        """Add a parenthesized group built by the callback."""
        query = self.for_nested_where()
        callback(query)

        return self.add_nested_where_query(query, boolean)

    def for_nested_where(self) -> 'Builder':
        return self.new_query().from_(self.from_table)

    def add_nested_where_query(self, query: 'Builder', boolean: str = 'and') -> 'Builder':
        # An empty group adds nothing.
        if query.wheres:
            self.wheres.append(NestedWhere(query, boolean))
            self.add_binding(query.get_raw_bindings()['where'], 'where')

        return self

    def where_sub(self, column: Any, operator: str, query: Any, boolean: str = 'and') -> 'Builder':
        """Compare a column against the result of a sub-select."""
        query = self._resolve_sub_query(query)

        self.wheres.append(SubWhere(column, operator, query, boolean))
        self.add_binding(query.get_bindings(), 'where')

        return self

    def where_exists(self, query: Any, boolean: str = 'and', not_: bool = False) -> 'Builder':
        query = self._resolve_sub_query(query)

        return self.add_where_exists_query(query, boolean, not_)

    def or_where_exists(self, query: Any, not_: bool = False) -> 'Builder':
        return self.where_exists(query, 'or', not_)

    def where_not_exists(self, query: Any, boolean: str = 'and') -> 'Builder':
        return self.where_exists(query, boolean, True)

    def or_where_not_exists(self, query: Any) -> 'Builder':
        return self.where_exists(query, 'or', True)

    def add_where_exists_query(self, query: 'Builder', boolean: str = 'and', not_: bool = False) -> 'Builder':
        clause = NotExistsWhere if not_ else ExistsWhere
        self.wheres.append(clause(query, boolean))
        self.add_binding(query.get_bindings(), 'where')

        return self

    def where_row_values(self, columns: Sequence[Any], operator: str, values: Sequence[Any], boolean: str = 'and') -> 'Builder':
        """Compare a row of columns against a row of values.

        Raises:
            InvalidArgumentError: If the column and value counts differ
        """
        if len(columns) != len(values):
            raise InvalidArgumentError('The number of columns must match the number of values')

        self.wheres.append(RowValuesWhere(list(columns), operator, list(values), boolean))
        self.add_binding(self._clean_bindings(values), 'where')

        return self

    def or_where_row_values(self, columns: Sequence[Any], operator: str, values: Sequence[Any]) -> 'Builder':
        return self.where_row_values(columns, operator, values, 'or')

    def where_json_contains(self, column: str, value: Any, boolean: str = 'and', not_: bool = False) -> 'Builder':
        self.wheres.append(JsonContainsWhere(column, value, not_, boolean))

        if not isinstance(value, Expression):
            self.add_binding(self.grammar.prepare_binding_for_json_contains(value), 'where')

        return self

    def or_where_json_contains(self, column: str, value: Any) -> 'Builder':
        return self.where_json_contains(column, value, 'or')

    def where_json_doesnt_contain(self, column: str, value: Any, boolean: str = 'and') -> 'Builder':
        return self.where_json_contains(column, value, boolean, True)

    def where_json_length(self, column: str, operator: Any, value: Any = _MISSING, boolean: str = 'and') -> 'Builder':
        value, operator = self._prepare_value_and_operator(value, operator)

        self.wheres.append(JsonLengthWhere(column, operator, value, boolean))

        if not isinstance(value, Expression):
            self.add_binding(int(value), 'where')

        return self

    def or_where_json_length(self, column: str, operator: Any, value: Any = _MISSING) -> 'Builder':
        return self.where_json_length(column, operator, value, 'or')

    def _add_array_of_wheres(self, conditions: Any, boolean: str, column_comparison: bool = False) -> 'Builder':
        """Add a list or mapping of conditions as one nested group."""
        def callback(query):
            method = query.where_column if column_comparison else query.where

            if isinstance(conditions, Mapping):
                for key, value in conditions.items():
                    method(key, '=', value, boolean)
            else:
                for condition in conditions:
                    method(*condition)

        return self.where_nested(callback, boolean)

    # ====================
    # Group / having
    # ====================

    def group_by(self, *groups: Any) -> 'Builder':
        self.groups.extend(self._flatten(groups))
        return self

    def group_by_raw(self, sql: str, bindings: Optional[Sequence[Any]] = None) -> 'Builder':
        self.groups.append(Expression(sql))
        self.add_binding(list(bindings or []), 'group_by')

        return self

    def having(self, column: Any, operator: Any = _MISSING, value: Any = _MISSING, boolean: str = 'and') -> 'Builder':
        """Add a having clause; argument forms match where()."""
        value, operator = self._prepare_value_and_operator(value, operator)

        self.havings.append(BasicHaving(column, operator, value, boolean))

        if not isinstance(value, Expression):
            self._add_value_binding(value, 'having')

        return self

    def or_having(self, column: Any, operator: Any = _MISSING, value: Any = _MISSING) -> 'Builder':
        return self.having(column, operator, value, 'or')

    def having_raw(self, sql: str, bindings: Optional[Sequence[Any]] = None, boolean: str = 'and') -> 'Builder':
        self.havings.append(RawHaving(sql, boolean))
        self.add_binding(list(bindings or []), 'having')

        return self

    def or_having_raw(self, sql: str, bindings: Optional[Sequence[Any]] = None) -> 'Builder':
        return self.having_raw(sql, bindings, 'or')

    def having_between(self, column: Any, values: Sequence[Any], boolean: str = 'and', not_: bool = False) -> 'Builder':
        values = list(values)

        if not values:
            raise InvalidArgumentError('A between clause requires at least one value.')

        self.havings.append(BetweenHaving(column, values, not_, boolean))
        self.add_binding(self._clean_bindings([values[0], values[-1]]), 'having')

        return self

    def having_null(self, columns: Any, boolean: str = 'and', not_: bool = False) -> 'Builder':
        clause = NotNullHaving if not_ else NullHaving

        for column in self._wrap_list(columns):
            self.havings.append(clause(column, boolean))

        return self

    def having_not_null(self, columns: Any, boolean: str = 'and') -> 'Builder':
        return self.having_null(columns, boolean, True)

    # ====================
    # Order / paging
    # ====================

    def order_by(self, column: Any, direction: str = 'asc') -> 'Builder':
        """Add an order by clause.

        Once the query has unions, ordering applies to the union result.

        Raises:
            InvalidArgumentError: If the direction is not asc or desc
        """
        group = 'union_order' if self.unions else 'order'

        if self._is_queryable(column):
            sql, bindings = self._create_sub(column)
            self.add_binding(bindings, group)
            column = Expression(f"({sql})")

        direction = direction.lower()

        if direction not in ('asc', 'desc'):
            raise InvalidArgumentError('Order direction must be "asc" or "desc".')

        orders = self.union_orders if self.unions else self.orders
        orders.append(Order(column, direction))

        return self

    def order_by_desc(self, column: Any) -> 'Builder':
        return self.order_by(column, 'desc')

    def latest(self, column: str = 'created_at') -> 'Builder':
        return self.order_by(column, 'desc')

    def oldest(self, column: str = 'created_at') -> 'Builder':
        return self.order_by(column, 'asc')

    def in_random_order(self, seed: Any = '') -> 'Builder':
        return self.order_by_raw(self.grammar.compile_random(seed))

    def order_by_raw(self, sql: str, bindings: Optional[Sequence[Any]] = None) -> 'Builder':
        orders = self.union_orders if self.unions else self.orders
        orders.append(RawOrder(sql))

        self.add_binding(list(bindings or []), 'union_order' if self.unions else 'order')

        return self

    def reorder(self, column: Any = None, direction: str = 'asc') -> 'Builder':
        """Remove every ordering, optionally replacing it with a new one."""
        self.orders = []
        self.union_orders = []
        self.bindings['order'] = []
        self.bindings['union_order'] = []

        if column is not None:
            return self.order_by(column, direction)

        return self

    def offset(self, value: int) -> 'Builder':
        value = max(0, int(value))

        if self.unions:
            self.union_offset = value
        else:
            self.offset_ = value

        return self

    def skip(self, value: int) -> 'Builder':
        return self.offset(value)

    def limit(self, value: int) -> 'Builder':
        # Negative limits are ignored.
        if value is not None and int(value) >= 0:
            if self.unions:
                self.union_limit = int(value)
            else:
                self.limit_ = int(value)

        return self

    def take(self, value: int) -> 'Builder':
        return self.limit(value)

    def for_page(self, page: int, per_page: int = 15) -> 'Builder':
        return self.offset((page - 1) * per_page).limit(per_page)

    # ====================
    # Unions / locks
    # ====================

    def union(self, query: Any, all: bool = False) -> 'Builder':
        """Add a union with a builder, or with a query built by a callable."""
        if callable(query) and not isinstance(query, Builder):
            callback = query
            query = self.new_query()
            callback(query)

        self.unions.append(UnionClause(query, all))
        self.add_binding(query.get_bindings(), 'union')

        return self

    def union_all(self, query: Any) -> 'Builder':
        return self.union(query, True)

    def lock(self, value: Union[bool, str] = True) -> 'Builder':
        self.lock_ = value
        return self

    def lock_for_update(self) -> 'Builder':
        return self.lock(True)

    def shared_lock(self) -> 'Builder':
        return self.lock(False)

    def when(self, value: Any, callback: Callable, default: Optional[Callable] = None) -> 'Builder':
        """Apply the callback if the value is truthy, else the default."""
        if value:
            return callback(self, value) or self

        if default is not None:
            return default(self, value) or self

        return self

    # ====================
    # Bindings
    # ====================

    def get_bindings(self) -> List[Any]:
        """Get the flattened bindings, in binding-group order."""
        return [binding for group in BINDING_GROUPS for binding in self.bindings[group]]

    def get_raw_bindings(self) -> Dict[str, List[Any]]:
        return self.bindings

    def set_bindings(self, bindings: Sequence[Any], type_: str = 'where') -> 'Builder':
        self._check_binding_group(type_)
        self.bindings[type_] = list(bindings)

        return self

    def add_binding(self, value: Any, type_: str = 'where') -> 'Builder':
        """Append a value, or every value of a list, to a binding group.

        Raises:
            InvalidArgumentError: If the binding group does not exist
        """
        self._check_binding_group(type_)

        if isinstance(value, (list, tuple)):
            self.bindings[type_].extend(value)
        else:
            self.bindings[type_].append(value)

        return self

    def _add_value_binding(self, value: Any, type_: str) -> None:
        # A comparison value fills exactly one placeholder, lists included.
        self.bindings[type_].append(value)

    def merge_bindings(self, query: 'Builder') -> 'Builder':
        for group, values in query.bindings.items():
            self.bindings[group].extend(values)

        return self

    def _check_binding_group(self, type_: str) -> None:
        if type_ not in self.bindings:
            raise InvalidArgumentError(f"Invalid binding type: {type_}.")

    @staticmethod
    def _clean_bindings(bindings: Iterable[Any]) -> List[Any]:
        return [binding for binding in bindings if not isinstance(binding, Expression)]

    # ====================
    # Compilation
    # ====================

    def to_sql(self) -> str:
        """Compile the query to a select statement."""
        return self.grammar.compile_select(self)

    def to_sql_and_bindings(self) -> Tuple[str, List[Any]]:
        return self.to_sql(), self.get_bindings()

    def to_exists_sql(self) -> Tuple[str, List[Any]]:
        return self.grammar.compile_exists(self), self.get_bindings()

    def to_insert_sql(self, values: Any) -> Tuple[str, List[Any]]:
        """Compile an insert of one record or a list of records.

        Raises:
            InvalidArgumentError: If the records have different columns
        """
        records = self._prepare_insert_values(values)

        return self.grammar.compile_insert(self, records), self._insert_bindings(records)

    def to_insert_or_ignore_sql(self, values: Any) -> Tuple[str, List[Any]]:
        records = self._prepare_insert_values(values)

        return self.grammar.compile_insert_or_ignore(self, records), self._insert_bindings(records)

    def to_insert_get_id_sql(self, values: Any, sequence: Optional[str] = None) -> Tuple[str, List[Any]]:
        records = self._prepare_insert_values(values)

        return self.grammar.compile_insert_get_id(self, records, sequence), self._insert_bindings(records)

    def to_update_sql(self, values: Mapping) -> Tuple[str, List[Any]]:
        sql = self.grammar.compile_update(self, values)

        return sql, self.grammar.prepare_bindings_for_update(self.bindings, values)

    def to_delete_sql(self, id: Any = None) -> Tuple[str, List[Any]]:
        """Compile a delete statement, optionally restricted to one id."""
        query = self

        if id is not None:
            query = self.clone().where(f"{self.grammar.table_alias(self.from_table)}.id", '=', id)

        sql = self.grammar.compile_delete(query)

        return sql, self.grammar.prepare_bindings_for_delete(query.bindings)

    def to_truncate_sql(self) -> Dict[str, List[Any]]:
        return self.grammar.compile_truncate(self)

    def _prepare_insert_values(self, values: Any) -> List[Dict[str, Any]]:
        """Normalize insert values to records sharing the first record's column order."""
        if isinstance(values, Mapping):
            values = [values]

        records = [dict(record) for record in values]

        if not records:
            return []

        columns = list(records[0])

        aligned = []
        for record in records:
            if set(record) != set(columns):
                raise InvalidArgumentError('Every inserted record must have the same columns.')
            aligned.append({column: record[column] for column in columns})

        # Only empty records: insert a row of defaults.
        if not columns:
            return []

        return aligned

    def _insert_bindings(self, records: List[Dict[str, Any]]) -> List[Any]:
        return self._clean_bindings(value for record in records for value in record.values())

    # ====================
    # Execution
    # ====================

    def get(self, columns: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Execute the select and return every row as a dict.

        Args:
            columns: Columns to select when the query has none set
        """
        original = self.columns

        if original is None and columns:
            self.columns = list(columns)

        try:
            sql, bindings = self.to_sql_and_bindings()
        finally:
            self.columns = original

        return self._get_connection().select(sql, bindings)

    def first(self, columns: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute the query with limit 1 and return the row, or None."""
        rows = self.clone().limit(1).get(columns)

        return rows[0] if rows else None

    def find(self, id: Any, columns: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        return self.clone().where('id', '=', id).first(columns)

    def value(self, column: str) -> Any:
        """Get a single column's value from the first row."""
        row = self.first([column])

        return next(iter(row.values())) if row else None

    def pluck(self, column: str) -> List[Any]:
        rows = self.get([column])

        return [next(iter(row.values())) for row in rows]

    def exists(self) -> bool:
        sql, bindings = self.to_exists_sql()
        rows = self._get_connection().select(sql, bindings)

        return bool(rows[0]['exists']) if rows else False

    def doesnt_exist(self) -> bool:
        return not self.exists()

    def count(self, columns: Any = '*') -> int:
        return int(self.aggregate('count', self._wrap_list(columns)) or 0)

    def min(self, column: Any) -> Any:
        return self.aggregate('min', [column])

    def max(self, column: Any) -> Any:
        return self.aggregate('max', [column])

    def sum(self, column: Any) -> Any:
        result = self.aggregate('sum', [column])

        return result if result is not None else 0

    def avg(self, column: Any) -> Any:
        return self.aggregate('avg', [column])

    def average(self, column: Any) -> Any:
        return self.avg(column)

    def aggregate(self, function: str, columns: Sequence[Any] = ('*',)) -> Any:
        """Execute an aggregate function and return its value."""
        rows = self.for_aggregate(function, columns).get()

        return rows[0]['aggregate'] if rows else None

    def for_aggregate(self, function: str, columns: Sequence[Any] = ('*',)) -> 'Builder':
        """Copy of the query with the aggregate set, ready to compile.

        Without unions the select list and its bindings are dropped; without
        groups the ordering is dropped as well.
        """
        if self.unions:
            query = self.clone()
        else:
            query = self.clone_without(['columns']).clone_without_bindings(['select'])

        query.aggregate_ = Aggregate(function, list(columns))

        if not query.groups:
            query.orders = []
            query.bindings['order'] = []

        return query

    def insert(self, values: Any) -> bool:
        """Insert one record or a list of records."""
        if isinstance(values, Mapping):
            values = [values]

        values = list(values)

        if not values:
            return True

        sql, bindings = self.to_insert_sql(values)

        return self._get_connection().insert(sql, bindings)

    def insert_or_ignore(self, values: Any) -> int:
        """Insert records, ignoring rows the database rejects."""
        if not values:
            return 0

        sql, bindings = self.to_insert_or_ignore_sql(values)

        return self._get_connection().affecting_statement(sql, bindings)

    def insert_get_id(self, values: Mapping, sequence: Optional[str] = None) -> Any:
        sql, bindings = self.to_insert_get_id_sql(values, sequence)

        return self._get_connection().insert_get_id(sql, bindings, sequence)

    def insert_using(self, columns: Sequence[str], query: Any) -> int:
        """Insert the rows produced by a sub-query."""
        sql, bindings = self._create_sub(query)

        return self._get_connection().affecting_statement(
            self.grammar.compile_insert_using(self, list(columns), sql),
            self._clean_bindings(bindings)
        )

    def update(self, values: Mapping) -> int:
        sql, bindings = self.to_update_sql(values)

        return self._get_connection().update(sql, bindings)

    def increment(self, column: str, amount: Union[int, float] = 1, extra: Optional[Mapping] = None) -> int:
        """Increment a column by an amount, updating extra columns too.

        Raises:
            InvalidArgumentError: If the amount is not numeric
        """
        return self._step(column, amount, extra, '+')

    def decrement(self, column: str, amount: Union[int, float] = 1, extra: Optional[Mapping] = None) -> int:
        return self._step(column, amount, extra, '-')

    def _step(self, column: str, amount: Any, extra: Optional[Mapping], sign: str) -> int:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise InvalidArgumentError('Non-numeric value passed to increment method.')

        columns = {column: self.raw(f"{self.grammar.wrap(column)} {sign} {amount}")}
        columns.update(extra or {})

        return self.update(columns)

    def delete(self, id: Any = None) -> int:
        sql, bindings = self.to_delete_sql(id)

        return self._get_connection().delete(sql, bindings)

    def truncate(self) -> None:
        connection = self._get_connection()

        for sql, bindings in self.to_truncate_sql().items():
            connection.statement(sql, bindings)

    def raw(self, value: Any) -> Expression:
        return Expression(value)

    def _get_connection(self) -> Any:
        if self.connection is None:
            raise QueryBuilderError('No database connection is available to run the query.')

        return self.connection

    # ====================
    # Copies / sub-queries
    # ====================

    def new_query(self) -> 'Builder':
        """Get a fresh builder on the same connection and grammar."""
        return Builder(self.connection, self.grammar)

    def for_sub_query(self) -> 'Builder':
        return self.new_query()

    def clone(self) -> 'Builder':
        """Deep copy the query, sharing the connection and grammar."""
        memo = {id(self.connection): self.connection, id(self.grammar): self.grammar}

        return copy.deepcopy(self, memo)

    def clone_without(self, properties: Iterable[str]) -> 'Builder':
        clone = self.clone()
        defaults = self._default_state()

        for name in properties:
            if name not in defaults:
                raise InvalidArgumentError(f"Unknown query property: {name}")
            setattr(clone, name, defaults[name])

        return clone

    def clone_without_bindings(self, groups: Iterable[str]) -> 'Builder':
        clone = self.clone()

        for group in groups:
            clone._check_binding_group(group)
            clone.bindings[group] = []

        return clone

    # ====================
    # Helpers
    # ====================

    def _create_sub(self, query: Any) -> Tuple[str, List[Any]]:
        """Compile a sub-query given as builder, callable or raw string."""
        if callable(query) and not isinstance(query, Builder):
            callback = query
            query = self.for_sub_query()
            callback(query)

        if isinstance(query, Builder):
            return query.to_sql(), query.get_bindings()

        if isinstance(query, (str, Expression)):
            return str(query), []

        raise InvalidArgumentError('A sub-query must be a query builder instance, a callable, or a string.')

    def _resolve_sub_query(self, query: Any) -> 'Builder':
        if isinstance(query, Builder):
            return query

        if callable(query):
            sub = self.for_sub_query()
            query(sub)
            return sub

        raise InvalidArgumentError('A sub-query must be a query builder instance or a callable.')

    def _prepare_value_and_operator(self, value: Any, operator: Any) -> Tuple[Any, str]:
        """Resolve the (value, operator) pair of a comparison.

        A single trailing argument is the value compared with "=".
        """
        if value is _MISSING:
            value = None if operator is _MISSING else operator
            operator = '='
        elif operator is _MISSING:
            operator = '='

        if self._invalid_operator(operator):
            raise InvalidArgumentError(f"Illegal operator: {operator!r}")

        if self._invalid_operator_and_value(operator, value):
            raise InvalidArgumentError('Illegal operator and value combination.')

        return value, operator.lower()

    def _invalid_operator(self, operator: Any) -> bool:
        if not isinstance(operator, str):
            return True

        operator = operator.lower()

        return operator not in self.operators and operator not in self.grammar.operators

    def _invalid_operator_and_value(self, operator: str, value: Any) -> bool:
        return value is None and operator.lower() not in ('=', '<>', '!=')

    @staticmethod
    def _is_queryable(value: Any) -> bool:
        return isinstance(value, Builder) or (callable(value) and not isinstance(value, Expression))

    @staticmethod
    def _flatten(columns: Sequence[Any]) -> List[Any]:
        if len(columns) == 1 and isinstance(columns[0], (list, tuple)):
            return list(columns[0])

        return list(columns)

    @staticmethod
    def _wrap_list(value: Any) -> List[Any]:
        return list(value) if isinstance(value, (list, tuple)) else [value]
