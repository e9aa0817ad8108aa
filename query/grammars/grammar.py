"""
===========================================
Statement compiler for the query builder.
===========================================

Grammar turns a Builder's clause tree into SQL text. Select statements are
assembled from components compiled in a fixed order; where and having clauses
are compiled through dispatch tables keyed by the clause type tag, so dialect
grammars override a single method to change one fragment.

Compilation is a pure read of the builder. The only transient change is the
"all columns" substitution in compile_select, which is undone before the call
returns.

Statements:
- compile_select: SELECT with aggregate, joins, wheres, grouping, unions, lock
- compile_exists: SELECT EXISTS wrapper around a select
- compile_insert / compile_insert_or_ignore / compile_insert_get_id / compile_insert_using
- compile_update: UPDATE with optional joins
- compile_delete: DELETE with optional joins
- compile_truncate: TRUNCATE statements with their bindings

Example:
    >>> from query.grammars.grammar import Grammar
    >>>
    >>> grammar = Grammar()
    >>> sql = grammar.compile_select(builder)
    >>> bindings = builder.get_bindings()
"""

import json
import re
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Tuple

from query.clauses import (
    Aggregate,
    BasicHaving,
    BasicWhere,
    BetweenHaving,
    BetweenWhere,
    ColumnWhere,
    DateBasedWhere,
    ExistsWhere,
    HavingClause,
    HavingType,
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
    RawHaving,
    RawOrder,
    RawWhere,
    RowValuesWhere,
    SubWhere,
    UnionClause,
    WhereType,
)
from query.exceptions import UnsupportedFeatureError
from query.grammars.base import ALIAS_PATTERN, BaseGrammar

if TYPE_CHECKING:
    from query.builder import Builder

LEADING_BOOLEAN = re.compile(r'^(and|or) ', re.IGNORECASE)

# Builder attributes holding each select component.
COMPONENT_ATTRIBUTES = {
    'aggregate': 'aggregate_',
    'from': 'from_table',
    'limit': 'limit_',
    'offset': 'offset_',
    'lock': 'lock_',
}


class Grammar(BaseGrammar):
    """ANSI-flavoured query grammar that dialect grammars extend.

    Attributes:
        operators: Operators the dialect accepts on top of the builder's set
        select_components: Builder components compiled into a select, in order
        supports_savepoints: Whether the engine understands SAVEPOINT
    """

    operators: Tuple[str, ...] = ()

    select_components: Tuple[str, ...] = (
        'aggregate',
        'columns',
        'from',
        'joins',
        'wheres',
        'groups',
        'havings',
        'orders',
        'limit',
        'offset',
        'unions',
        'lock',
    )

    supports_savepoints: bool = True

    def __init__(self, table_prefix: str = ''):
        super().__init__(table_prefix)

        self._component_compilers: Dict[str, Callable[['Builder', Any], str]] = {
            'aggregate': self.compile_aggregate,
            'columns': self.compile_columns,
            'from': self.compile_from,
            'joins': self.compile_joins,
            'wheres': self.compile_wheres,
            'groups': self.compile_groups,
            'havings': self.compile_havings,
            'orders': self.compile_orders,
            'limit': self.compile_limit,
            'offset': self.compile_offset,
            'unions': self.compile_unions,
            'lock': self.compile_lock,
        }

        self._where_compilers: Dict[WhereType, Callable[['Builder', Any], str]] = {
            WhereType.RAW: self.where_raw,
            WhereType.BASIC: self.where_basic,
            WhereType.IN: self.where_in,
            WhereType.NOT_IN: self.where_not_in,
            WhereType.IN_RAW: self.where_in_raw,
            WhereType.NOT_IN_RAW: self.where_not_in_raw,
            WhereType.NULL: self.where_null,
            WhereType.NOT_NULL: self.where_not_null,
            WhereType.BETWEEN: self.where_between,
            WhereType.DATE_BASED: self.where_date_based,
            WhereType.COLUMN: self.where_column,
            WhereType.NESTED: self.where_nested,
            WhereType.SUB: self.where_sub,
            WhereType.EXISTS: self.where_exists,
            WhereType.NOT_EXISTS: self.where_not_exists,
            WhereType.ROW_VALUES: self.where_row_values,
            WhereType.JSON_CONTAINS: self.where_json_contains,
            WhereType.JSON_LENGTH: self.where_json_length,
        }

        self._date_compilers: Dict[str, Callable[['Builder', DateBasedWhere], str]] = {
            'date': self.where_date,
            'time': self.where_time,
            'day': self.where_day,
            'month': self.where_month,
            'year': self.where_year,
        }

        self._having_compilers: Dict[HavingType, Callable[[Any], str]] = {
            HavingType.BASIC: self.having_basic,
            HavingType.RAW: self.having_raw,
            HavingType.BETWEEN: self.having_between,
            HavingType.NULL: self.having_null,
            HavingType.NOT_NULL: self.having_not_null,
        }

    def get_operators(self) -> Tuple[str, ...]:
        """Get the dialect specific operators."""
        return self.operators

    # ====================
    # Select
    # ====================

    def compile_select(self, query: 'Builder') -> str:
        """Compile a select query into SQL.

        Args:
            query: Builder to compile

        Returns:
            SQL select statement
        """
        if query.unions and query.aggregate_ is not None:
            return self.compile_union_aggregate(query)

        # No columns means every column. The substitution is only for the
        # duration of this call.
        original = query.columns

        if query.columns is None:
            query.columns = ['*']

        try:
            return self.concatenate(self.compile_components(query)).strip()
        finally:
            query.columns = original

    def compile_components(self, query: 'Builder') -> List[str]:
        """Compile every populated select component, in order."""
        sql = []

        for component in self.select_components:
            value = getattr(query, COMPONENT_ATTRIBUTES.get(component, component))

            if value is None or (isinstance(value, list) and not value):
                continue

            sql.append(self._component_compilers[component](query, value))

        return sql

    def compile_aggregate(self, query: 'Builder', aggregate: Aggregate) -> str:
        column = self.columnize(aggregate.columns)

        # distinct applies to named columns only.
        if query.distinct_ and column != '*':
            column = 'distinct ' + column

        return f"select {aggregate.function}({column}) as aggregate"

    def compile_columns(self, query: 'Builder', columns: List[Any]) -> str:
        # The aggregate component already wrote the select list.
        if query.aggregate_ is not None:
            return ''

        select = 'select distinct ' if query.distinct_ else 'select '

        return select + self.columnize(columns)

    def compile_from(self, query: 'Builder', table: Any) -> str:
        return 'from ' + self.wrap_table(table)

    def compile_joins(self, query: 'Builder', joins: List[Any]) -> str:
        """Compile the join clauses, nesting sub-joins in parentheses."""
        sql = []

        for join in joins:
            table = self.wrap_table(join.table)

            if join.joins:
                table = f"({table} {self.compile_joins(query, join.joins)})"

            sql.append(f"{join.type} join {table} {self.compile_wheres(join)}".strip())

        return ' '.join(sql)

    def compile_wheres(self, query: 'Builder', wheres: Optional[List[Any]] = None) -> str:
        """Compile the where clauses of a query.

        The first clause's conjunction is dropped and the whole list is
        prefixed with the query's where keyword ("where", or "on" for joins).
        """
        wheres = query.wheres if wheres is None else wheres

        if not wheres:
            return ''

        sql = [
            f"{where.boolean} {self._where_compilers[where.type](query, where)}"
            for where in wheres
        ]

        return f"{query.where_keyword} {self.remove_leading_boolean(' '.join(sql))}"

    def compile_groups(self, query: 'Builder', groups: List[Any]) -> str:
        return 'group by ' + self.columnize(groups)

    def compile_havings(self, query: 'Builder', havings: List[HavingClause]) -> str:
        sql = ' '.join(self.compile_having(having) for having in havings)

        return 'having ' + self.remove_leading_boolean(sql)

    def compile_having(self, having: HavingClause) -> str:
        """Compile a single having clause, conjunction included."""
        return f"{having.boolean} {self._having_compilers[having.type](having)}"

    def compile_orders(self, query: 'Builder', orders: List[Any]) -> str:
        return 'order by ' + ', '.join(self.compile_orders_to_array(query, orders))

    def compile_orders_to_array(self, query: 'Builder', orders: List[Any]) -> List[str]:
        return [
            order.sql if isinstance(order, RawOrder)
            else f"{self.wrap(order.column)} {order.direction}"
            for order in orders
        ]

    def compile_random(self, seed: Any = '') -> str:
        """Compile the random ordering statement."""
        return 'RANDOM()'

    def compile_limit(self, query: 'Builder', limit: int) -> str:
        return f"limit {int(limit)}"

    def compile_offset(self, query: 'Builder', offset: int) -> str:
        return f"offset {int(offset)}"

    def compile_unions(self, query: 'Builder', unions: Optional[List[UnionClause]] = None) -> str:
        """Compile the unions followed by the outer union's order and paging."""
        unions = query.unions if unions is None else unions
        sql = ''.join(self.compile_union(union) for union in unions)

        if query.union_orders:
            sql += ' ' + self.compile_orders(query, query.union_orders)

        if query.union_limit is not None:
            sql += ' ' + self.compile_limit(query, query.union_limit)

        if query.union_offset is not None:
            sql += ' ' + self.compile_offset(query, query.union_offset)

        return sql.lstrip()

    def compile_union(self, union: UnionClause) -> str:
        conjunction = ' union all ' if union.all else ' union '

        return conjunction + self.wrap_union(self.compile_select(union.query))

    def wrap_union(self, sql: str) -> str:
        return sql

    def compile_union_aggregate(self, query: 'Builder') -> str:
        """Compile an aggregate over the result of a union.

        The inner select is compiled without the aggregate, which is restored
        on the builder afterwards.
        """
        aggregate = query.aggregate_
        sql = self.compile_aggregate(query, aggregate)

        query.aggregate_ = None

        try:
            inner = self.compile_select(query)
        finally:
            query.aggregate_ = aggregate

        return f"{sql} from ({inner}) as {self.wrap_table('temp_table')}"

    def compile_lock(self, query: 'Builder', value: Any) -> str:
        return value if isinstance(value, str) else ''

    def compile_exists(self, query: 'Builder') -> str:
        """Compile an exists statement into SQL."""
        select = self.compile_select(query)

        return f"select exists({select}) as {self.wrap('exists')}"

    # ====================
    # Where clauses
    # ====================

    def remove_leading_boolean(self, value: str) -> str:
        """Remove the first leading "and " / "or " from a clause string."""
        return LEADING_BOOLEAN.sub('', value, count=1)

    def where_raw(self, query: 'Builder', where: RawWhere) -> str:
        return where.sql

    def where_basic(self, query: 'Builder', where: BasicWhere) -> str:
        value = self.parameter(where.value)

        return f"{self.wrap(where.column)} {where.operator} {value}"

    def where_in(self, query: 'Builder', where: InWhere) -> str:
        if where.values:
            return f"{self.wrap(where.column)} in ({self.parameterize(where.values)})"

        return '0 = 1'

    def where_not_in(self, query: 'Builder', where: NotInWhere) -> str:
        if where.values:
            return f"{self.wrap(where.column)} not in ({self.parameterize(where.values)})"

        return '1 = 1'

    def where_in_raw(self, query: 'Builder', where: InRawWhere) -> str:
        # Trusted integers, inlined without placeholders.
        if where.values:
            values = ', '.join(str(int(value)) for value in where.values)
            return f"{self.wrap(where.column)} in ({values})"

        return '0 = 1'

    def where_not_in_raw(self, query: 'Builder', where: NotInRawWhere) -> str:
        if where.values:
            values = ', '.join(str(int(value)) for value in where.values)
            return f"{self.wrap(where.column)} not in ({values})"

        return '1 = 1'

    def where_null(self, query: 'Builder', where: NullWhere) -> str:
        return f"{self.wrap(where.column)} is null"

    def where_not_null(self, query: 'Builder', where: NotNullWhere) -> str:
        return f"{self.wrap(where.column)} is not null"

    def where_between(self, query: 'Builder', where: BetweenWhere) -> str:
        between = 'not between' if where.not_ else 'between'

        minimum = self.parameter(where.values[0])
        maximum = self.parameter(where.values[-1])

        return f"{self.wrap(where.column)} {between} {minimum} and {maximum}"

    def where_date_based(self, query: 'Builder', where: DateBasedWhere) -> str:
        return self._date_compilers[where.part](query, where)

    def where_date(self, query: 'Builder', where: DateBasedWhere) -> str:
        return self.date_based_where('date', query, where)

    def where_time(self, query: 'Builder', where: DateBasedWhere) -> str:
        return self.date_based_where('time', query, where)

    def where_day(self, query: 'Builder', where: DateBasedWhere) -> str:
        return self.date_based_where('day', query, where)

    def where_month(self, query: 'Builder', where: DateBasedWhere) -> str:
        return self.date_based_where('month', query, where)

    def where_year(self, query: 'Builder', where: DateBasedWhere) -> str:
        return self.date_based_where('year', query, where)

    def date_based_where(self, part: str, query: 'Builder', where: DateBasedWhere) -> str:
        value = self.parameter(where.value)

        return f"{part}({self.wrap(where.column)}) {where.operator} {value}"

    def where_column(self, query: 'Builder', where: ColumnWhere) -> str:
        return f"{self.wrap(where.first)} {where.operator} {self.wrap(where.second)}"

    def where_nested(self, query: 'Builder', where: NestedWhere) -> str:
        # Strip the nested query's own keyword ("where " / "on ") before
        # parenthesizing.
        compiled = self.compile_wheres(where.query)
        keyword = where.query.where_keyword

        return '(' + compiled[len(keyword) + 1:] + ')'

    def where_sub(self, query: 'Builder', where: SubWhere) -> str:
        select = self.compile_select(where.query)

        return f"{self.wrap(where.column)} {where.operator} ({select})"

    def where_exists(self, query: 'Builder', where: ExistsWhere) -> str:
        return f"exists ({self.compile_select(where.query)})"

    def where_not_exists(self, query: 'Builder', where: NotExistsWhere) -> str:
        return f"not exists ({self.compile_select(where.query)})"

    def where_row_values(self, query: 'Builder', where: RowValuesWhere) -> str:
        columns = self.columnize(where.columns)
        values = self.parameterize(where.values)

        return f"({columns}) {where.operator} ({values})"

    def where_json_contains(self, query: 'Builder', where: JsonContainsWhere) -> str:
        not_ = 'not ' if where.not_ else ''

        return not_ + self.compile_json_contains(where.column, self.parameter(where.value))

    def compile_json_contains(self, column: str, value: str) -> str:
        raise UnsupportedFeatureError('This database engine does not support JSON contains operations.')

    def prepare_binding_for_json_contains(self, binding: Any) -> str:
        """Encode a json-contains binding as a JSON document."""
        return json.dumps(binding)

    def where_json_length(self, query: 'Builder', where: JsonLengthWhere) -> str:
        return self.compile_json_length(where.column, where.operator, self.parameter(where.value))

    def compile_json_length(self, column: str, operator: str, value: str) -> str:
        raise UnsupportedFeatureError('This database engine does not support JSON length operations.')

    def wrap_json_field_and_path(self, column: str) -> Tuple[str, str]:
        """Split a JSON selector into the wrapped field and its path argument."""
        parts = column.split('->', 1)

        field = self.wrap(parts[0])
        path = ', ' + self.wrap_json_path(parts[1], '->') if len(parts) > 1 else ''

        return field, path

    def wrap_json_path(self, value: str, delimiter: str = '->') -> str:
        """Wrap the given JSON path as a quoted "$." path literal."""
        value = re.sub(r"([\\]+)?'", "''", value)

        return "'$.\"" + value.replace(delimiter, '"."') + "\"'"

    # ====================
    # Having clauses
    # ====================

    def having_basic(self, having: BasicHaving) -> str:
        return f"{self.wrap(having.column)} {having.operator} {self.parameter(having.value)}"

    def having_raw(self, having: RawHaving) -> str:
        return having.sql

    def having_between(self, having: BetweenHaving) -> str:
        between = 'not between' if having.not_ else 'between'

        minimum = self.parameter(having.values[0])
        maximum = self.parameter(having.values[-1])

        return f"{self.wrap(having.column)} {between} {minimum} and {maximum}"

    def having_null(self, having: NullHaving) -> str:
        return f"{self.wrap(having.column)} is null"

    def having_not_null(self, having: NotNullHaving) -> str:
        return f"{self.wrap(having.column)} is not null"

    # ====================
    # Insert
    # ====================

    def compile_insert(self, query: 'Builder', values: List[Mapping[str, Any]]) -> str:
        """Compile an insert statement into SQL.

        Args:
            query: Builder whose table receives the rows
            values: Records to insert, each a mapping of column to value

        Returns:
            SQL insert statement with one placeholder group per record
        """
        table = self.wrap_table(query.from_table)

        if not values:
            return f"insert into {table} default values"

        if isinstance(values, Mapping):
            values = [values]

        columns = self.columnize(values[0].keys())

        parameters = ', '.join(
            f"({self.parameterize(record.values())})" for record in values
        )

        return f"insert into {table} ({columns}) values {parameters}"

    def compile_insert_or_ignore(self, query: 'Builder', values: List[Mapping[str, Any]]) -> str:
        raise UnsupportedFeatureError('This database engine does not support inserting while ignoring errors.')

    def compile_insert_get_id(
        self,
        query: 'Builder',
        values: Mapping[str, Any],
        sequence: Optional[str] = None
    ) -> str:
        return self.compile_insert(query, values)

    def compile_insert_using(self, query: 'Builder', columns: List[str], sql: str) -> str:
        """Compile an insert whose rows come from a select statement."""
        return f"insert into {self.wrap_table(query.from_table)} ({self.columnize(columns)}) {sql}"

    # ====================
    # Update
    # ====================

    def compile_update(self, query: 'Builder', values: Mapping[str, Any]) -> str:
        """Compile an update statement into SQL.

        Args:
            query: Builder holding the table, joins and wheres
            values: Mapping of column to new value

        Returns:
            SQL update statement
        """
        table = self.wrap_table(query.from_table)
        columns = self.compile_update_columns(query, values)
        where = self.compile_wheres(query)

        if query.joins:
            sql = self.compile_update_with_joins(query, table, columns, where)
        else:
            sql = self.compile_update_without_joins(query, table, columns, where)

        return sql.strip()

    def compile_update_columns(self, query: 'Builder', values: Mapping[str, Any]) -> str:
        return ', '.join(
            f"{self.wrap(key)} = {self.parameter(value)}" for key, value in values.items()
        )

    def compile_update_without_joins(self, query: 'Builder', table: str, columns: str, where: str) -> str:
        return f"update {table} set {columns} {where}"

    def compile_update_with_joins(self, query: 'Builder', table: str, columns: str, where: str) -> str:
        joins = self.compile_joins(query, query.joins)

        return f"update {table} {joins} set {columns} {where}"

    def prepare_bindings_for_update(
        self,
        bindings: Mapping[str, List[Any]],
        values: Mapping[str, Any]
    ) -> List[Any]:
        """Order update bindings: join, then set values, then the rest."""
        remaining = [
            binding
            for group, group_bindings in bindings.items()
            if group not in ('select', 'join')
            for binding in group_bindings
        ]

        set_values = [value for value in values.values() if not self.is_expression(value)]

        return list(bindings['join']) + set_values + remaining

    # ====================
    # Delete / truncate
    # ====================

    def compile_delete(self, query: 'Builder') -> str:
        """Compile a delete statement into SQL."""
        table = self.wrap_table(query.from_table)
        where = self.compile_wheres(query)

        if query.joins:
            sql = self.compile_delete_with_joins(query, table, where)
        else:
            sql = self.compile_delete_without_joins(query, table, where)

        return sql.strip()

    def compile_delete_without_joins(self, query: 'Builder', table: str, where: str) -> str:
        return f"delete from {table} {where}"

    def compile_delete_with_joins(self, query: 'Builder', table: str, where: str) -> str:
        alias = table.split(' as ')[-1]
        joins = self.compile_joins(query, query.joins)

        return f"delete {alias} from {table} {joins} {where}"

    def prepare_bindings_for_delete(self, bindings: Mapping[str, List[Any]]) -> List[Any]:
        return [
            binding
            for group, group_bindings in bindings.items()
            if group != 'select'
            for binding in group_bindings
        ]

    def compile_truncate(self, query: 'Builder') -> Dict[str, List[Any]]:
        """Compile truncate statements, mapped to their bindings."""
        return {f"truncate table {self.wrap_table(query.from_table)}": []}

    # ====================
    # Savepoints
    # ====================

    def compile_savepoint(self, name: str) -> str:
        self._ensure_savepoints()
        return f"SAVEPOINT {name}"

    def compile_savepoint_rollback(self, name: str) -> str:
        self._ensure_savepoints()
        return f"ROLLBACK TO SAVEPOINT {name}"

    def _ensure_savepoints(self) -> None:
        if not self.supports_savepoints:
            raise UnsupportedFeatureError('This database engine does not support savepoints.')

    # ====================
    # Helpers
    # ====================

    def concatenate(self, segments: List[str]) -> str:
        """Join the non-empty segments with single spaces."""
        return ' '.join(segment for segment in segments if segment != '')

    def table_alias(self, table: Any) -> str:
        """Get the alias (or bare name) a table reference is addressed by."""
        return ALIAS_PATTERN.split(str(table))[-1]
