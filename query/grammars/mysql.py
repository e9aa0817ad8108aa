"""
======================
MySQL query grammar.
======================

Backtick identifier quoting plus the MySQL spellings of insert-ignore,
JSON path access, random ordering, row locks and ordered/limited
update and delete statements. Union members are parenthesized so each one
may carry its own order and limit.
"""

from typing import TYPE_CHECKING, Any, List, Mapping

from query.clauses import NotNullWhere, NullWhere
from query.grammars.grammar import Grammar

if TYPE_CHECKING:
    from query.builder import Builder


class MySqlGrammar(Grammar):
    """Grammar for MySQL and MariaDB."""

    operators = ('sounds like',)

    # Unions are appended by compile_select so the first select can be
    # parenthesized as well.
    select_components = (
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
        'lock',
    )

    def compile_select(self, query: 'Builder') -> str:
        if query.unions and query.aggregate_ is not None:
            return self.compile_union_aggregate(query)

        sql = super().compile_select(query)

        if query.unions:
            sql = f"({sql}) {self.compile_unions(query)}"

        return sql

    def wrap_union(self, sql: str) -> str:
        return f"({sql})"

    def where_null(self, query: 'Builder', where: NullWhere) -> str:
        if isinstance(where.column, str) and self.is_json_selector(where.column):
            field, path = self.wrap_json_field_and_path(where.column)
            return f"(json_extract({field}{path}) is null OR json_type(json_extract({field}{path})) = 'NULL')"

        return super().where_null(query, where)

    def where_not_null(self, query: 'Builder', where: NotNullWhere) -> str:
        if isinstance(where.column, str) and self.is_json_selector(where.column):
            field, path = self.wrap_json_field_and_path(where.column)
            return f"(json_extract({field}{path}) is not null AND json_type(json_extract({field}{path})) != 'NULL')"

        return super().where_not_null(query, where)

    def compile_json_contains(self, column: str, value: str) -> str:
        field, path = self.wrap_json_field_and_path(column)

        return f"json_contains({field}, {value}{path})"

    def compile_json_length(self, column: str, operator: str, value: str) -> str:
        field, path = self.wrap_json_field_and_path(column)

        return f"json_length({field}{path}) {operator} {value}"

    def compile_random(self, seed: Any = '') -> str:
        return f"RAND({seed})"

    def compile_lock(self, query: 'Builder', value: Any) -> str:
        if not isinstance(value, str):
            return 'for update' if value else 'lock in share mode'

        return value

    def compile_insert(self, query: 'Builder', values: List[Mapping[str, Any]]) -> str:
        if not values:
            return f"insert into {self.wrap_table(query.from_table)} () values ()"

        return super().compile_insert(query, values)

    def compile_insert_or_ignore(self, query: 'Builder', values: List[Mapping[str, Any]]) -> str:
        return self.compile_insert(query, values).replace('insert', 'insert ignore', 1)

    def compile_update_without_joins(self, query: 'Builder', table: str, columns: str, where: str) -> str:
        sql = super().compile_update_without_joins(query, table, columns, where).rstrip()

        if query.orders:
            sql += ' ' + self.compile_orders(query, query.orders)

        if query.limit_ is not None:
            sql += ' ' + self.compile_limit(query, query.limit_)

        return sql

    def compile_delete_without_joins(self, query: 'Builder', table: str, where: str) -> str:
        sql = super().compile_delete_without_joins(query, table, where).rstrip()

        # Ordered and limited deletes let callers remove rows in batches.
        if query.orders:
            sql += ' ' + self.compile_orders(query, query.orders)

        if query.limit_ is not None:
            sql += ' ' + self.compile_limit(query, query.limit_)

        return sql

    def wrap_value(self, value: str) -> str:
        if value == '*':
            return value

        return '`' + value.replace('`', '``') + '`'

    def wrap_json_selector(self, value: str) -> str:
        field, path = self.wrap_json_field_and_path(value)

        return f"json_unquote(json_extract({field}{path}))"
