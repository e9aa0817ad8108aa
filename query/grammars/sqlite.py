"""
=====================
SQLite query grammar.
=====================

strftime-based date parts, "insert or ignore", json1 path access and rowid
sub-selects for update/delete statements with joins or a limit. SQLite has
no row locks, so lock clauses compile to nothing.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Mapping

from query.clauses import DateBasedWhere
from query.grammars.grammar import Grammar

if TYPE_CHECKING:
    from query.builder import Builder

DATE_FORMATS = {
    'date': '%Y-%m-%d',
    'time': '%H:%M:%S',
    'day': '%d',
    'month': '%m',
    'year': '%Y',
}


class SQLiteGrammar(Grammar):
    """Grammar for SQLite 3."""

    operators = ('glob', 'not glob', 'match')

    def date_based_where(self, part: str, query: 'Builder', where: DateBasedWhere) -> str:
        value = self.parameter(where.value)

        return (
            f"strftime('{DATE_FORMATS[part]}', {self.wrap(where.column)}) "
            f"{where.operator} cast({value} as text)"
        )

    def compile_json_length(self, column: str, operator: str, value: str) -> str:
        field, path = self.wrap_json_field_and_path(column)

        return f"json_array_length({field}{path}) {operator} {value}"

    def compile_lock(self, query: 'Builder', value: Any) -> str:
        return ''

    def compile_insert_or_ignore(self, query: 'Builder', values: List[Mapping[str, Any]]) -> str:
        return self.compile_insert(query, values).replace('insert', 'insert or ignore', 1)

    def compile_update(self, query: 'Builder', values: Mapping[str, Any]) -> str:
        if query.joins or query.limit_ is not None:
            return self.compile_update_with_joins_or_limit(query, values)

        return super().compile_update(query, values)

    def compile_update_with_joins_or_limit(self, query: 'Builder', values: Mapping[str, Any]) -> str:
        table = self.wrap_table(query.from_table)
        columns = self.compile_update_columns(query, values)

        alias = self.table_alias(query.from_table)
        select_sql = self.compile_select(query.clone().select(f"{alias}.rowid"))

        return f"update {table} set {columns} where {self.wrap('rowid')} in ({select_sql})"

    def prepare_bindings_for_update(
        self,
        bindings: Mapping[str, List[Any]],
        values: Mapping[str, Any]
    ) -> List[Any]:
        set_values = [value for value in values.values() if not self.is_expression(value)]

        remaining = [
            binding
            for group, group_bindings in bindings.items()
            if group != 'select'
            for binding in group_bindings
        ]

        return set_values + remaining

    def compile_delete(self, query: 'Builder') -> str:
        if query.joins or query.limit_ is not None:
            table = self.wrap_table(query.from_table)

            alias = self.table_alias(query.from_table)
            select_sql = self.compile_select(query.clone().select(f"{alias}.rowid"))

            return f"delete from {table} where {self.wrap('rowid')} in ({select_sql})"

        return super().compile_delete(query)

    def compile_truncate(self, query: 'Builder') -> Dict[str, List[Any]]:
        return {
            'delete from sqlite_sequence where name = ?': [self.table_prefix + str(query.from_table)],
            f"delete from {self.wrap_table(query.from_table)}": [],
        }

    def wrap_json_selector(self, value: str) -> str:
        field, path = self.wrap_json_field_and_path(value)

        return f"json_extract({field}{path})"
