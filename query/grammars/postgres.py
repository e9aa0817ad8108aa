"""
==========================
PostgreSQL query grammar.
==========================

PostgreSQL casts for date parts and LIKE on non-text columns, jsonb
containment, "on conflict do nothing" for insert-ignore, RETURNING for
inserted ids, and ctid sub-selects for update/delete statements that need
joins or a limit (PostgreSQL has no UPDATE ... JOIN).
"""

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from query.clauses import BasicWhere, DateBasedWhere
from query.grammars.grammar import Grammar

if TYPE_CHECKING:
    from query.builder import Builder


class PostgresGrammar(Grammar):
    """Grammar for PostgreSQL."""

    operators = (
        '~', '~*', '!~', '!~*', 'similar to', 'not similar to', 'not ilike',
        '~~*', '!~~*', '&&', '@>', '<@', '||', '-', '@@',
        '#-', 'is distinct from', 'is not distinct from',
    )

    def where_basic(self, query: 'Builder', where: BasicWhere) -> str:
        if 'like' in where.operator.lower():
            value = self.parameter(where.value)
            return f"{self.wrap(where.column)}::text {where.operator} {value}"

        return super().where_basic(query, where)

    def where_date(self, query: 'Builder', where: DateBasedWhere) -> str:
        value = self.parameter(where.value)

        return f"{self.wrap(where.column)}::date {where.operator} {value}"

    def where_time(self, query: 'Builder', where: DateBasedWhere) -> str:
        value = self.parameter(where.value)

        return f"{self.wrap(where.column)}::time {where.operator} {value}"

    def date_based_where(self, part: str, query: 'Builder', where: DateBasedWhere) -> str:
        value = self.parameter(where.value)

        return f"extract({part} from {self.wrap(where.column)}) {where.operator} {value}"

    def compile_json_contains(self, column: str, value: str) -> str:
        column = self.wrap(column).replace('->>', '->')

        return f"({column})::jsonb @> {value}"

    def compile_json_length(self, column: str, operator: str, value: str) -> str:
        column = self.wrap(column).replace('->>', '->')

        return f"json_array_length(({column})::json) {operator} {value}"

    def compile_lock(self, query: 'Builder', value: Any) -> str:
        if not isinstance(value, str):
            return 'for update' if value else 'for share'

        return value

    def compile_insert_or_ignore(self, query: 'Builder', values: List[Mapping[str, Any]]) -> str:
        return self.compile_insert(query, values) + ' on conflict do nothing'

    def compile_insert_get_id(
        self,
        query: 'Builder',
        values: Mapping[str, Any],
        sequence: Optional[str] = None
    ) -> str:
        return f"{self.compile_insert(query, values)} returning {self.wrap(sequence or 'id')}"

    def compile_update(self, query: 'Builder', values: Mapping[str, Any]) -> str:
        if query.joins or query.limit_ is not None:
            return self.compile_update_with_joins_or_limit(query, values)

        return super().compile_update(query, values)

    def compile_update_with_joins_or_limit(self, query: 'Builder', values: Mapping[str, Any]) -> str:
        """Compile an update that selects its target rows by ctid."""
        table = self.wrap_table(query.from_table)
        columns = self.compile_update_columns(query, values)

        alias = self.table_alias(query.from_table)
        select_sql = self.compile_select(query.clone().select(f"{alias}.ctid"))

        return f"update {table} set {columns} where {self.wrap('ctid')} in ({select_sql})"

    def prepare_bindings_for_update(
        self,
        bindings: Mapping[str, List[Any]],
        values: Mapping[str, Any]
    ) -> List[Any]:
        # The set list precedes the ctid sub-select, which carries the joins.
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
            return self.compile_delete_with_joins_or_limit(query)

        return super().compile_delete(query)

    def compile_delete_with_joins_or_limit(self, query: 'Builder') -> str:
        table = self.wrap_table(query.from_table)

        alias = self.table_alias(query.from_table)
        select_sql = self.compile_select(query.clone().select(f"{alias}.ctid"))

        return f"delete from {table} where {self.wrap('ctid')} in ({select_sql})"

    def compile_truncate(self, query: 'Builder') -> Dict[str, List[Any]]:
        return {f"truncate {self.wrap_table(query.from_table)} restart identity cascade": []}

    def wrap_json_selector(self, value: str) -> str:
        path = value.split('->')

        field = self.wrap_segments(path.pop(0).split('.'))
        wrapped_path = self.wrap_json_path_attributes(path)
        attribute = wrapped_path.pop()

        if wrapped_path:
            return f"{field}->{'->'.join(wrapped_path)}->>{attribute}"

        return f"{field}->>{attribute}"

    def wrap_json_path_attributes(self, path: List[str]) -> List[str]:
        """Quote JSON path keys, leaving array indexes bare."""
        return [attribute if attribute.isdigit() else f"'{attribute}'" for attribute in path]
