"""
====================
Join clause builder.
====================

A JoinClause is a Builder whose where clauses form the ON condition of a
join. It keeps a reference to the parent query's class, connection and
grammar so nested groups and sub-queries built inside the join behave like
the parent's own.

Example:
    >>> query.join('contacts', lambda join: (
    ...     join.on('users.id', '=', 'contacts.user_id')
    ...         .or_on('users.id', '=', 'contacts.owner_id')
    ... ))
"""

from typing import Any, Callable, Optional, Union

from query.builder import Builder


class JoinClause(Builder):
    """ON-condition builder for one join.

    Attributes:
        type: Join type (inner, left, right, cross)
        table: Joined table, raw expression or aliased sub-query
    """

    where_keyword = 'on'

    def __init__(self, parent_query: Builder, type_: str, table: Any):
        self.type = type_
        self.table = table
        # Joins nested inside a join still build sub-queries of the outer class.
        if isinstance(parent_query, JoinClause):
            self.parent_class = parent_query.parent_class
        else:
            self.parent_class = type(parent_query)
        self.parent_connection = parent_query.connection
        self.parent_grammar = parent_query.grammar

        super().__init__(self.parent_connection, self.parent_grammar)

    def on(
        self,
        first: Union[str, Callable[['JoinClause'], Any]],
        operator: Optional[str] = None,
        second: Any = None,
        boolean: str = 'and'
    ) -> 'JoinClause':
        """Add a column comparison to the ON condition.

        A callable ``first`` builds a parenthesized group of conditions.
        """
        if callable(first):
            return self.where_nested(first, boolean)

        return self.where_column(first, operator, second, boolean)

    def or_on(
        self,
        first: Union[str, Callable[['JoinClause'], Any]],
        operator: Optional[str] = None,
        second: Any = None
    ) -> 'JoinClause':
        return self.on(first, operator, second, 'or')

    def new_query(self) -> 'JoinClause':
        return JoinClause(self._new_parent_query(), self.type, self.table)

    def for_sub_query(self) -> Builder:
        return self._new_parent_query().new_query()

    def _new_parent_query(self) -> Builder:
        return self.parent_class(self.parent_connection, self.parent_grammar)
