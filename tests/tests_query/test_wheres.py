"""
==========================================
Pytest suite for where clauses (Builder)
==========================================

Sections:
---------
1. Unit tests - Every where variant on the base grammar
2. Edge case tests - Empty lists, None values, invalid operators

Test Coverage:
--------------
- where / or_where / where_not and their argument forms
- where_column / where_raw / where_in / where_integer_in_raw
- where_null / where_between / date-based wheres
- nested groups, sub-selects, exists, row values

How to Execute:
---------------
All tests:          pytest tests/tests_query/test_wheres.py -v
By category:        pytest tests/tests_query/test_wheres.py -m unit
"""

import datetime

import pytest

from query.exceptions import InvalidArgumentError
from query.expression import Expression


# ===============
# 1. UNIT TESTS
# ===============

@pytest.mark.unit
def test_basic_where(builder):
    builder.from_('users').where('id', '=', 1)

    assert builder.to_sql() == 'select * from "users" where "id" = ?'
    assert builder.get_bindings() == [1]


@pytest.mark.unit
def test_two_argument_where_uses_equals(builder):
    builder.from_('users').where('name', 'John')

    assert builder.to_sql() == 'select * from "users" where "name" = ?'
    assert builder.get_bindings() == ['John']


@pytest.mark.unit
def test_or_where(builder):
    builder.from_('users').where('votes', '>', 100).or_where('name', 'John')

    assert builder.to_sql() == 'select * from "users" where "votes" > ? or "name" = ?'
    assert builder.get_bindings() == [100, 'John']


@pytest.mark.unit
def test_operator_is_case_insensitive(builder):
    builder.from_('users').where('name', 'LIKE', 'J%')

    assert builder.to_sql() == 'select * from "users" where "name" like ?'


@pytest.mark.unit
def test_where_expression_value_is_not_bound(builder):
    builder.from_('users').where('created_at', '<', Expression('now()'))

    assert builder.to_sql() == 'select * from "users" where "created_at" < now()'
    assert builder.get_bindings() == []


@pytest.mark.unit
def test_where_mapping_becomes_nested_group(builder):
    builder.from_('users').where({'first': 'a', 'last': 'b'})

    assert builder.to_sql() == 'select * from "users" where ("first" = ? and "last" = ?)'
    assert builder.get_bindings() == ['a', 'b']


@pytest.mark.unit
def test_where_list_of_conditions(builder):
    builder.from_('users').where([['status', 'active'], ['votes', '>', 10]])

    assert builder.to_sql() == 'select * from "users" where ("status" = ? and "votes" > ?)'
    assert builder.get_bindings() == ['active', 10]


@pytest.mark.unit
def test_nested_where(builder):
    builder.from_('users').where('email', 'foo').or_where(
        lambda q: q.where('name', 'bar').where('age', 25)
    )

    assert builder.to_sql() == 'select * from "users" where "email" = ? or ("name" = ? and "age" = ?)'
    assert builder.get_bindings() == ['foo', 'bar', 25]


@pytest.mark.unit
def test_empty_nested_where_is_dropped(builder):
    builder.from_('users').where(lambda q: q).where('id', 1)

    assert builder.to_sql() == 'select * from "users" where "id" = ?'


@pytest.mark.unit
def test_where_not(builder):
    builder.from_('users').where_not(lambda q: q.where('banned', 1).or_where('deleted', 1))

    assert builder.to_sql() == 'select * from "users" where not ("banned" = ? or "deleted" = ?)'


@pytest.mark.unit
def test_where_not_with_column(builder):
    builder.from_('users').where('active', 1).where_not('role', 'admin')

    assert builder.to_sql() == 'select * from "users" where "active" = ? and not ("role" = ?)'
    assert builder.get_bindings() == [1, 'admin']


@pytest.mark.unit
def test_where_column(builder):
    builder.from_('users').where_column('first_name', 'last_name').or_where_column('updated_at', '>', 'created_at')

    assert builder.to_sql() == (
        'select * from "users" where "first_name" = "last_name" or "updated_at" > "created_at"'
    )
    assert builder.get_bindings() == []


@pytest.mark.unit
def test_where_column_list(builder):
    builder.from_('users').where_column([['first_name', 'last_name'], ['updated_at', '>', 'created_at']])

    assert builder.to_sql() == (
        'select * from "users" where ("first_name" = "last_name" and "updated_at" > "created_at")'
    )


@pytest.mark.unit
def test_where_raw(builder):
    builder.from_('users').where('id', 1).or_where_raw('lower(name) = ?', ['john'])

    assert builder.to_sql() == 'select * from "users" where "id" = ? or lower(name) = ?'
    assert builder.get_bindings() == [1, 'john']


@pytest.mark.unit
def test_where_in_and_not_in(builder):
    builder.from_('users').where_in('id', [1, 2, 3]).or_where_not_in('role', ('admin',))

    assert builder.to_sql() == 'select * from "users" where "id" in (?, ?, ?) or "role" not in (?)'
    assert builder.get_bindings() == [1, 2, 3, 'admin']


@pytest.mark.unit
def test_where_in_sub_query(builder):
    builder.from_('users').where_in('id', lambda q: q.select('user_id').from_('orders').where('total', '>', 5))

    assert builder.to_sql() == (
        'select * from "users" where "id" in (select "user_id" from "orders" where "total" > ?)'
    )
    assert builder.get_bindings() == [5]


@pytest.mark.unit
def test_where_in_with_expression_values(builder):
    builder.from_('users').where_in('id', [1, Expression('2 + 1')])

    assert builder.to_sql() == 'select * from "users" where "id" in (?, 2 + 1)'
    assert builder.get_bindings() == [1]


@pytest.mark.unit
def test_where_integer_in_raw(builder):
    builder.from_('users').where_integer_in_raw('id', ['1', 2, 3.0]).where_integer_not_in_raw('role_id', [9])

    assert builder.to_sql() == 'select * from "users" where "id" in (1, 2, 3) and "role_id" not in (9)'
    assert builder.get_bindings() == []


@pytest.mark.unit
def test_where_null_variants(builder):
    builder.from_('users').where_null('deleted_at').or_where_not_null(['email', 'phone'])

    assert builder.to_sql() == (
        'select * from "users" where "deleted_at" is null or "email" is not null or "phone" is not null'
    )


@pytest.mark.unit
def test_where_none_value_becomes_null_check(builder):
    builder.from_('users').where('deleted_at', None).where('email', '!=', None).where('phone', '<>', None)

    assert builder.to_sql() == (
        'select * from "users" where "deleted_at" is null and "email" is not null and "phone" is not null'
    )
    assert builder.get_bindings() == []


@pytest.mark.unit
def test_where_between(builder):
    builder.from_('users').where_between('votes', [1, 100]).or_where_not_between('age', [18, 30, 65])

    assert builder.to_sql() == (
        'select * from "users" where "votes" between ? and ? or "age" not between ? and ?'
    )
    assert builder.get_bindings() == [1, 100, 18, 65]


@pytest.mark.unit
def test_date_based_wheres(builder):
    builder.from_('posts') \
        .where_date('created_at', '2024-01-05') \
        .where_time('created_at', '>', datetime.time(10, 30)) \
        .where_day('created_at', 5) \
        .where_month('created_at', '<=', 11) \
        .where_year('created_at', datetime.date(2024, 3, 1))

    assert builder.to_sql() == (
        'select * from "posts" where date("created_at") = ? and time("created_at") > ? '
        'and day("created_at") = ? and month("created_at") <= ? and year("created_at") = ?'
    )
    assert builder.get_bindings() == ['2024-01-05', '10:30:00', '05', '11', '2024']


@pytest.mark.unit
def test_where_date_formats_datetime(builder):
    builder.from_('posts').or_where_date('created_at', datetime.datetime(2024, 2, 29, 23, 59))

    assert builder.get_bindings() == ['2024-02-29']


@pytest.mark.unit
def test_where_sub_select_value(builder):
    builder.from_('users').where('votes', '>', lambda q: q.select_raw('avg(votes)').from_('users'))

    assert builder.to_sql() == 'select * from "users" where "votes" > (select avg(votes) from "users")'


@pytest.mark.unit
def test_where_builder_as_column(builder):
    latest = builder.new_query().select('status').from_('logs').where('level', 'error').limit(1)
    builder.from_('users').where(latest, 'failed')

    assert builder.to_sql() == (
        'select * from "users" where (select "status" from "logs" where "level" = ? limit 1) = ?'
    )
    assert builder.get_bindings() == ['error', 'failed']


@pytest.mark.unit
def test_where_exists(builder):
    builder.from_('users').where_exists(
        lambda q: q.select(Expression('1')).from_('orders').where_column('orders.user_id', 'users.id')
    ).or_where_not_exists(builder.new_query().from_('bans').where('active', 1))

    assert builder.to_sql() == (
        'select * from "users" where exists (select 1 from "orders" '
        'where "orders"."user_id" = "users"."id") '
        'or not exists (select * from "bans" where "active" = ?)'
    )
    assert builder.get_bindings() == [1]


@pytest.mark.unit
def test_where_row_values(builder):
    builder.from_('orders').where_row_values(['last_update', 'order_number'], '<', [1, 2])

    assert builder.to_sql() == 'select * from "orders" where ("last_update", "order_number") < (?, ?)'
    assert builder.get_bindings() == [1, 2]


# ===================
# 2. EDGE CASE TESTS
# ===================

@pytest.mark.edge_case
def test_empty_where_in_is_always_false(builder):
    builder.from_('users').where_in('id', [])

    assert builder.to_sql() == 'select * from "users" where 0 = 1'
    assert builder.get_bindings() == []


@pytest.mark.edge_case
def test_empty_where_not_in_is_always_true(builder):
    builder.from_('users').where_not_in('id', [])

    assert builder.to_sql() == 'select * from "users" where 1 = 1'


@pytest.mark.edge_case
def test_empty_integer_in_raw(builder):
    builder.from_('users').where_integer_in_raw('id', [])

    assert builder.to_sql() == 'select * from "users" where 0 = 1'


@pytest.mark.edge_case
def test_integer_in_raw_rejects_non_integers(builder):
    with pytest.raises(InvalidArgumentError):
        builder.from_('users').where_integer_in_raw('id', ['1; drop table users'])


@pytest.mark.edge_case
def test_unknown_operator_raises(builder):
    with pytest.raises(InvalidArgumentError):
        builder.from_('users').where('id', 'equals', 1)


@pytest.mark.edge_case
def test_none_with_comparison_operator_raises(builder):
    with pytest.raises(InvalidArgumentError, match='Illegal operator and value combination'):
        builder.from_('users').where('votes', '>', None)


@pytest.mark.edge_case
def test_between_requires_values(builder):
    with pytest.raises(InvalidArgumentError):
        builder.from_('users').where_between('votes', [])


@pytest.mark.edge_case
def test_row_values_length_mismatch(builder):
    with pytest.raises(InvalidArgumentError):
        builder.from_('orders').where_row_values(['a', 'b'], '=', [1])


@pytest.mark.edge_case
def test_where_column_requires_second_column(builder):
    with pytest.raises(InvalidArgumentError):
        builder.from_('users').where_column('a')


@pytest.mark.edge_case
def test_single_argument_where_is_null_check(builder):
    builder.from_('users').where('deleted_at')

    assert builder.to_sql() == 'select * from "users" where "deleted_at" is null'


@pytest.mark.edge_case
def test_json_contains_unsupported_on_base_grammar(builder):
    from query.exceptions import UnsupportedFeatureError

    builder.from_('users').where_json_contains('options', 'en')

    with pytest.raises(UnsupportedFeatureError):
        builder.to_sql()


@pytest.mark.edge_case
@pytest.mark.parametrize("dialect", ['base', 'mysql', 'postgres', 'sqlite'])
def test_list_values_bind_one_parameter_each(make_builder, dialect):
    builder = make_builder(dialect)
    builder.from_('orders') \
        .where('status', '=', ['paid', 'sent']) \
        .where_date('created_at', '=', ('2024-01-05',)) \
        .where('id', '>', 3) \
        .group_by('status') \
        .having('status', '<>', ['void']) \
        .having('status', '<>', 'draft')

    sql = builder.to_sql()
    bindings = builder.get_bindings()

    assert sql.count('?') == len(bindings)
    assert bindings == [['paid', 'sent'], ('2024-01-05',), 3, ['void'], 'draft']


@pytest.mark.edge_case
def test_postgres_array_containment_keeps_later_bindings_aligned(postgres):
    from database.connection import convert_placeholders

    postgres.from_('posts').where('tags', '@>', ['python']).where('id', 7)

    assert postgres.to_sql() == 'select * from "posts" where "tags" @> ? and "id" = ?'
    assert postgres.get_bindings() == [['python'], 7]

    sql, params = convert_placeholders(postgres.to_sql(), 'pyformat', postgres.get_bindings())

    assert sql.count('%s') == len(params) == 2


@pytest.mark.edge_case
@pytest.mark.parametrize("operator", ['?', '?|', '?&', '@?'])
def test_postgres_rejects_question_mark_operators(postgres, operator):
    with pytest.raises(InvalidArgumentError, match='Illegal operator'):
        postgres.from_('documents').where('data', operator, 'key')
