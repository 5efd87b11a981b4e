"""
Callable statements on SQLite: out values come from the first result row.
"""
import datetime
from decimal import Decimal

import pytest
from templatedb.exceptions import CallError


def test_increment(sqlite_conn):
    assert sqlite_conn.exec('select :y + 1 as x', {'y': 41}, {'x': 'integer'}) == {'x': 42}


def test_out_types_coerced(sqlite_conn):
    result = sqlite_conn.exec("select :v as amount, '2025-03-11' as day, 1 as flag",
                              {'v': '10.25'}, {'amount': 'numeric', 'day': 'date', 'flag': 'boolean'})
    assert result == {'amount': Decimal('10.25'), 'day': datetime.date(2025, 3, 11), 'flag': True}


def test_only_declared_outs_returned(sqlite_conn):
    result = sqlite_conn.exec('select :a as a, :b as b', {'a': 1, 'b': 2}, {'b': 'integer'})
    assert result == {'b': 2}


def test_positional_outs(sqlite_conn):
    result = sqlite_conn.exec('select ?, ? || ?', {1: 3, 2: 'a', 3: 'b'}, {1: 'integer', 2: 'varchar'})
    assert result == {1: 3, 2: 'ab'}


def test_out_only_placeholder_is_null(sqlite_conn):
    assert sqlite_conn.exec('select :x as x', None, {'x': 'integer'}) == {'x': None}


def test_in_out_same_identifier(sqlite_conn):
    assert sqlite_conn.exec('select :n * 2 as n', {'n': 21}, {'n': 'integer'}) == {'n': 42}


def test_statement_side_effects(sqlite_conn):
    sqlite_conn.exec('update test_table set value = :v where name = :name', {'v': 99, 'name': 'Alice'})
    row = sqlite_conn.query('select value from test_table where name = ?', ['Alice']).fetchone()
    assert row['value'] == 99


def test_unknown_identifier(sqlite_conn):
    with pytest.raises(CallError, match="'z'"):
        sqlite_conn.exec('select :y + 1 as x', {'y': 1, 'z': 2}, {'x': 'integer'})


def test_missing_in_value(sqlite_conn):
    with pytest.raises(CallError, match=':y'):
        sqlite_conn.exec('select :y + 1 as x', None, None)


def test_no_result_row(sqlite_conn):
    with pytest.raises(CallError, match='no result row'):
        sqlite_conn.exec('select value as x from test_table where id = :id', {'id': 999}, {'x': 'integer'})


def test_native_error(sqlite_conn):
    with pytest.raises(CallError, match='no such column: nope'):
        sqlite_conn.exec('select nope from test_table where id = :id', {'id': 1}, None)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
