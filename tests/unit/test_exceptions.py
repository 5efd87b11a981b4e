"""
Unit tests for the error taxonomy.
"""
import sqlite3

import oracledb
import psycopg
import pytest
import sqlalchemy as sa
from templatedb.exceptions import ArrayIndexError, BindArityError, CallError
from templatedb.exceptions import ConnectionError, DatabaseError, NativeError
from templatedb.exceptions import QueryError, TypeMismatchError
from templatedb.exceptions import UnsupportedArgumentError


@pytest.mark.parametrize('cls', [ConnectionError, BindArityError, TypeMismatchError,
                                 QueryError, CallError, ArrayIndexError,
                                 UnsupportedArgumentError])
def test_all_errors_are_database_errors(cls):
    assert issubclass(cls, DatabaseError)


def test_builtin_bases():
    assert issubclass(ArrayIndexError, IndexError)
    assert issubclass(UnsupportedArgumentError, TypeError)


def test_native_message_kept_verbatim():
    native = sqlite3.OperationalError('no such table: missing')
    error = QueryError('Query failed', native)
    assert str(error) == 'Query failed: no such table: missing'
    assert error.cause is native


def test_without_cause():
    error = CallError('Unknown in bind identifier')
    assert str(error) == 'Unknown in bind identifier'
    assert error.cause is None


def test_bind_arity_message():
    error = BindArityError(2, 3)
    assert error.expected == 2
    assert error.actual == 3
    assert '2 placeholder' in str(error)
    assert 'got 3' in str(error)


def test_type_mismatch_message():
    error = TypeMismatchError('integer', 'date', 'not a number')
    assert str(error) == 'Cannot convert date to integer (not a number)'


@pytest.mark.parametrize('native', [
    sqlite3.Error('x'),
    psycopg.Error('x'),
    oracledb.Error('x'),
    sa.exc.SQLAlchemyError('x'),
])
def test_native_error_group(native):
    assert isinstance(native, NativeError)


def test_package_errors_are_not_native():
    assert not isinstance(QueryError('x'), NativeError)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
