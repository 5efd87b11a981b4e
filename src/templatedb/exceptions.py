"""
Exception classes for template database access.

Every failure raised by this package derives from `DatabaseError`. Errors
caused by the underlying driver keep the native exception as `cause` (and as
`__cause__` when raised with ``from``), and include its message verbatim.
"""
import sqlite3

import oracledb
import psycopg
import sqlalchemy as sa

__all__ = [
    'DatabaseError',
    'ConnectionError',
    'BindArityError',
    'TypeMismatchError',
    'QueryError',
    'CallError',
    'ArrayIndexError',
    'UnsupportedArgumentError',
    'NativeError',
]


class DatabaseError(Exception):
    """Base class for all templatedb errors.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        if cause is not None:
            message = f'{message}: {cause}'
        super().__init__(message)
        self.cause = cause


class ConnectionError(DatabaseError):
    """Error opening, closing or using a closed connection"""


class BindArityError(DatabaseError):
    """Number of positional binds does not match the statement placeholders.
    """

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f'Wrong number of bind values: statement has {expected} '
                         f'placeholder(s), got {actual}')
        self.expected = expected
        self.actual = actual


class TypeMismatchError(DatabaseError):
    """Value cannot be converted to or from the required type.
    """

    def __init__(self, expected: str, actual: str, detail: str | None = None) -> None:
        message = f'Cannot convert {actual} to {expected}'
        if detail:
            message = f'{message} ({detail})'
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class QueryError(DatabaseError):
    """Error executing a query"""


class CallError(DatabaseError):
    """Error executing a callable statement"""


class ArrayIndexError(DatabaseError, IndexError):
    """Array element index out of range"""


class UnsupportedArgumentError(DatabaseError, TypeError):
    """Argument presented with the wrong shape (scalar, sequence, mapping)"""


# Base classes of the errors raised by the supported drivers
NativeError = (
    sqlite3.Error,
    psycopg.Error,
    oracledb.Error,
    sa.exc.SQLAlchemyError,
    )
