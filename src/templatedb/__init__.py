"""
Database access for template code.

Templates issue parameterized queries and callable statements and consume
the results as plain Python values, without knowing the schema up front.

All operations can be called either as:
- Module functions bound to the process-wide manager: templatedb.query(sql, binds)
- Manager methods: manager.query(sql, binds)
- ConnectionAdapter methods: cn.query(sql, binds)

The module functions are the surface handed to template engines (for example
as Jinja2 globals).
"""
__version__ = '0.1.0'

from typing import Any

from templatedb.array import ArrayAdapter, SequenceArray
from templatedb.connection import ConnectionAdapter, connect
from templatedb.exceptions import ArrayIndexError, BindArityError, CallError
from templatedb.exceptions import ConnectionError, DatabaseError, QueryError
from templatedb.exceptions import TypeMismatchError, UnsupportedArgumentError
from templatedb.manager import ConnectionManager, get_manager, set_manager
from templatedb.options import DEFAULT_URL, DatabaseOptions
from templatedb.query import QueryResult, Row
from templatedb.types import SqlType, TypeMarshaller, ValueKind, kind_of


def new_connection(url: str | None = None, user: str | None = None,
                   password: str | None = None) -> ConnectionAdapter:
    """Open a new connection; without arguments the implicit connection is opened.
    """
    return get_manager().new_connection(url, user, password)


def default_connection() -> ConnectionAdapter:
    """Return the default connection, opening it on first use.
    """
    return get_manager().get_default_connection()


def set_default_connection(handle: ConnectionAdapter | None = None) -> None:
    """Replace (or with None, clear) the default connection without closing the old one.
    """
    get_manager().set_default_connection(handle)


def query(sql: str, binds: list[Any] | None = None) -> QueryResult:
    """Execute a query on the default connection.
    """
    return get_manager().query(sql, binds)


def exec(statement: str, in_binds: dict[Any, Any] | None = None,  # noqa: A001
         out_binds: dict[Any, Any] | None = None) -> dict[Any, Any]:
    """Execute a callable statement on the default connection and return its out values.
    """
    return get_manager().exec(statement, in_binds, out_binds)


__all__ = [
    'ArrayAdapter',
    'ArrayIndexError',
    'BindArityError',
    'CallError',
    'ConnectionAdapter',
    'ConnectionError',
    'ConnectionManager',
    'DEFAULT_URL',
    'DatabaseError',
    'DatabaseOptions',
    'QueryError',
    'QueryResult',
    'Row',
    'SequenceArray',
    'SqlType',
    'TypeMarshaller',
    'TypeMismatchError',
    'UnsupportedArgumentError',
    'ValueKind',
    'connect',
    'default_connection',
    'exec',
    'get_manager',
    'kind_of',
    'new_connection',
    'query',
    'set_default_connection',
    'set_manager',
]
