"""
Database connection handles.

This module provides:
1. The `ConnectionAdapter` class: a handle owning exactly one native connection
   and exposing `query`/`exec` for template code
2. The `connect()` function opening a handle from `DatabaseOptions`
3. `as_connection()` adapting DB-API and SQLAlchemy connections into handles

A handle never closes itself: the native connection stays open until
`close()` (or context-manager exit), and no commit or rollback is issued
implicitly.
"""
import logging
from functools import cached_property
from typing import Any, Self

import sqlalchemy as sa
from templatedb.call import CallExecutor
from templatedb.exceptions import ConnectionError, NativeError, QueryError
from templatedb.options import DatabaseOptions, create_url, get_engine
from templatedb.query import QueryExecutor, QueryResult
from templatedb.strategy import DialectStrategy, get_dialect_name, get_strategy
from templatedb.types import TypeMarshaller

__all__ = [
    'ConnectionAdapter',
    'connect',
    'as_connection',
]

logger = logging.getLogger(__name__)


class ConnectionAdapter:
    """Handle around one native database connection.

    The handle:
    1. Runs queries and callable statements through lazily created executors
    2. Tracks statement counts and execution time
    3. Exposes the driver connection via `connection`
    4. Supports the context manager protocol (closes on exit)
    """

    def __init__(self, native: Any, dialect: str | None = None,
                 sa_connection: sa.engine.Connection | None = None) -> None:
        """Wrap a DB-API connection (or SQLAlchemy's pooled proxy of one).

        Raises
            ConnectionError: If the dialect is unknown or unsupported
        """
        try:
            self._dialect = dialect or get_dialect_name(native)
            self.strategy: DialectStrategy = get_strategy(self._dialect)
        except ValueError as e:
            raise ConnectionError('Unsupported connection', e) from e
        self.dbapi_connection = native
        self.sa_connection = sa_connection
        self.marshaller = TypeMarshaller(self.strategy)
        self.calls = 0
        self.time = 0
        self._closed = False
        self.strategy.configure_connection(self.connection)

    @classmethod
    def from_sqlalchemy(cls, sa_connection: sa.engine.Connection) -> Self:
        """Adopt a SQLAlchemy connection; closing the handle closes it."""
        return cls(sa_connection.connection, get_dialect_name(sa_connection), sa_connection)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        """Close the connection when exiting the context manager
        """
        try:
            self.close()
            logger.debug('Closed connection via context manager')
        except ConnectionError as e:
            logger.debug(f'Error closing connection in __exit__: {e}')

    def __repr__(self) -> str:
        state = 'closed' if self._closed else 'open'
        return f'ConnectionAdapter({self._dialect}, {state})'

    @property
    def connection(self) -> Any:
        """The driver's own connection object."""
        return getattr(self.dbapi_connection, 'driver_connection', self.dbapi_connection)

    @property
    def dialect(self) -> str:
        return self._dialect

    @property
    def closed(self) -> bool:
        return self._closed

    @cached_property
    def query_executor(self) -> QueryExecutor:
        return QueryExecutor(self)

    @cached_property
    def call_executor(self) -> CallExecutor:
        return CallExecutor(self)

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def cursor(self) -> Any:
        """Open a DB-API cursor on the native connection.

        Raises
            ConnectionError: If the handle is closed or the driver refuses
        """
        if self._closed:
            raise ConnectionError('Connection is closed')
        try:
            return self.dbapi_connection.cursor()
        except NativeError as e:
            raise ConnectionError('Failed to open cursor', e) from e

    def query(self, sql: str, binds: list[Any] | None = None) -> QueryResult:
        """Execute a query with positional binds and return a lazy result.
        """
        return self.query_executor.execute_query(sql, binds)

    def exec(self, statement: str, in_binds: dict[Any, Any] | None = None,
             out_binds: dict[Any, Any] | None = None) -> dict[Any, Any]:
        """Execute a callable statement and return its out values.
        """
        return self.call_executor.execute_call(statement, in_binds, out_binds)

    def commit(self) -> None:
        """Commit the current transaction of the native connection."""
        if self._closed:
            raise ConnectionError('Connection is closed')
        try:
            self.dbapi_connection.commit()
        except NativeError as e:
            raise QueryError('Commit failed', e) from e

    def rollback(self) -> None:
        """Roll back the current transaction of the native connection."""
        if self._closed:
            raise ConnectionError('Connection is closed')
        try:
            self.dbapi_connection.rollback()
        except NativeError as e:
            raise QueryError('Rollback failed', e) from e

    def close(self) -> None:
        """Close the native connection. Closing twice is a no-op.
        """
        if self._closed:
            return
        self._closed = True
        try:
            if self.sa_connection is not None:
                self.sa_connection.close()
            else:
                self.dbapi_connection.close()
        except NativeError as e:
            raise ConnectionError('Failed to close connection', e) from e
        logger.debug(f'Connection closed: {self.calls} statements in {self.time:.2f}s '
                     f'(avg: {self.time/max(1,self.calls):.3f}s per statement)')


def connect(options: DatabaseOptions) -> ConnectionAdapter:
    """Open a new connection described by `options`.

    Raises
        ConnectionError: If the address is invalid or the driver fails to connect
    """
    try:
        url = create_url(options)
    except (ValueError, NativeError) as e:
        raise ConnectionError(f'Invalid connection address {options.url!r}', e) from e

    address = url.render_as_string(hide_password=True)
    try:
        engine = get_engine(url, echo=options.echo)
        sa_connection = engine.connect()
    except (NativeError, ImportError) as e:
        raise ConnectionError(f'Failed to connect to {address}', e) from e

    try:
        cn = ConnectionAdapter.from_sqlalchemy(sa_connection)
    except ConnectionError:
        sa_connection.close()
        raise
    logger.debug(f'Opened connection to {address}')
    return cn


def as_connection(obj: Any) -> ConnectionAdapter:
    """Adapt a handle, SQLAlchemy connection or DB-API connection into a handle.
    """
    if isinstance(obj, ConnectionAdapter):
        return obj
    if isinstance(obj, sa.engine.Connection):
        return ConnectionAdapter.from_sqlalchemy(obj)
    return ConnectionAdapter(obj)
