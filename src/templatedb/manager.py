"""
Connection manager and the default connection slot.

A `ConnectionManager` creates connection handles and holds at most one of them
as the default connection. The slot starts empty; the first read opens a
connection through the implicit mechanism (an injected connector, the
manager's options or the `TEMPLATEDB_*` environment). Reading, lazily
creating and replacing the slot happen under one lock, so concurrent first
reads create exactly one handle.

Replacing or clearing the default never closes the previous handle: whoever
created a handle closes it.
"""
import logging
import threading
from collections.abc import Callable
from typing import Any

from templatedb.connection import ConnectionAdapter, as_connection, connect
from templatedb.exceptions import ConnectionError
from templatedb.exceptions import UnsupportedArgumentError
from templatedb.options import DEFAULT_URL, DatabaseOptions
from templatedb.query import QueryResult

__all__ = ['ConnectionManager', 'get_manager', 'set_manager']

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Creates connections and owns the default connection slot.

    Parameters
        options: ambient connection options; read from the environment when omitted
        connector: callable returning a DB-API connection, a SQLAlchemy
            connection or a handle; takes precedence over `options`
    """

    def __init__(self, options: DatabaseOptions | None = None,
                 connector: Callable[[], Any] | None = None) -> None:
        self.options = options
        self.connector = connector
        self._default: ConnectionAdapter | None = None
        self._lock = threading.Lock()

    def new_connection(self, url: str | None = None, user: str | None = None,
                       password: str | None = None) -> ConnectionAdapter:
        """Open a new connection handle.

        Without a URL (or with `DEFAULT_URL`) the implicit connection of the
        environment is opened. Otherwise `url` is handed verbatim to
        SQLAlchemy's URL parser, with `user` and `password` applied.

        Raises
            UnsupportedArgumentError: arguments that are not strings
            ConnectionError: the connection cannot be opened
        """
        for name, arg in (('url', url), ('user', user), ('password', password)):
            if arg is not None and not isinstance(arg, str):
                raise UnsupportedArgumentError(f'{name} must be a string, got {type(arg).__name__}')

        if url is None or url == DEFAULT_URL:
            if user is not None or password is not None:
                raise UnsupportedArgumentError('The default connection takes no credentials')
            return self._open_implicit()

        try:
            options = DatabaseOptions(url=url, username=user, password=password)
        except ValueError as e:
            raise ConnectionError(f'Invalid connection address {url!r}', e) from e
        return connect(options)

    def _open_implicit(self) -> ConnectionAdapter:
        if self.connector is not None:
            try:
                native = self.connector()
            except ConnectionError:
                raise
            except Exception as e:
                raise ConnectionError('Failed to open the default connection', e) from e
            cn = as_connection(native)
            logger.debug(f'Opened default connection from connector: {cn!r}')
            return cn

        options = self.options or DatabaseOptions.from_env()
        if options is None:
            raise ConnectionError('No default connection configured: '
                                  'set TEMPLATEDB_URL or pass options to the manager')
        return connect(options)

    def get_default_connection(self) -> ConnectionAdapter:
        """Return the default connection, opening it on first use.
        """
        with self._lock:
            if self._default is None:
                self._default = self.new_connection()
                logger.debug('Default connection created')
            return self._default

    def set_default_connection(self, handle: ConnectionAdapter | None = None) -> None:
        """Replace the default connection; None clears the slot.

        The previous handle is not closed.
        """
        if handle is not None and not isinstance(handle, ConnectionAdapter):
            raise UnsupportedArgumentError(
                f'Default connection must be a ConnectionAdapter or None, got {type(handle).__name__}')
        with self._lock:
            previous, self._default = self._default, handle
        if previous is not None and previous is not handle:
            logger.debug(f'Default connection replaced; previous handle left open: {previous!r}')

    def query(self, sql: str, binds: list[Any] | None = None) -> QueryResult:
        """Run a query on the default connection."""
        return self.get_default_connection().query(sql, binds)

    def exec(self, statement: str, in_binds: dict[Any, Any] | None = None,
             out_binds: dict[Any, Any] | None = None) -> dict[Any, Any]:
        """Run a callable statement on the default connection."""
        return self.get_default_connection().exec(statement, in_binds, out_binds)


_manager = ConnectionManager()
_manager_lock = threading.Lock()


def get_manager() -> ConnectionManager:
    """Process-wide manager used by the module-level functions."""
    with _manager_lock:
        return _manager


def set_manager(manager: ConnectionManager) -> ConnectionManager:
    """Install a process-wide manager and return the previous one.
    """
    global _manager
    if not isinstance(manager, ConnectionManager):
        raise UnsupportedArgumentError(f'Expected a ConnectionManager, got {type(manager).__name__}')
    with _manager_lock:
        previous, _manager = _manager, manager
    return previous
