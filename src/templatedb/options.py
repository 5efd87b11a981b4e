"""
Connection options and SQLAlchemy engine management.

`DatabaseOptions` describes one database address. The ambient (implicit)
connection used by `new_connection()` without arguments is configured through
environment variables read by `DatabaseOptions.from_env`:

    TEMPLATEDB_URL        SQLAlchemy URL, e.g. ``oracle+oracledb://host:1521/?service_name=orcl``
    TEMPLATEDB_USER       user name (optional, overrides the URL)
    TEMPLATEDB_PASSWORD   password (optional, overrides the URL)

Engines are created without pooling (`NullPool`): every connection handed
out is a fresh physical connection owned by exactly one handle.
"""
import atexit
import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Self

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from templatedb.strategy import get_available_dialects, get_strategy
from templatedb.strategy import is_supported_dialect

__all__ = [
    'DEFAULT_URL',
    'DatabaseOptions',
    'create_url',
    'get_engine',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

# Reserved address meaning "the ambient connection of the environment"
DEFAULT_URL = 'default:connection'

ENV_PREFIX = 'TEMPLATEDB_'

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


@dataclass
class DatabaseOptions:
    """Options

    Either `url` (any SQLAlchemy URL) or `drivername` plus the discrete
    fields. `username`/`password` override credentials in the URL.

    supported driver names: `postgresql`, `sqlite`, `oracle`
    """
    url: str | None = None
    drivername: str | None = None
    hostname: str | None = None
    username: str | None = None
    password: str | None = None
    database: str | None = None
    port: int = 0
    timeout: int = 0
    echo: bool = False

    def __post_init__(self):
        if not self.url and not self.drivername:
            raise ValueError('Either url or drivername is required')
        if self.drivername and not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')

    def __repr__(self) -> str:
        return (f'DatabaseOptions(url={self.url!r}, drivername={self.drivername!r}, '
                f'hostname={self.hostname!r}, database={self.database!r}, '
                f'username={self.username!r})')

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX,
                 environ: dict[str, str] | None = None) -> Self | None:
        """Read ambient connection options; None when no URL is configured.
        """
        environ = os.environ if environ is None else environ
        url = environ.get(f'{prefix}URL')
        if not url:
            return None
        return cls(
            url=url,
            username=environ.get(f'{prefix}USER'),
            password=environ.get(f'{prefix}PASSWORD'),
        )


def create_url(options: DatabaseOptions,
               url_creator: Callable[..., sa.URL] = sa.URL.create) -> sa.URL:
    """Convert DatabaseOptions to SQLAlchemy URL.
    """
    if options.url:
        url = sa.make_url(options.url)
        if options.username is not None:
            url = url.set(username=options.username)
        if options.password is not None:
            url = url.set(password=options.password)
        return url

    if options.drivername == 'sqlite':
        return url_creator(drivername='sqlite', database=options.database)

    if options.drivername == 'postgresql':
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        return url_creator(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or None,
            database=options.database,
            query=query
        )

    if options.drivername == 'oracle':
        return url_creator(
            drivername='oracle+oracledb',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or None,
            query={'service_name': options.database} if options.database else {}
        )

    raise ValueError(f'Unsupported database type: {options.drivername}')


def get_engine(url: sa.URL, echo: bool = False,
               engine_factory: Callable[..., Engine] = sa.create_engine,
               **kwargs: Any) -> Engine:
    """Get or create an unpooled SQLAlchemy engine for the given URL.
    """
    key = f'{url.render_as_string(hide_password=False)}_{echo}'

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {url.get_backend_name()}')
            return _engine_registry[key]

        engine_kwargs: dict[str, Any] = {'echo': echo, 'poolclass': NullPool}
        backend = url.get_backend_name()
        if is_supported_dialect(backend):
            engine_kwargs.update(get_strategy(backend).get_engine_kwargs())
        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)
        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {backend}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)
