"""
SQLite-specific strategy implementation.

SQLite has no stored procedures, output binds or array types. Callable
statements run in result-row mode, and date/datetime columns are converted
through registered converters.
"""
import datetime
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

import dateutil.parser
from templatedb.strategy.base import DialectStrategy, register_strategy

if TYPE_CHECKING:
    from templatedb.options import DatabaseOptions

logger = logging.getLogger(__name__)


sqlite_types: dict[str, type] = {
    'INTEGER': int,
    'INT': int,
    'REAL': float,
    'TEXT': str,
    'BLOB': bytes,
    'NUMERIC': float,
    'BOOLEAN': bool,
    'DATE': datetime.date,
    'DATETIME': datetime.datetime,
    'TIMESTAMP': datetime.datetime,
    'TIME': datetime.time,
}


def convert_date(val: bytes) -> datetime.date:
    """Convert ISO 8601 date string to date object."""
    return dateutil.parser.isoparse(val.decode()).date()


def convert_datetime(val: bytes) -> datetime.datetime:
    """Convert ISO 8601 datetime string to datetime object."""
    return dateutil.parser.isoparse(val.decode())


def adapt_date(val: datetime.date) -> str:
    return val.isoformat()


def adapt_datetime(val: datetime.datetime) -> str:
    return val.isoformat(' ')


@register_strategy('sqlite')
class SQLiteStrategy(DialectStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        return 'sqlite'

    def get_engine_kwargs(self, options: 'DatabaseOptions | None' = None) -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        return {
            'connect_args': {
                'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
            }
        }

    def configure_connection(self, connection: Any) -> None:
        """Register date/datetime adapters and converters.

        The sqlite3 registries are module-wide; registering again is harmless.
        """
        sqlite3.register_adapter(datetime.date, adapt_date)
        sqlite3.register_adapter(datetime.datetime, adapt_datetime)
        sqlite3.register_converter('date', convert_date)
        sqlite3.register_converter('datetime', convert_datetime)
        sqlite3.register_converter('timestamp', convert_datetime)
        logger.debug('Registered SQLite date converters')

    def get_type_map(self) -> dict[str, type]:
        return sqlite_types

    def resolve_type(self, type_code: Any) -> type | None:
        """SQLite reports declared type names (or nothing) as type codes."""
        if isinstance(type_code, str):
            return sqlite_types.get(type_code.split('(')[0].strip().upper())
        return super().resolve_type(type_code)
