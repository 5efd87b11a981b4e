"""
Dialect strategy factory.
"""
from functools import lru_cache
from typing import Any

from templatedb.strategy.base import _STRATEGY_REGISTRY
from templatedb.strategy.base import DialectStrategy as DialectStrategy
from templatedb.strategy.base import register_strategy as register_strategy
from templatedb.strategy.oracle import OracleStrategy as OracleStrategy
from templatedb.strategy.postgres import PostgresStrategy as PostgresStrategy
from templatedb.strategy.sqlite import SQLiteStrategy as SQLiteStrategy


def _validate_dialect(dialect: str) -> None:
    """Raise ValueError if dialect is not registered."""
    if dialect not in _STRATEGY_REGISTRY:
        available = list(_STRATEGY_REGISTRY.keys())
        raise ValueError(f'Unsupported dialect: {dialect}. Available: {available}')


@lru_cache(maxsize=8)
def get_strategy(dialect: str) -> DialectStrategy:
    """Get the cached strategy instance for a dialect name."""
    _validate_dialect(dialect)
    return _STRATEGY_REGISTRY[dialect]()


def get_available_dialects() -> list[str]:
    """Return list of registered dialect names."""
    return list(_STRATEGY_REGISTRY.keys())


def is_supported_dialect(dialect: str) -> bool:
    """Check if a dialect is supported."""
    return dialect in _STRATEGY_REGISTRY


def get_dialect_name(obj: Any) -> str:
    """Get dialect name for a SQLAlchemy engine/connection or a DB-API connection.

    Raises
        ValueError: If the dialect cannot be determined
    """
    if hasattr(obj, 'dialect') and hasattr(obj.dialect, 'name'):
        return str(obj.dialect.name).lower()

    if hasattr(obj, 'engine') and hasattr(obj.engine, 'dialect'):
        return str(obj.engine.dialect.name).lower()

    # SQLAlchemy pool proxy (_ConnectionFairy) - unwrap to DBAPI connection
    if hasattr(obj, 'driver_connection'):
        return get_dialect_name(obj.driver_connection)

    type_name = f'{type(obj).__module__}.{type(obj).__name__}'
    if 'psycopg' in type_name:
        return 'postgresql'
    if 'sqlite3' in type_name:
        return 'sqlite'
    if 'oracledb' in type_name or 'cx_Oracle' in type_name:
        return 'oracle'

    raise ValueError(f'Cannot determine dialect for {type(obj)}')
