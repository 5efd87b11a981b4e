"""
Base strategy interface for dialect-specific behavior.

Drivers differ in placeholder style, in how (or whether) they return output
parameters from callable statements, and in how they represent arrays,
cursors and large objects. Each concrete strategy encapsulates those
differences; executors and the marshaller only talk to this interface.

Output parameters come in two modes:

- bind-variable mode (`supports_out_binds` is True): the driver binds a typed
  variable for every output placeholder and fills it during execution.
- result-row mode: the driver has no output binds, so output values are read
  from the first row the statement returns.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from templatedb.exceptions import TypeMismatchError
from templatedb.sql import standardize_placeholders

if TYPE_CHECKING:
    from templatedb.array import NativeArray
    from templatedb.options import DatabaseOptions
    from templatedb.types import SqlType

# Registry of dialect name -> strategy class
_STRATEGY_REGISTRY: dict[str, type['DialectStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('oracle')
        class OracleStrategy(DialectStrategy):
            ...
    """
    def decorator(cls: type['DialectStrategy']) -> type['DialectStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DialectStrategy(ABC):
    """Base class for driver-specific operations.
    """

    supports_out_binds: bool = False

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier."""

    def standardize_sql(self, sql: str) -> str:
        """Rewrite placeholders into the driver's paramstyle."""
        return standardize_placeholders(sql, self.dialect_name)

    def get_engine_kwargs(self, options: 'DatabaseOptions | None' = None) -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for the dialect."""
        return {}

    def configure_connection(self, connection: Any) -> None:
        """Register type adapters/converters on a fresh DB-API connection."""

    def get_type_map(self) -> dict[Any, type]:
        """Return mapping of driver type codes to Python types."""
        return {}

    def resolve_type(self, type_code: Any) -> type | None:
        """Resolve a cursor description type code to a Python type.
        """
        if isinstance(type_code, type):
            return type_code
        try:
            return self.get_type_map().get(type_code)
        except TypeError:
            return None

    def native_array(self, value: Any) -> 'NativeArray | None':
        """Return a native array resource for `value` or None if it is not an array."""
        return None

    def is_cursor(self, value: Any) -> bool:
        """Whether `value` is a cursor returned as a column or output value."""
        return False

    def read_lob(self, value: Any) -> Any:
        """Read large-object locators into str/bytes; other values unchanged."""
        return value

    def build_array(self, values: list[Any]) -> Any:
        """Build a native array bind value from converted elements.
        """
        raise TypeMismatchError('a native array', 'sequence',
                                f'{self.dialect_name} cannot bind arrays without a declared array type')

    def create_out_var(self, cursor: Any, sql_type: 'SqlType', in_value: Any = None) -> Any:
        """Create a typed output variable on `cursor` (bind-variable mode only).
        """
        raise TypeMismatchError('an output bind variable', sql_type.value,
                                f'{self.dialect_name} has no output bind variables')

    def read_out_var(self, var: Any) -> Any:
        """Read the value of an output variable after execution."""
        return var.getvalue()
