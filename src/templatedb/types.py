"""
Type handling between template values and database drivers.

This module provides:
- ValueKind / kind_of: tag a template value as null, scalar, sequence, mapping or opaque
- SqlType / resolve_sql_type: declared SQL types used for out binds and coercion
- coerce: convert a plain Python scalar to a declared SQL type
- TypeMarshaller: template value <-> native driver value conversion
- Column: column metadata from cursor descriptions
"""
import datetime
import logging
import math
import uuid
from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Self

import dateutil.parser
import numpy as np
import pandas as pd
from templatedb.array import ArrayAdapter
from templatedb.exceptions import TypeMismatchError

if TYPE_CHECKING:
    from templatedb.strategy.base import DialectStrategy

__all__ = [
    'ValueKind',
    'kind_of',
    'SqlType',
    'resolve_sql_type',
    'coerce',
    'TypeMarshaller',
    'Column',
]

logger = logging.getLogger(__name__)


class ValueKind(Enum):
    """Shape of a value exchanged with template code."""
    NULL = auto()
    SCALAR = auto()
    SEQUENCE = auto()
    MAPPING = auto()
    OPAQUE = auto()


SCALAR_TYPES = (
    str, bytes, bytearray, memoryview, bool, int, float, Decimal,
    datetime.date, datetime.time, datetime.timedelta, uuid.UUID, np.generic,
    )


def kind_of(value: Any) -> ValueKind:
    """Classify a template value.
    """
    if value is None or value is pd.NA or value is pd.NaT:
        return ValueKind.NULL
    if isinstance(value, SCALAR_TYPES):
        return ValueKind.SCALAR
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, Sequence | np.ndarray):
        return ValueKind.SEQUENCE
    return ValueKind.OPAQUE


class SqlType(Enum):
    """Declared SQL types understood by the marshaller."""
    INTEGER = 'integer'
    NUMERIC = 'numeric'
    FLOAT = 'float'
    VARCHAR = 'varchar'
    CLOB = 'clob'
    BLOB = 'blob'
    BOOLEAN = 'boolean'
    DATE = 'date'
    TIMESTAMP = 'timestamp'
    TIME = 'time'
    CURSOR = 'cursor'
    ARRAY = 'array'


SQL_TYPE_NAMES: dict[str, SqlType] = {
    'integer': SqlType.INTEGER,
    'int': SqlType.INTEGER,
    'bigint': SqlType.INTEGER,
    'smallint': SqlType.INTEGER,
    'pls_integer': SqlType.INTEGER,
    'binary_integer': SqlType.INTEGER,
    'numeric': SqlType.NUMERIC,
    'number': SqlType.NUMERIC,
    'decimal': SqlType.NUMERIC,
    'float': SqlType.FLOAT,
    'double': SqlType.FLOAT,
    'double precision': SqlType.FLOAT,
    'real': SqlType.FLOAT,
    'binary_double': SqlType.FLOAT,
    'varchar': SqlType.VARCHAR,
    'varchar2': SqlType.VARCHAR,
    'nvarchar2': SqlType.VARCHAR,
    'char': SqlType.VARCHAR,
    'string': SqlType.VARCHAR,
    'text': SqlType.VARCHAR,
    'clob': SqlType.CLOB,
    'nclob': SqlType.CLOB,
    'blob': SqlType.BLOB,
    'bytea': SqlType.BLOB,
    'raw': SqlType.BLOB,
    'boolean': SqlType.BOOLEAN,
    'bool': SqlType.BOOLEAN,
    'date': SqlType.DATE,
    'timestamp': SqlType.TIMESTAMP,
    'datetime': SqlType.TIMESTAMP,
    'time': SqlType.TIME,
    'cursor': SqlType.CURSOR,
    'refcursor': SqlType.CURSOR,
    'sys_refcursor': SqlType.CURSOR,
    'array': SqlType.ARRAY,
}

PYTHON_SQL_TYPES: dict[type, SqlType] = {
    bool: SqlType.BOOLEAN,
    int: SqlType.INTEGER,
    float: SqlType.FLOAT,
    Decimal: SqlType.NUMERIC,
    str: SqlType.VARCHAR,
    bytes: SqlType.BLOB,
    datetime.datetime: SqlType.TIMESTAMP,
    datetime.date: SqlType.DATE,
    datetime.time: SqlType.TIME,
    list: SqlType.ARRAY,
    tuple: SqlType.ARRAY,
}


def resolve_sql_type(declared: Any) -> SqlType:
    """Resolve a declared type (name, SqlType or Python type) to a SqlType.

    Names are case-insensitive and may carry a size, e.g. ``varchar2(100)``.
    """
    if isinstance(declared, SqlType):
        return declared
    if isinstance(declared, type) and declared in PYTHON_SQL_TYPES:
        return PYTHON_SQL_TYPES[declared]
    if isinstance(declared, str):
        name = declared.split('(')[0].strip().lower()
        if name in SQL_TYPE_NAMES:
            return SQL_TYPE_NAMES[name]
        if name.endswith('[]'):
            return SqlType.ARRAY
    raise TypeMismatchError('a declared SQL type', repr(declared), 'unknown type name')


_TRUE_STRINGS = {'true', 't', 'yes', 'y', '1'}
_FALSE_STRINGS = {'false', 'f', 'no', 'n', '0'}


def _to_integer(value: Any) -> int:
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float | Decimal):
        if value != int(value):
            raise ValueError(f'{value} has a fractional part')
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError


def _to_numeric(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise TypeError
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float | str):
        return Decimal(str(value).strip())
    raise TypeError


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError
    if isinstance(value, int | float | Decimal | str):
        return float(value)
    raise TypeError


def _to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bytes | bytearray):
        return bytes(value).decode()
    if isinstance(value, datetime.date | datetime.time):
        return value.isoformat()
    if isinstance(value, int | float | Decimal | uuid.UUID):
        return str(value)
    raise TypeError


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value)
    raise TypeError


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int | Decimal) and value in {0, 1}:
        return bool(value)
    if isinstance(value, str):
        if value.strip().lower() in _TRUE_STRINGS:
            return True
        if value.strip().lower() in _FALSE_STRINGS:
            return False
        raise ValueError(f'{value!r} is not a boolean literal')
    raise TypeError


def _to_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        return dateutil.parser.isoparse(value).date()
    raise TypeError


def _to_timestamp(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, str):
        return dateutil.parser.isoparse(value)
    raise TypeError


def _to_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.datetime):
        return value.time()
    if isinstance(value, datetime.time):
        return value
    if isinstance(value, str):
        return dateutil.parser.isoparser().parse_isotime(value)
    raise TypeError


_COERCERS = {
    SqlType.INTEGER: _to_integer,
    SqlType.NUMERIC: _to_numeric,
    SqlType.FLOAT: _to_float,
    SqlType.VARCHAR: _to_string,
    SqlType.CLOB: _to_string,
    SqlType.BLOB: _to_bytes,
    SqlType.BOOLEAN: _to_boolean,
    SqlType.DATE: _to_date,
    SqlType.TIMESTAMP: _to_timestamp,
    SqlType.TIME: _to_time,
}


def coerce(value: Any, sql_type: SqlType) -> Any:
    """Convert a plain Python scalar to the Python type of a declared SQL type.

    Raises
        TypeMismatchError: naming both the declared and the actual type
    """
    if value is None:
        return None
    coercer = _COERCERS.get(sql_type)
    if coercer is None:
        raise TypeMismatchError(sql_type.value, type(value).__name__)
    try:
        return coercer(value)
    except (TypeError, ValueError, ArithmeticError, InvalidOperation, OverflowError) as e:
        raise TypeMismatchError(sql_type.value, type(value).__name__, str(e) or None) from e


def _unwrap_scalar(value: Any) -> Any:
    """Convert NumPy/Pandas scalars to Python types, NaN/NaT to None."""
    if isinstance(value, float) and math.isnan(value):
        return None

    if isinstance(value, np.floating) and np.isnan(value):
        return None

    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return pd.Timestamp(value).to_pydatetime()

    if isinstance(value, np.generic):
        return value.item()

    if isinstance(value, bytearray | memoryview):
        return bytes(value)

    return value


class TypeMarshaller:
    """Convert values between template code and a database driver.

    Dialect-specific knowledge (array, cursor and LOB objects) comes from the
    strategy; the conversions themselves keep no state.
    """

    def __init__(self, strategy: 'DialectStrategy') -> None:
        self.strategy = strategy

    def to_native(self, value: Any, sql_type: SqlType | None = None) -> Any:
        """Convert a template value into a bind value for the driver.
        """
        match kind_of(value):
            case ValueKind.NULL:
                return None
            case ValueKind.SCALAR:
                value = _unwrap_scalar(value)
                if value is None or sql_type is None:
                    return value
                if sql_type in {SqlType.ARRAY, SqlType.CURSOR}:
                    raise TypeMismatchError(sql_type.value, type(value).__name__)
                return coerce(value, sql_type)
            case ValueKind.SEQUENCE:
                if isinstance(value, ArrayAdapter):
                    return value.adapted
                if sql_type not in {None, SqlType.ARRAY}:
                    raise TypeMismatchError(sql_type.value, type(value).__name__)
                return self.strategy.build_array([self.to_native(v) for v in value])
            case ValueKind.MAPPING:
                raise TypeMismatchError('a bind value', type(value).__name__,
                                        'a mapping cannot be bound as a single value')
            case ValueKind.OPAQUE:
                return value

    def to_dynamic(self, value: Any, sql_type: SqlType | None = None) -> Any:
        """Convert a driver value into a template value.

        Arrays become lazy `ArrayAdapter`s and cursors become `QueryResult`s;
        nothing is flattened eagerly.
        """
        if value is None:
            return None

        if self.strategy.is_cursor(value):
            if sql_type not in {None, SqlType.CURSOR}:
                raise TypeMismatchError(sql_type.value, 'cursor')
            from templatedb.query import QueryResult
            return QueryResult(value, self)

        array = self.strategy.native_array(value)
        if array is not None:
            if sql_type not in {None, SqlType.ARRAY}:
                raise TypeMismatchError(sql_type.value, 'array')
            return ArrayAdapter(array, self)

        value = self.strategy.read_lob(value)
        if isinstance(value, memoryview):
            value = bytes(value)

        if sql_type is None:
            return value
        if sql_type in {SqlType.ARRAY, SqlType.CURSOR}:
            raise TypeMismatchError(sql_type.value, type(value).__name__)
        return coerce(value, sql_type)


class Column:
    """Database column metadata."""

    def __init__(self,
                 name: str,
                 type_code: Any,
                 python_type: type | None = None,
                 display_size: int | None = None,
                 internal_size: int | None = None,
                 precision: int | None = None,
                 scale: int | None = None,
                 nullable: bool | None = None):
        self.name = name
        self.type_code = type_code
        self.python_type = python_type
        self.display_size = display_size
        self.internal_size = internal_size
        self.precision = precision
        self.scale = scale
        self.nullable = nullable

    @classmethod
    def from_cursor_description(cls, description_item: Sequence,
                                strategy: 'DialectStrategy') -> Self:
        """Create a Column from a DB-API cursor description item."""
        item = tuple(description_item) + (None,) * (7 - len(description_item))
        name, type_code, display_size, internal_size, precision, scale, nullable = item[:7]
        return cls(
            name=str(name) if name is not None else None,
            type_code=type_code,
            python_type=strategy.resolve_type(type_code),
            display_size=display_size,
            internal_size=internal_size,
            precision=precision,
            scale=scale,
            nullable=bool(nullable) if nullable is not None else None,
        )

    def __repr__(self) -> str:
        return (f'Column(name={self.name!r}, type_code={self.type_code!r}, '
                f'python_type={self.python_type.__name__ if self.python_type else None})')

    @staticmethod
    def get_names(columns: list[Self]) -> list[str]:
        return [col.name for col in columns]


def columns_from_cursor_description(cursor: Any, strategy: 'DialectStrategy') -> list[Column]:
    """Create Column objects from cursor description."""
    if cursor.description is None:
        return []
    return [Column.from_cursor_description(desc, strategy) for desc in cursor.description]
