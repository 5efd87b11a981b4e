"""
Oracle-specific strategy implementation (python-oracledb).

Oracle is the one supported database with real output bind variables:
PL/SQL blocks such as ``begin :x := :y + 1; end;`` bind a typed variable for
``:x`` and read it back after execution. Collections (VARRAY, nested tables)
are exposed as lazy arrays, REF CURSORs as query results, and LOB locators
are read into str/bytes.
"""
import datetime
import logging
from decimal import Decimal
from typing import Any

import oracledb
from templatedb.exceptions import TypeMismatchError
from templatedb.strategy.base import DialectStrategy, register_strategy
from templatedb.types import SqlType

logger = logging.getLogger(__name__)


oracle_types: dict[Any, type] = {
    oracledb.DB_TYPE_VARCHAR: str,
    oracledb.DB_TYPE_NVARCHAR: str,
    oracledb.DB_TYPE_CHAR: str,
    oracledb.DB_TYPE_NCHAR: str,
    oracledb.DB_TYPE_LONG: str,
    oracledb.DB_TYPE_CLOB: str,
    oracledb.DB_TYPE_NCLOB: str,
    oracledb.DB_TYPE_NUMBER: Decimal,
    oracledb.DB_TYPE_BINARY_INTEGER: int,
    oracledb.DB_TYPE_BINARY_FLOAT: float,
    oracledb.DB_TYPE_BINARY_DOUBLE: float,
    oracledb.DB_TYPE_DATE: datetime.datetime,
    oracledb.DB_TYPE_TIMESTAMP: datetime.datetime,
    oracledb.DB_TYPE_TIMESTAMP_TZ: datetime.datetime,
    oracledb.DB_TYPE_TIMESTAMP_LTZ: datetime.datetime,
    oracledb.DB_TYPE_BOOLEAN: bool,
    oracledb.DB_TYPE_RAW: bytes,
    oracledb.DB_TYPE_LONG_RAW: bytes,
    oracledb.DB_TYPE_BLOB: bytes,
}

# Declared out type -> cursor.var() type
out_var_types: dict[SqlType, Any] = {
    SqlType.INTEGER: int,
    SqlType.NUMERIC: Decimal,
    SqlType.FLOAT: float,
    SqlType.VARCHAR: str,
    SqlType.CLOB: oracledb.DB_TYPE_CLOB,
    SqlType.BLOB: oracledb.DB_TYPE_BLOB,
    SqlType.BOOLEAN: bool,
    SqlType.DATE: oracledb.DB_TYPE_DATE,
    SqlType.TIMESTAMP: oracledb.DB_TYPE_TIMESTAMP,
    SqlType.CURSOR: oracledb.DB_TYPE_CURSOR,
}


class OracleCollection:
    """Native array over an oracledb collection object.

    Elements are fetched one at a time by walking the collection indexes, so
    sparse nested tables work the same as VARRAYs.
    """

    def __init__(self, obj: Any) -> None:
        self.obj = obj

    @property
    def native(self) -> Any:
        return self.obj

    def get_array(self, index: int | None = None, count: int | None = None) -> list[Any]:
        if index is None:
            return self.obj.aslist()
        idx = self.obj.first()
        for _ in range(index - 1):
            if idx is None:
                break
            idx = self.obj.next(idx)
        values = []
        while idx is not None and (count is None or len(values) < count):
            values.append(self.obj.getelement(idx))
            idx = self.obj.next(idx)
        return values

    def __repr__(self) -> str:
        return f'OracleCollection({self.obj.type.name})'


@register_strategy('oracle')
class OracleStrategy(DialectStrategy):
    """Oracle-specific operations.
    """

    supports_out_binds = True

    @property
    def dialect_name(self) -> str:
        return 'oracle'

    def get_type_map(self) -> dict[Any, type]:
        return oracle_types

    def native_array(self, value: Any) -> OracleCollection | None:
        if isinstance(value, oracledb.DbObject) and value.type.iscollection:
            return OracleCollection(value)
        return None

    def is_cursor(self, value: Any) -> bool:
        return isinstance(value, oracledb.Cursor)

    def read_lob(self, value: Any) -> Any:
        if isinstance(value, oracledb.LOB):
            return value.read()
        return value

    def create_out_var(self, cursor: Any, sql_type: SqlType, in_value: Any = None) -> Any:
        """Create a typed output variable, seeded with `in_value` for in-out binds.
        """
        var_type = out_var_types.get(sql_type)
        if var_type is None:
            raise TypeMismatchError(sql_type.value, 'an Oracle output variable',
                                    'no Oracle variable type for this declared type')
        var = cursor.var(var_type)
        if in_value is not None:
            var.setvalue(0, in_value)
        return var
