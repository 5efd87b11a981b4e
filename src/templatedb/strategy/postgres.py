"""
PostgreSQL-specific strategy implementation (psycopg 3).

psycopg returns arrays as Python lists and adapts lists to arrays when
binding, inferring the array type from the elements. PostgreSQL has no
output bind variables: ``CALL`` returns INOUT/OUT parameters as a result row
and functions return their values as columns, so callable statements run in
result-row mode.
"""
import datetime
import logging
from decimal import Decimal
from typing import Any

from psycopg.postgres import types as pg_types
from templatedb.array import NativeArray, SequenceArray
from templatedb.strategy.base import DialectStrategy, register_strategy

logger = logging.getLogger(__name__)


_oid = lambda x: pg_types.get(x).oid
_aoid = lambda x: pg_types.get(x).array_oid

postgres_types: dict[int, type] = {}

for v in [_oid('"char"'), _oid('bpchar'), _oid('character varying'), _oid('character'),
          _oid('json'), _oid('name'), _oid('text'), _oid('uuid'), _oid('varchar')]:
    postgres_types[v] = str

for v in [_oid('bigint'), _oid('int2'), _oid('int4'), _oid('int8'), _oid('integer')]:
    postgres_types[v] = int

for v in [_oid('float4'), _oid('float8'), _oid('double precision')]:
    postgres_types[v] = float

postgres_types[_oid('numeric')] = Decimal
postgres_types[_oid('date')] = datetime.date

for v in [_oid('time'), _oid('timetz')]:
    postgres_types[v] = datetime.time

for v in [_oid('timestamp'), _oid('timestamptz')]:
    postgres_types[v] = datetime.datetime

postgres_types[_oid('bool')] = bool
postgres_types[_oid('bytea')] = bytes

for k in tuple(postgres_types):
    postgres_types[_aoid(k)] = list


@register_strategy('postgresql')
class PostgresStrategy(DialectStrategy):
    """PostgreSQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        return 'postgresql'

    def get_type_map(self) -> dict[int, type]:
        return postgres_types

    def native_array(self, value: Any) -> NativeArray | None:
        if isinstance(value, list):
            return SequenceArray(value)
        return None

    def build_array(self, values: list[Any]) -> list[Any]:
        return list(values)

    def read_lob(self, value: Any) -> Any:
        if isinstance(value, memoryview):
            return bytes(value)
        return value
