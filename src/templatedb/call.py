"""
Callable statement execution with in and out binds.

In binds map an identifier to a value, out binds map an identifier to a
declared type. Identifiers are placeholder names (``'x'`` for ``:x`` or
``%(x)s``) or 1-based positions for positional placeholders. The two maps are
independent: an in-out parameter is the same identifier in both.

How out values come back depends on the driver (see
`templatedb.strategy.base`): typed output variables where the driver has them,
otherwise the columns of the first row the statement returns.
"""
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from templatedb.exceptions import CallError, NativeError, TypeMismatchError
from templatedb.exceptions import UnsupportedArgumentError
from templatedb.query import ColumnIndex
from templatedb.sql import count_positional, placeholder_names
from templatedb.types import SqlType, ValueKind, columns_from_cursor_description
from templatedb.types import kind_of, resolve_sql_type
from templatedb.utils import close_cursor, dumpsql

if TYPE_CHECKING:
    from templatedb.connection import ConnectionAdapter

__all__ = ['CallExecutor']

logger = logging.getLogger(__name__)

_UNSET = object()


def _as_bind_map(binds: Any, which: str) -> dict[Any, Any]:
    match kind_of(binds):
        case ValueKind.NULL:
            return {}
        case ValueKind.MAPPING:
            return dict(binds)
        case ValueKind.SCALAR | ValueKind.SEQUENCE | ValueKind.OPAQUE:
            raise UnsupportedArgumentError(
                f'{which} binds must be a mapping, got {type(binds).__name__}')


class BindSlots:
    """Placeholders of a statement and the bind values assigned to them.
    """

    def __init__(self, sql: str) -> None:
        self.names = placeholder_names(sql)
        self.count = count_positional(sql)
        if self.names and self.count:
            raise CallError('Statement mixes named and positional placeholders')
        if self.names:
            self.params: dict[str, Any] | list[Any] = dict.fromkeys(self.names, _UNSET)
        else:
            self.params = [_UNSET] * self.count

    def key(self, ident: Any) -> str | int | None:
        """Statement key for an identifier, None if the statement has no such placeholder."""
        if isinstance(ident, bool):
            return None
        if isinstance(ident, int):
            return ident - 1 if 1 <= ident <= self.count else None
        if isinstance(ident, str):
            name = ident[1:] if ident.startswith(':') else ident
            if name in self.names:
                return name
            for candidate in self.names:
                if candidate.lower() == name.lower():
                    return candidate
        return None

    def is_set(self, key: str | int) -> bool:
        return self.params[key] is not _UNSET

    def get(self, key: str | int) -> Any:
        value = self.params[key]
        return None if value is _UNSET else value

    def set(self, key: str | int, value: Any) -> None:
        self.params[key] = value

    def missing(self) -> list[str]:
        if isinstance(self.params, dict):
            return [f':{k}' for k, v in self.params.items() if v is _UNSET]
        return [f'#{i + 1}' for i, v in enumerate(self.params) if v is _UNSET]


class CallExecutor:
    """Runs callable statements with declared in and out binds on one connection.
    """

    def __init__(self, cn: 'ConnectionAdapter') -> None:
        self.cn = cn

    @dumpsql
    def execute_call(self, statement: str, in_binds: Mapping[Any, Any] | None = None,
                     out_binds: Mapping[Any, Any] | None = None) -> dict[Any, Any]:
        """Execute `statement` and return the out values keyed like `out_binds`.

        Raises
            UnsupportedArgumentError: empty statement, or binds that are not mappings
            CallError: unknown identifiers, unconvertible values or types,
                native execution failure
        """
        if not isinstance(statement, str) or not statement.strip():
            raise UnsupportedArgumentError('Statement text must be a non-empty string')
        in_values = _as_bind_map(in_binds, 'In')
        out_declared = _as_bind_map(out_binds, 'Out')

        strategy = self.cn.strategy
        marshaller = self.cn.marshaller
        sql = strategy.standardize_sql(statement)
        slots = BindSlots(sql)

        out_types: dict[Any, SqlType] = {}
        for ident, declared in out_declared.items():
            try:
                out_types[ident] = resolve_sql_type(declared)
            except TypeMismatchError as e:
                raise CallError(f'Invalid declared type for out bind {ident!r}', e) from e

        for ident, value in in_values.items():
            key = slots.key(ident)
            if key is None:
                raise CallError(f'Unknown in bind identifier {ident!r}')
            try:
                slots.set(key, marshaller.to_native(value))
            except TypeMismatchError as e:
                raise CallError(f'Cannot convert in bind {ident!r}', e) from e

        cursor = self.cn.cursor()
        try:
            if strategy.supports_out_binds:
                out_vars = self._bind_out_vars(cursor, slots, out_types)
            else:
                self._bind_out_nulls(slots, out_types)

            missing = slots.missing()
            if missing:
                raise CallError(f'No bind value for placeholder(s) {", ".join(missing)}')

            try:
                if slots.params:
                    cursor.execute(sql, slots.params)
                else:
                    cursor.execute(sql)
            except NativeError as e:
                raise CallError('Call failed', e) from e

            if strategy.supports_out_binds:
                result = self._read_out_vars(out_vars, out_types)
            else:
                result = self._read_out_row(cursor, out_types)
        finally:
            close_cursor(cursor)

        logger.debug(f'Call returned {len(result)} out value(s)')
        return result

    def _bind_out_vars(self, cursor: Any, slots: BindSlots,
                       out_types: dict[Any, SqlType]) -> dict[Any, Any]:
        out_vars = {}
        for ident, sql_type in out_types.items():
            key = slots.key(ident)
            if key is None:
                raise CallError(f'Unknown out bind identifier {ident!r}')
            try:
                var = self.cn.strategy.create_out_var(cursor, sql_type, slots.get(key))
            except TypeMismatchError as e:
                raise CallError(f'Cannot register out bind {ident!r}', e) from e
            except NativeError as e:
                raise CallError(f'Cannot register out bind {ident!r}', e) from e
            slots.set(key, var)
            out_vars[ident] = var
        return out_vars

    def _read_out_vars(self, out_vars: dict[Any, Any],
                       out_types: dict[Any, SqlType]) -> dict[Any, Any]:
        result = {}
        for ident, var in out_vars.items():
            try:
                value = self.cn.strategy.read_out_var(var)
                result[ident] = self.cn.marshaller.to_dynamic(value, out_types[ident])
            except TypeMismatchError as e:
                raise CallError(f'Cannot convert out bind {ident!r}', e) from e
            except NativeError as e:
                raise CallError(f'Cannot read out bind {ident!r}', e) from e
        return result

    def _bind_out_nulls(self, slots: BindSlots, out_types: dict[Any, SqlType]) -> None:
        """Out-only placeholders still need a value for drivers without out binds."""
        for ident in out_types:
            key = slots.key(ident)
            if key is not None and not slots.is_set(key):
                slots.set(key, None)

    def _read_out_row(self, cursor: Any, out_types: dict[Any, SqlType]) -> dict[Any, Any]:
        if not out_types:
            return {}
        if cursor.description is None:
            raise CallError('Statement returned no result row to read out binds from')

        index = ColumnIndex(columns_from_cursor_description(cursor, self.cn.strategy))
        try:
            row = cursor.fetchone()
        except NativeError as e:
            raise CallError('Failed to fetch out values', e) from e
        if row is None:
            raise CallError('Statement returned no result row to read out binds from')

        result = {}
        for ident, sql_type in out_types.items():
            position = self._column_position(index, ident)
            try:
                result[ident] = self.cn.marshaller.to_dynamic(row[position], sql_type)
            except TypeMismatchError as e:
                raise CallError(f'Cannot convert out bind {ident!r}', e) from e
        return result

    @staticmethod
    def _column_position(index: ColumnIndex, ident: Any) -> int:
        if isinstance(ident, int) and not isinstance(ident, bool):
            if 1 <= ident <= len(index):
                return ident - 1
        elif isinstance(ident, str):
            position = index.find(ident[1:] if ident.startswith(':') else ident)
            if position is not None:
                return position
        raise CallError(f'Unknown out bind identifier {ident!r}: not a column of the statement result')
