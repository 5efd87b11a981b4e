"""
Query execution with lazy, single-pass results.

`QueryExecutor.execute_query` binds positional values, executes and hands
back a `QueryResult` that owns the open cursor. Rows are pulled from the
cursor one at a time; once the cursor is exhausted (or the result is closed)
the cursor is released and the result stays empty. A result is never
restarted.

Each `Row` maps column names to values and also supports ordinal and
attribute access. Values are converted on first access to a column and then
kept on the row.
"""
import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Self

from templatedb.exceptions import BindArityError, NativeError, QueryError
from templatedb.exceptions import UnsupportedArgumentError
from templatedb.sql import count_positional
from templatedb.types import Column, TypeMarshaller, columns_from_cursor_description
from templatedb.types import ValueKind, kind_of
from templatedb.utils import close_cursor, dumpsql

if TYPE_CHECKING:
    from templatedb.connection import ConnectionAdapter

__all__ = ['QueryExecutor', 'QueryResult', 'Row', 'ColumnIndex']

logger = logging.getLogger(__name__)


class ColumnIndex:
    """Column name to position map, built once per result.

    Lookup is exact first, then case-insensitive (drivers disagree on the
    case of unquoted identifiers). With duplicate names the first column wins.
    """

    def __init__(self, columns: list[Column]) -> None:
        self.columns = columns
        self.positions: dict[str, int] = {}
        self.folded: dict[str, int] = {}
        for i, col in enumerate(columns):
            self.positions.setdefault(col.name, i)
            self.folded.setdefault(col.name.lower(), i)

    @property
    def names(self) -> list[str]:
        return list(self.positions)

    def find(self, name: str) -> int | None:
        if name in self.positions:
            return self.positions[name]
        return self.folded.get(name.lower())

    def position(self, name: str) -> int:
        position = self.find(name)
        if position is None:
            raise KeyError(name)
        return position

    def __len__(self) -> int:
        return len(self.columns)


class Row(Mapping):
    """Read-only row: ``row['name']``, ``row[0]`` or ``row.name``.
    """

    __slots__ = ('_values', '_index', '_marshaller', '_converted')

    def __init__(self, values: Sequence[Any], index: ColumnIndex,
                 marshaller: TypeMarshaller) -> None:
        self._values = values
        self._index = index
        self._marshaller = marshaller
        self._converted: dict[int, Any] = {}

    def _value(self, position: int) -> Any:
        if position not in self._converted:
            self._converted[position] = self._marshaller.to_dynamic(self._values[position])
        return self._converted[position]

    def __getitem__(self, key: str | int) -> Any:
        if isinstance(key, bool):
            raise UnsupportedArgumentError(f'Row key must be a column name or position, got {key!r}')
        if isinstance(key, int):
            if not 0 <= key < len(self._index):
                raise IndexError(f'Column position {key} out of range')
            return self._value(key)
        if isinstance(key, str):
            return self._value(self._index.position(key))
        raise UnsupportedArgumentError(f'Row key must be a column name or position, got {type(key).__name__}')

    def __getattr__(self, name: str) -> Any:
        if name.startswith('_'):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._index.find(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._index.names)

    def __len__(self) -> int:
        return len(self._index.positions)

    def to_dict(self) -> dict[str, Any]:
        """Convert every column (first column wins for duplicate names)."""
        return {name: self[name] for name in self}

    def __repr__(self) -> str:
        return f'Row({self._index.names!r})'


class QueryResult:
    """Forward-only, single-pass iterator of rows over an open cursor.
    """

    def __init__(self, cursor: Any, marshaller: TypeMarshaller) -> None:
        self._cursor = cursor
        self._marshaller = marshaller
        self.columns = columns_from_cursor_description(cursor, marshaller.strategy)
        self._index = ColumnIndex(self.columns)
        self.rowcount = 0
        if cursor.description is None:
            self.close()

    @property
    def column_names(self) -> list[str]:
        return Column.get_names(self.columns)

    @property
    def closed(self) -> bool:
        return self._cursor is None

    def __iter__(self) -> Iterator[Row]:
        return self

    def __next__(self) -> Row:
        row = self.fetchone()
        if row is None:
            raise StopIteration
        return row

    def fetchone(self) -> Row | None:
        """Next row, or None once the result is exhausted."""
        if self._cursor is None:
            return None
        try:
            values = self._cursor.fetchone()
        except NativeError as e:
            self.close()
            raise QueryError('Failed to fetch row', e) from e
        if values is None:
            logger.debug(f'Query result exhausted after {self.rowcount} row(s)')
            self.close()
            return None
        self.rowcount += 1
        return Row(values, self._index, self._marshaller)

    def fetchall(self) -> list[Row]:
        """Remaining rows; consumes the result."""
        return list(self)

    def close(self) -> None:
        """Release the cursor. Safe to call more than once."""
        cursor, self._cursor = self._cursor, None
        if cursor is not None:
            try:
                cursor.close()
            except NativeError as e:
                raise QueryError('Failed to close cursor', e) from e

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __repr__(self) -> str:
        state = 'closed' if self.closed else 'open'
        return f'QueryResult({self.column_names!r}, {state})'


def _as_bind_list(binds: Any) -> list[Any]:
    """Accept only ordered sequences as positional binds."""
    match kind_of(binds):
        case ValueKind.NULL:
            return []
        case ValueKind.SEQUENCE:
            return list(binds)
        case ValueKind.SCALAR | ValueKind.MAPPING | ValueKind.OPAQUE:
            raise UnsupportedArgumentError(
                f'Query binds must be a sequence, got {type(binds).__name__}')


class QueryExecutor:
    """Runs parameterized queries on one connection.
    """

    def __init__(self, cn: 'ConnectionAdapter') -> None:
        self.cn = cn

    @dumpsql
    def execute_query(self, sql: str, binds: Sequence[Any] | None = None) -> QueryResult:
        """Execute `sql` with positional `binds` and return a lazy result.

        Raises
            UnsupportedArgumentError: empty SQL or binds that are not a sequence
            BindArityError: bind count differs from the placeholder count
            TypeMismatchError: a bind value cannot be converted
            QueryError: the driver failed executing the statement
        """
        if not isinstance(sql, str) or not sql.strip():
            raise UnsupportedArgumentError('Query text must be a non-empty string')
        values = _as_bind_list(binds)

        strategy = self.cn.strategy
        sql = strategy.standardize_sql(sql)
        expected = count_positional(sql)
        if len(values) != expected:
            raise BindArityError(expected, len(values))

        marshaller = self.cn.marshaller
        params = [marshaller.to_native(v) for v in values]

        cursor = self.cn.cursor()
        try:
            if params:
                cursor.execute(sql, params)
            else:
                cursor.execute(sql)
        except NativeError as e:
            close_cursor(cursor)
            raise QueryError('Query failed', e) from e

        return QueryResult(cursor, marshaller)
