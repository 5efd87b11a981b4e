"""
Lazy sequence access to native SQL arrays.

Native array resources follow the JDBC-like contract of `NativeArray`:
``get_array(index, count)`` fetches ``count`` elements starting at the 1-based
``index``, and ``get_array()`` fetches the whole array. `ArrayAdapter`
translates 0-based template indexing onto that contract and converts every
element through the marshaller on access.
"""
import logging
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any, Protocol

from templatedb.exceptions import ArrayIndexError, NativeError, QueryError

if TYPE_CHECKING:
    from templatedb.types import TypeMarshaller

__all__ = ['NativeArray', 'SequenceArray', 'ArrayAdapter']

logger = logging.getLogger(__name__)


class NativeArray(Protocol):
    """Native array resource with 1-based element fetches."""

    def get_array(self, index: int | None = None, count: int | None = None) -> list[Any]:
        ...


class SequenceArray:
    """Native array already materialized by the driver (e.g. psycopg lists).
    """

    def __init__(self, values: Sequence[Any]) -> None:
        self.values = values

    @property
    def native(self) -> Sequence[Any]:
        return self.values

    def get_array(self, index: int | None = None, count: int | None = None) -> list[Any]:
        if index is None:
            return list(self.values)
        start = index - 1
        stop = len(self.values) if count is None else start + count
        return list(self.values[start:stop])


class ArrayAdapter(Sequence):
    """Indexable, fixed-length sequence over one native array.

    Element access is not cached: every `get` fetches from the native
    resource. The length is fetched once.
    """

    def __init__(self, array: NativeArray, marshaller: 'TypeMarshaller') -> None:
        self._array = array
        self._marshaller = marshaller
        self._size: int | None = None

    @property
    def adapted(self) -> Any:
        """The driver object behind the wrapped native array."""
        return getattr(self._array, 'native', self._array)

    def get(self, index: int) -> Any:
        """Return the element at 0-based `index`.
        """
        if not isinstance(index, int) or isinstance(index, bool):
            raise ArrayIndexError(f'Array index must be an integer, got {type(index).__name__}')
        if index < 0:
            raise ArrayIndexError(f'Array index {index} out of range')
        try:
            fetched = self._array.get_array(index + 1, 1)
        except NativeError as e:
            raise QueryError(f'Failed to fetch array element {index}', e) from e
        except IndexError as e:
            raise ArrayIndexError(f'Array index {index} out of range') from e
        if not fetched:
            raise ArrayIndexError(f'Array index {index} out of range')
        return self._marshaller.to_dynamic(fetched[0])

    def size(self) -> int:
        """Number of elements; fetches the full native array on first call."""
        if self._size is None:
            try:
                self._size = len(self._array.get_array())
            except NativeError as e:
                raise QueryError('Failed to fetch array', e) from e
            logger.debug(f'Fetched array of {self._size} element(s)')
        return self._size

    def __len__(self) -> int:
        return self.size()

    def __getitem__(self, index: int | slice) -> Any:
        if isinstance(index, slice):
            return [self.get(i) for i in range(*index.indices(self.size()))]
        if isinstance(index, int) and index < 0:
            index += self.size()
        return self.get(index)

    def __iter__(self) -> Iterator[Any]:
        for i in range(self.size()):
            yield self.get(i)

    def __repr__(self) -> str:
        return f'ArrayAdapter({self._array!r})'
