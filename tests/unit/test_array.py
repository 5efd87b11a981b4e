"""
Unit tests for lazy array access.
"""
import sqlite3

import pytest
from templatedb.array import ArrayAdapter, SequenceArray
from templatedb.exceptions import ArrayIndexError, QueryError
from templatedb.strategy import get_strategy
from templatedb.strategy.oracle import OracleCollection
from templatedb.types import TypeMarshaller


class CountingArray:
    """Native array recording every fetch it serves."""

    def __init__(self, values):
        self.values = values
        self.fetches = []

    def get_array(self, index=None, count=None):
        self.fetches.append((index, count))
        if index is None:
            return list(self.values)
        return list(self.values[index - 1:index - 1 + count])


class FakeCollection:
    """Sparse oracledb-style collection (indexes 1, 2, 5)."""

    def __init__(self, elements):
        self.elements = elements

    def first(self):
        return min(self.elements) if self.elements else None

    def next(self, idx):
        later = [i for i in self.elements if i > idx]
        return min(later) if later else None

    def getelement(self, idx):
        return self.elements[idx]

    def aslist(self):
        return [self.elements[i] for i in sorted(self.elements)]


@pytest.fixture
def marshaller():
    return TypeMarshaller(get_strategy('postgresql'))


def test_get_maps_to_one_based_fetch(marshaller):
    native = CountingArray(['a', 'b', 'c'])
    array = ArrayAdapter(native, marshaller)
    assert array.get(0) == 'a'
    assert array.get(2) == 'c'
    assert native.fetches == [(1, 1), (3, 1)]


def test_get_is_not_cached(marshaller):
    native = CountingArray([1, 2])
    array = ArrayAdapter(native, marshaller)
    array.get(1)
    array.get(1)
    assert native.fetches == [(2, 1), (2, 1)]


def test_size_fetched_once(marshaller):
    native = CountingArray([1, 2, 3])
    array = ArrayAdapter(native, marshaller)
    assert array.size() == 3
    assert len(array) == 3
    assert native.fetches == [(None, None)]


@pytest.mark.parametrize('index', [-1, 3, 100])
def test_get_out_of_range(marshaller, index):
    array = ArrayAdapter(CountingArray([1, 2, 3]), marshaller)
    with pytest.raises(ArrayIndexError):
        array.get(index)


def test_index_error_is_builtin_index_error(marshaller):
    array = ArrayAdapter(CountingArray([]), marshaller)
    with pytest.raises(IndexError):
        array.get(0)


def test_non_integer_index(marshaller):
    array = ArrayAdapter(CountingArray([1]), marshaller)
    with pytest.raises(ArrayIndexError):
        array.get('0')


def test_sequence_protocol(marshaller):
    array = ArrayAdapter(SequenceArray([1, 2, 3, 4]), marshaller)
    assert list(array) == [1, 2, 3, 4]
    assert array[-1] == 4
    assert array[1:3] == [2, 3]
    assert 3 in array
    assert array.index(2) == 1


def test_adapted_returns_native_array(marshaller):
    values = [1, 2]
    assert ArrayAdapter(SequenceArray(values), marshaller).adapted is values
    native = CountingArray(values)
    assert ArrayAdapter(native, marshaller).adapted is native


def test_oracle_collection_rebinds_as_driver_object(mocker):
    oracle_marshaller = TypeMarshaller(get_strategy('oracle'))
    obj = mocker.Mock()
    array = ArrayAdapter(OracleCollection(obj), oracle_marshaller)
    assert array.adapted is obj
    assert oracle_marshaller.to_native(array) is obj


def test_native_failure_wrapped(marshaller, mocker):
    native = mocker.Mock()
    native.get_array.side_effect = sqlite3.OperationalError('gone')
    array = ArrayAdapter(native, marshaller)
    with pytest.raises(QueryError, match='gone'):
        array.get(0)


def test_elements_converted(marshaller):
    array = ArrayAdapter(SequenceArray([[1, 2], memoryview(b'x')]), marshaller)
    nested = array[0]
    assert isinstance(nested, ArrayAdapter)
    assert list(nested) == [1, 2]
    assert array[1] == b'x'


class TestOracleCollection:

    def test_walks_sparse_indexes(self):
        collection = OracleCollection(FakeCollection({1: 'a', 2: 'b', 5: 'c'}))
        assert collection.get_array(3, 1) == ['c']
        assert collection.get_array(2, 5) == ['b', 'c']
        assert collection.get_array(4, 1) == []
        assert collection.get_array() == ['a', 'b', 'c']

    def test_empty_collection(self):
        assert OracleCollection(FakeCollection({})).get_array(1, 1) == []


if __name__ == '__main__':
    __import__('pytest').main([__file__])
