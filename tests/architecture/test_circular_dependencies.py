import importlib

import pytest

# All modules in dependency order
MODULES = [
    # Independent modules (no internal deps)
    'templatedb.exceptions',
    'templatedb.sql',
    'templatedb.utils',

    # Arrays and the type system
    'templatedb.array',
    'templatedb.types',

    # Strategy
    'templatedb.strategy.base',
    'templatedb.strategy.sqlite',
    'templatedb.strategy.postgres',
    'templatedb.strategy.oracle',
    'templatedb.strategy',

    # Options and execution
    'templatedb.options',
    'templatedb.query',
    'templatedb.call',

    # Connections
    'templatedb.connection',
    'templatedb.manager',

    # Main package
    'templatedb',
]


@pytest.mark.parametrize('module', MODULES)
def test_module_imports(module):
    """Each module imports cleanly on its own."""
    assert importlib.import_module(module) is not None


def test_package_exports():
    package = importlib.import_module('templatedb')
    missing = [name for name in package.__all__ if not hasattr(package, name)]
    assert not missing, f'Missing exports: {missing}'


if __name__ == '__main__':
    __import__('pytest').main([__file__])
