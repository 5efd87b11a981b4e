import pathlib
import site

import pytest
from templatedb.manager import ConnectionManager, set_manager

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def isolated_manager():
    """Give every test its own process-wide manager so default slots never leak."""
    previous = set_manager(ConnectionManager())
    yield
    set_manager(previous)


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.values',
    'tests.fixtures.sqlite',
]
