"""
Fixtures for SQLite-specific integration tests.
"""
import pathlib
import time

import pytest
import templatedb as db
from templatedb.manager import ConnectionManager, set_manager
from templatedb.options import DatabaseOptions


@pytest.fixture
def sqlite_file(tmp_path):
    """Path of a file-based SQLite database with the test table, for tests spanning connections."""
    db_file = tmp_path / f'test_sqlite_{int(time.time())}.db'

    conn = db.connect(DatabaseOptions(drivername='sqlite', database=str(db_file)))
    conn.query("""
    CREATE TABLE test_table (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        value INTEGER NOT NULL
    )
    """).close()
    conn.query("INSERT INTO test_table (name, value) VALUES ('Alice', 10), ('Bob', 20)").close()
    conn.commit()
    conn.close()

    yield db_file

    if pathlib.Path(db_file).exists():
        pathlib.Path(db_file).unlink()


@pytest.fixture
def sqlite_manager(sqlite_file):
    """Process-wide manager whose implicit connection is the SQLite file database."""
    manager = ConnectionManager(DatabaseOptions(drivername='sqlite', database=str(sqlite_file)))
    set_manager(manager)
    yield manager
    cn = manager._default
    if cn is not None:
        cn.close()
