import pytest
import templatedb as db
from templatedb.options import DatabaseOptions


@pytest.fixture
def sqlite_conn():
    """Create an in-memory SQLite database for testing"""
    conn = db.connect(DatabaseOptions(drivername='sqlite', database=':memory:'))

    # Create test schema
    create_table = """
    CREATE TABLE test_table (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        value INTEGER NOT NULL,
        created DATE
    )
    """
    conn.query(create_table).close()

    # Insert test data
    insert_data = """
    INSERT INTO test_table (name, value, created) VALUES
    ('Alice', 10, '2025-01-01'),
    ('Bob', 20, '2025-02-01'),
    ('Charlie', 30, NULL)
    """
    conn.query(insert_data).close()

    yield conn
    conn.close()
