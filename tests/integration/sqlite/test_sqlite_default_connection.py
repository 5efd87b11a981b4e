"""
The default connection slot backed by a file-based SQLite database.
"""
import templatedb as db


def test_default_connection_reused(sqlite_manager):
    first = db.default_connection()
    second = db.default_connection()
    assert first is second
    assert first.connection is second.connection


def test_module_query_and_exec(sqlite_manager):
    names = [row['name'] for row in db.query('select name from test_table order by id')]
    assert names == ['Alice', 'Bob']
    assert db.exec('select value * :k as total from test_table where name = :name',
                   {'k': 2, 'name': 'Bob'}, {'total': 'integer'}) == {'total': 40}


def test_replaced_default_stays_usable(sqlite_manager):
    original = db.default_connection()
    replacement = db.new_connection()
    db.set_default_connection(replacement)
    assert db.default_connection() is replacement
    assert original.query('select count(*) as n from test_table').fetchone()['n'] == 2
    original.close()


def test_cleared_default_reopened(sqlite_manager):
    original = db.default_connection()
    db.set_default_connection()
    reopened = db.default_connection()
    assert reopened is not original
    assert reopened.connection is not original.connection
    original.close()


def test_connections_share_committed_data(sqlite_manager, sqlite_file):
    writer = db.new_connection(f'sqlite:///{sqlite_file}')
    writer.query("insert into test_table (name, value) values ('Eve', 50)").close()
    writer.commit()
    writer.close()
    row = db.query('select value from test_table where name = ?', ['Eve']).fetchone()
    assert row['value'] == 50


def test_explicit_connection_is_independent(sqlite_manager, sqlite_file):
    default = db.default_connection()
    other = db.new_connection(f'sqlite:///{sqlite_file}')
    assert other is not default
    assert other.connection is not default.connection
    other.close()
    assert not default.closed


if __name__ == '__main__':
    __import__('pytest').main([__file__])
