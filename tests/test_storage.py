"""
Tests for storage backends and atomic scopes
"""

import os
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from bank_demo.exceptions import StorageError
from bank_demo.storage import (
    DatabaseInterface, PostgreSQLDatabase, SQLiteDatabase, create_database
)


SCHEMA = """
CREATE TABLE items (
    item_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    price NUMERIC
);
"""


class TestSQLiteDatabase:
    """Test basic operations on the SQLite backend"""

    def setup_method(self):
        """Set up test fixtures"""
        self.db = SQLiteDatabase()
        self.db.execute_script(SCHEMA)

    def teardown_method(self):
        self.db.close()

    def test_insert_returns_generated_id(self):
        """Test that insert hands back the store-assigned identifier"""
        first = self.db.insert("INSERT INTO items (name) VALUES (?)", ("a",), "item_id")
        second = self.db.insert("INSERT INTO items (name) VALUES (?)", ("b",), "item_id")

        assert first == 1
        assert second == 2

    def test_query_returns_column_keyed_dicts(self):
        """Test rows come back as plain dicts"""
        self.db.insert("INSERT INTO items (name, price) VALUES (?, ?)", ("widget", Decimal("9.99")), "item_id")

        rows = self.db.query("SELECT item_id, name, price FROM items")

        assert rows == [{"item_id": 1, "name": "widget", "price": 9.99}]

    def test_execute_returns_rowcount(self):
        """Test execute reports affected rows"""
        self.db.insert("INSERT INTO items (name) VALUES (?)", ("a",), "item_id")
        self.db.insert("INSERT INTO items (name) VALUES (?)", ("b",), "item_id")

        assert self.db.execute("UPDATE items SET name = ?", ("c",)) == 2
        assert self.db.execute("DELETE FROM items WHERE item_id = ?", (99,)) == 0

    def test_query_one_and_scalar(self):
        """Test single-row helpers"""
        assert self.db.query_one("SELECT * FROM items") is None
        assert self.db.scalar("SELECT COUNT(*) FROM items") == 0

        self.db.insert("INSERT INTO items (name) VALUES (?)", ("a",), "item_id")

        assert self.db.query_one("SELECT name FROM items")["name"] == "a"
        assert self.db.scalar("SELECT COUNT(*) FROM items") == 1

    def test_driver_errors_become_storage_errors(self):
        """Test sqlite3 errors are wrapped with the cause chained"""
        with pytest.raises(StorageError) as exc_info:
            self.db.query("SELECT * FROM missing_table")

        assert "missing_table" in str(exc_info.value)
        assert exc_info.value.__cause__ is not None

    def test_foreign_keys_enforced(self):
        """Test that foreign key constraints are switched on"""
        self.db.execute_script("""
            CREATE TABLE parents (parent_id INTEGER PRIMARY KEY);
            CREATE TABLE children (
                child_id INTEGER PRIMARY KEY,
                parent_id INTEGER NOT NULL REFERENCES parents(parent_id)
            );
        """)

        with pytest.raises(StorageError):
            self.db.execute("INSERT INTO children (child_id, parent_id) VALUES (1, 42)")

    def test_id_list_aggregate(self):
        """Test the dialect aggregate collapses ids into one value"""
        for name in ("a", "b", "c"):
            self.db.insert("INSERT INTO items (name) VALUES (?)", (name,), "item_id")

        aggregate = self.db.id_list_aggregate("item_id")
        value = self.db.scalar(f"SELECT {aggregate} FROM items")

        assert sorted(int(part) for part in value.split(",")) == [1, 2, 3]


class TestAtomicScopes:
    """Test commit and rollback of atomic scopes"""

    def setup_method(self):
        """Set up test fixtures"""
        self.db = SQLiteDatabase()
        self.db.execute_script(SCHEMA)

    def teardown_method(self):
        self.db.close()

    def test_atomic_commits_on_success(self):
        """Test every statement in a successful scope is kept"""
        with self.db.atomic():
            self.db.insert("INSERT INTO items (name) VALUES (?)", ("a",), "item_id")
            self.db.insert("INSERT INTO items (name) VALUES (?)", ("b",), "item_id")

        assert self.db.scalar("SELECT COUNT(*) FROM items") == 2

    def test_atomic_rolls_back_on_failure(self):
        """Test a failure discards every statement of the scope"""
        with pytest.raises(RuntimeError):
            with self.db.atomic():
                self.db.insert("INSERT INTO items (name) VALUES (?)", ("a",), "item_id")
                raise RuntimeError("boom")

        assert self.db.scalar("SELECT COUNT(*) FROM items") == 0

    def test_atomic_rolls_back_on_storage_error(self):
        """Test a failing statement rolls back earlier statements"""
        with pytest.raises(StorageError):
            with self.db.atomic():
                self.db.insert("INSERT INTO items (name) VALUES (?)", ("a",), "item_id")
                self.db.execute("INSERT INTO items (name) VALUES (NULL)")

        assert self.db.scalar("SELECT COUNT(*) FROM items") == 0

    def test_nested_scopes_join_outer(self):
        """Test an inner scope does not commit on its own"""
        with pytest.raises(RuntimeError):
            with self.db.atomic():
                with self.db.atomic():
                    self.db.insert("INSERT INTO items (name) VALUES (?)", ("inner",), "item_id")
                raise RuntimeError("outer failure")

        assert self.db.scalar("SELECT COUNT(*) FROM items") == 0

    def test_script_joins_atomic_scope(self):
        """Test DDL run inside a scope is undone with it"""
        with pytest.raises(RuntimeError):
            with self.db.atomic():
                self.db.execute_script("CREATE TABLE extras (extra_id INTEGER PRIMARY KEY);")
                self.db.insert("INSERT INTO items (name) VALUES (?)", ("a",), "item_id")
                raise RuntimeError("boom")

        assert self.db.query("SELECT name FROM sqlite_master WHERE name = 'extras'") == []
        assert self.db.scalar("SELECT COUNT(*) FROM items") == 0

    def test_failing_script_leaves_no_partial_schema(self):
        with pytest.raises(StorageError):
            self.db.execute_script("""
                CREATE TABLE extras (extra_id INTEGER PRIMARY KEY);
                INSERT INTO missing_table VALUES (1);
            """)

        assert self.db.query("SELECT name FROM sqlite_master WHERE name = 'extras'") == []

    def test_statements_outside_scope_autocommit(self):
        """Test autonomous writes survive a later rollback"""
        self.db.insert("INSERT INTO items (name) VALUES (?)", ("kept",), "item_id")

        with pytest.raises(RuntimeError):
            with self.db.atomic():
                self.db.execute("DELETE FROM items")
                raise RuntimeError("boom")

        assert self.db.query("SELECT name FROM items") == [{"name": "kept"}]


class TestCreateDatabase:
    """Test backend selection from URLs"""

    def test_sqlite_memory_url(self):
        db = create_database("sqlite:///:memory:")
        assert isinstance(db, SQLiteDatabase)
        assert isinstance(db, DatabaseInterface)
        assert db.dialect == "sqlite"
        db.close()

    def test_sqlite_file_url(self):
        """Test a file-backed SQLite target persists across handles"""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = Path(temp_dir) / "bank.db"

            db = create_database(f"sqlite:///{db_path}")
            db.execute_script(SCHEMA)
            db.insert("INSERT INTO items (name) VALUES (?)", ("persisted",), "item_id")
            db.close()

            reopened = create_database(f"sqlite:///{db_path}")
            assert reopened.scalar("SELECT name FROM items") == "persisted"
            reopened.close()

    def test_unsupported_url(self):
        with pytest.raises(ValueError, match="Unsupported database URL"):
            create_database("mysql://localhost/bank")


class TestPostgreSQLDatabase:
    """PostgreSQL backend checks that need no server"""

    def test_placeholder_conversion(self):
        assert PostgreSQLDatabase._convert(
            "SELECT * FROM accounts WHERE account_id = ? AND status = ?"
        ) == "SELECT * FROM accounts WHERE account_id = %s AND status = %s"

    @pytest.mark.skipif(
        os.environ.get("SKIP_POSTGRESQL_TESTS", "true") == "true",
        reason="PostgreSQL tests skipped - set SKIP_POSTGRESQL_TESTS=false to enable"
    )
    def test_postgresql_round_trip(self):
        """Test insert, RETURNING ids and rollback against a live server"""
        url = os.environ.get("TEST_DATABASE_URL", "postgresql://localhost/bank_demo_test")
        db = create_database(url, schema="bank_demo_test")
        try:
            db.execute_script("""
                DROP TABLE IF EXISTS items;
                CREATE TABLE items (
                    item_id INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
                    name TEXT NOT NULL
                );
            """)
            item_id = db.insert("INSERT INTO items (name) VALUES (?)", ("a",), "item_id")
            assert item_id == 1

            with pytest.raises(RuntimeError):
                with db.atomic():
                    db.insert("INSERT INTO items (name) VALUES (?)", ("b",), "item_id")
                    raise RuntimeError("boom")

            assert db.scalar("SELECT COUNT(*) FROM items") == 1
        finally:
            db.close()
