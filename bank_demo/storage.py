"""
Storage Backend Module

Provides the relational database interface used by every repository query and
its implementations for SQLite (local and test targets) and PostgreSQL
(pooled, production targets). Monetary values are bound as fixed-point
Decimal strings; SQLite keeps them in TEXT columns so they are stored exactly
as bound.

Queries are written with ``?`` placeholders; the PostgreSQL backend rewrites
them to the driver's ``%s`` style. Values are always bound, never interpolated.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Sequence, Union
from decimal import Decimal
from datetime import datetime
from pathlib import Path
from contextlib import contextmanager
import logging
import sqlite3
import threading

from .exceptions import StorageError


logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Params = Sequence[Any]


# SQLite has no native Decimal or timestamp type
sqlite3.register_adapter(Decimal, lambda value: format(value, "f"))
sqlite3.register_adapter(datetime, lambda value: value.isoformat())


class DatabaseInterface(ABC):
    """Abstract interface for relational storage backends"""

    dialect: str = ""

    @abstractmethod
    def query(self, sql: str, params: Params = ()) -> List[Row]:
        """Run a SELECT and return all rows as column-keyed dicts"""
        pass

    @abstractmethod
    def execute(self, sql: str, params: Params = ()) -> int:
        """Run an INSERT/UPDATE/DELETE and return the affected row count"""
        pass

    @abstractmethod
    def insert(self, sql: str, params: Params, id_column: str) -> int:
        """Run an INSERT and return the store-assigned identifier"""
        pass

    @abstractmethod
    def execute_script(self, script: str) -> None:
        """Run a multi-statement DDL script; inside atomic() it joins the scope"""
        pass

    @abstractmethod
    def id_list_aggregate(self, column: str) -> str:
        """SQL expression collapsing grouped ids into one comma-joined value"""
        pass

    @abstractmethod
    def atomic(self):
        """
        Context manager for atomic operations.

        Every statement issued inside the block commits together on success
        and rolls back together on any exception, which is then re-raised.
        Nested scopes join the outermost one.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connections"""
        pass

    def query_one(self, sql: str, params: Params = ()) -> Optional[Row]:
        """Run a SELECT and return the first row, or None"""
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def scalar(self, sql: str, params: Params = ()) -> Any:
        """Run a SELECT and return the first column of the first row"""
        row = self.query_one(sql, params)
        if row is None:
            return None
        return next(iter(row.values()))


class SQLiteDatabase(DatabaseInterface):
    """SQLite implementation; one shared connection guarded by a lock"""

    dialect = "sqlite"

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(
            self.db_path, check_same_thread=False, isolation_level='DEFERRED'
        )
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._in_transaction = False

        with self._lock:
            self._connection.execute("PRAGMA foreign_keys = ON")
            # Enable WAL mode for better concurrent access
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
            self._connection.commit()

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except sqlite3.Error as e:
            logger.error(f"SQLite error on {self.db_path}: {e}")
            if not self._in_transaction:
                self._connection.rollback()
            raise StorageError(str(e)) from e

    def _commit_if_autonomous(self) -> None:
        # Only commit if not in transaction
        if not self._in_transaction:
            self._connection.commit()

    def query(self, sql: str, params: Params = ()) -> List[Row]:
        with self._lock, self._translate_errors():
            cursor = self._connection.execute(sql, tuple(params))
            return [dict(row) for row in cursor.fetchall()]

    def execute(self, sql: str, params: Params = ()) -> int:
        with self._lock, self._translate_errors():
            cursor = self._connection.execute(sql, tuple(params))
            self._commit_if_autonomous()
            return cursor.rowcount

    def insert(self, sql: str, params: Params, id_column: str) -> int:
        with self._lock, self._translate_errors():
            cursor = self._connection.execute(sql, tuple(params))
            self._commit_if_autonomous()
            return cursor.lastrowid

    @staticmethod
    def _split_script(script: str) -> List[str]:
        """Split a script into complete statements"""
        statements = []
        buffer = ""
        for line in script.splitlines(keepends=True):
            buffer += line
            if sqlite3.complete_statement(buffer):
                statements.append(buffer.strip())
                buffer = ""
        if buffer.strip():
            statements.append(buffer.strip())
        return statements

    def execute_script(self, script: str) -> None:
        # executescript() commits any open transaction first, so statements
        # are issued one by one to stay inside the atomic scope
        with self._lock, self._translate_errors(), self.atomic():
            for statement in self._split_script(script):
                self._connection.execute(statement)

    def id_list_aggregate(self, column: str) -> str:
        return f"GROUP_CONCAT({column})"

    @contextmanager
    def atomic(self):
        # Holding the lock for the whole scope keeps other threads from
        # interleaving statements or observing a half-applied cascade.
        with self._lock:
            if self._in_transaction:
                yield
                return

            self._in_transaction = True
            try:
                # DDL does not open an implicit transaction, so begin explicitly
                if not self._connection.in_transaction:
                    self._connection.execute("BEGIN")
                yield
                self._connection.commit()
            except BaseException:
                self._connection.rollback()
                raise
            finally:
                self._in_transaction = False

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


class PostgreSQLDatabase(DatabaseInterface):
    """PostgreSQL backend with a threaded connection pool"""

    dialect = "postgresql"

    def __init__(self, connection_string: str, schema: str = "bank",
                 min_connections: int = 1, max_connections: int = 10):
        try:
            import psycopg2
            import psycopg2.extras
            import psycopg2.pool
            self.psycopg2 = psycopg2
        except ImportError:
            raise ImportError("psycopg2 is required for PostgreSQL storage. Install with: pip install psycopg2-binary")

        self.connection_string = connection_string
        self.schema = schema
        self._local = threading.local()
        self._pool = psycopg2.pool.ThreadedConnectionPool(
            min_connections,
            max_connections,
            dsn=connection_string,
            options=f"-c search_path={schema},public",
            cursor_factory=psycopg2.extras.RealDictCursor,
        )

    @staticmethod
    def _convert(sql: str) -> str:
        return sql.replace("?", "%s")

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except self.psycopg2.Error as e:
            logger.error(f"PostgreSQL error on schema {self.schema}: {e}")
            raise StorageError(str(e).strip()) from e

    @contextmanager
    def _connection(self):
        """Yield the connection pinned by atomic(), or borrow one from the pool"""
        pinned = getattr(self._local, "connection", None)
        if pinned is not None:
            yield pinned
            return

        conn = self._pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def query(self, sql: str, params: Params = ()) -> List[Row]:
        with self._translate_errors(), self._connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(self._convert(sql), tuple(params))
                return [dict(row) for row in cursor.fetchall()]

    def execute(self, sql: str, params: Params = ()) -> int:
        with self._translate_errors(), self._connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(self._convert(sql), tuple(params))
                return cursor.rowcount

    def insert(self, sql: str, params: Params, id_column: str) -> int:
        with self._translate_errors(), self._connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(f"{self._convert(sql)} RETURNING {id_column}", tuple(params))
                return cursor.fetchone()[id_column]

    def execute_script(self, script: str) -> None:
        with self._translate_errors(), self._connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(f"CREATE SCHEMA IF NOT EXISTS {self.schema}")
                cursor.execute(script)

    def id_list_aggregate(self, column: str) -> str:
        return f"STRING_AGG(CAST({column} AS TEXT), ',' ORDER BY {column})"

    @contextmanager
    def atomic(self):
        if getattr(self._local, "connection", None) is not None:
            yield
            return

        conn = self._pool.getconn()
        self._local.connection = conn
        try:
            yield
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            self._local.connection = None
            self._pool.putconn(conn)

    def close(self) -> None:
        """Close every pooled PostgreSQL connection"""
        if self._pool:
            self._pool.closeall()
            self._pool = None


def create_database(url: str, schema: str = "bank", min_connections: int = 1,
                    max_connections: int = 10) -> DatabaseInterface:
    """
    Build a backend from a database URL.

    ``sqlite:///relative.db``, ``sqlite:////abs/path.db`` and
    ``sqlite:///:memory:`` select SQLite; ``postgresql://`` or ``postgres://``
    select PostgreSQL.
    """
    if url.startswith("sqlite:///"):
        return SQLiteDatabase(url[len("sqlite:///"):] or ":memory:")
    if url.startswith(("postgresql://", "postgres://")):
        return PostgreSQLDatabase(url, schema, min_connections, max_connections)
    raise ValueError(f"Unsupported database URL: {url}")
