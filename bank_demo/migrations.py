"""
Database Migration System

Versioned schema for the customers, accounts, transactions,
transaction_metadata and branches tables. Each migration carries one script
per dialect: PostgreSQL uses native enum types and identity columns inside
the configured schema, SQLite uses CHECK constraints and AUTOINCREMENT keys.

SQLite has no exact decimal storage: NUMERIC affinity turns bound money text
into REAL or INTEGER. Money columns there are TEXT holding two-decimal
fixed-point strings, the same text PostgreSQL renders for NUMERIC(15, 2).
"""

from typing import Dict, List, Optional, Any, Type
from datetime import datetime, timezone
import hashlib
import logging

from .models import (
    LabelEnum, AccountType, AccountStatus, TransactionType, Currency, Channel,
    DeviceType, AuthMethod, CustomerType, Region
)
from .storage import DatabaseInterface


logger = logging.getLogger(__name__)


ENUM_TYPES: Dict[str, Type[LabelEnum]] = {
    "account_type_enum": AccountType,
    "account_status_enum": AccountStatus,
    "transaction_type_enum": TransactionType,
    "currency_enum": Currency,
    "channel_enum": Channel,
    "device_type_enum": DeviceType,
    "auth_method_enum": AuthMethod,
    "customer_type_enum": CustomerType,
    "region_enum": Region,
}


def _labels(enum_cls: Type[LabelEnum]) -> str:
    return ", ".join(f"'{label}'" for label in enum_cls.labels())


def _sqlite_column(column: str, enum_type: str, not_null: bool = False, default: str = "") -> str:
    """TEXT column restricted to an enum domain"""
    parts = [column, "TEXT"]
    if not_null:
        parts.append("NOT NULL")
    if default:
        parts.append(f"DEFAULT '{default}'")
    parts.append(f"CHECK ({column} IN ({_labels(ENUM_TYPES[enum_type])}))")
    return " ".join(parts)


SQLITE_CORE_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS customers (
    customer_id INTEGER PRIMARY KEY AUTOINCREMENT,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT,
    {_sqlite_column("customer_type", "customer_type_enum")},
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS accounts (
    account_id INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id INTEGER NOT NULL REFERENCES customers(customer_id),
    {_sqlite_column("account_type", "account_type_enum", not_null=True)},
    {_sqlite_column("status", "account_status_enum", not_null=True)},
    balance TEXT NOT NULL DEFAULT '0.00'
);

CREATE TABLE IF NOT EXISTS transactions (
    transaction_id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id INTEGER NOT NULL REFERENCES accounts(account_id),
    {_sqlite_column("transaction_type", "transaction_type_enum", not_null=True)},
    transaction_date TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    amount TEXT NOT NULL,
    {_sqlite_column("currency", "currency_enum", not_null=True, default="USD")},
    {_sqlite_column("channel", "channel_enum")}
);

CREATE TABLE IF NOT EXISTS transaction_metadata (
    transaction_id INTEGER PRIMARY KEY REFERENCES transactions(transaction_id),
    channel_details TEXT,
    location TEXT,
    {_sqlite_column("device_type", "device_type_enum")},
    {_sqlite_column("auth_method", "auth_method_enum")}
);

CREATE TABLE IF NOT EXISTS branches (
    branch_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    {_sqlite_column("region", "region_enum", not_null=True)},
    manager_name TEXT
);
"""

POSTGRESQL_ENUM_TYPES = "\n".join(
    f"CREATE TYPE {name} AS ENUM ({_labels(enum_cls)});"
    for name, enum_cls in ENUM_TYPES.items()
)

POSTGRESQL_CORE_SCHEMA = POSTGRESQL_ENUM_TYPES + """

CREATE TABLE customers (
    customer_id INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
    first_name VARCHAR(100) NOT NULL,
    last_name VARCHAR(100) NOT NULL,
    email VARCHAR(255) NOT NULL,
    phone VARCHAR(50),
    customer_type customer_type_enum,
    created_at TIMESTAMP NOT NULL DEFAULT NOW()
);

CREATE TABLE accounts (
    account_id INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
    customer_id INTEGER NOT NULL REFERENCES customers(customer_id),
    account_type account_type_enum NOT NULL,
    status account_status_enum NOT NULL,
    balance NUMERIC(15, 2) NOT NULL DEFAULT 0
);

CREATE TABLE transactions (
    transaction_id INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
    account_id INTEGER NOT NULL REFERENCES accounts(account_id),
    transaction_type transaction_type_enum NOT NULL,
    transaction_date TIMESTAMP NOT NULL DEFAULT NOW(),
    amount NUMERIC(15, 2) NOT NULL,
    currency currency_enum NOT NULL DEFAULT 'USD',
    channel channel_enum
);

CREATE TABLE transaction_metadata (
    transaction_id INTEGER PRIMARY KEY REFERENCES transactions(transaction_id),
    channel_details TEXT,
    location VARCHAR(255),
    device_type device_type_enum,
    auth_method auth_method_enum
);

CREATE TABLE branches (
    branch_id INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    region region_enum NOT NULL,
    manager_name VARCHAR(255)
);
"""

CORE_SCHEMA_DOWN = """
DROP TABLE IF EXISTS transaction_metadata;
DROP TABLE IF EXISTS transactions;
DROP TABLE IF EXISTS accounts;
DROP TABLE IF EXISTS customers;
DROP TABLE IF EXISTS branches;
"""

POSTGRESQL_CORE_SCHEMA_DOWN = CORE_SCHEMA_DOWN + "\n".join(
    f"DROP TYPE IF EXISTS {name};" for name in ENUM_TYPES
)

FOREIGN_KEY_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_accounts_customer_id ON accounts(customer_id);
CREATE INDEX IF NOT EXISTS idx_transactions_account_id ON transactions(account_id);
"""

FOREIGN_KEY_INDEXES_DOWN = """
DROP INDEX IF EXISTS idx_accounts_customer_id;
DROP INDEX IF EXISTS idx_transactions_account_id;
"""


class Migration:
    """Represents a single database migration"""

    def __init__(self, version: int, name: str, up_sql: Dict[str, str],
                 down_sql: Optional[Dict[str, str]] = None):
        self.version = version
        self.name = name
        self.up_sql = up_sql
        self.down_sql = down_sql or {}
        self.applied_at: Optional[datetime] = None

    def up_for(self, dialect: str) -> str:
        return self.up_sql[dialect]

    def down_for(self, dialect: str) -> Optional[str]:
        return self.down_sql.get(dialect)

    def __str__(self) -> str:
        return f"Migration v{self.version:03d}: {self.name}"

    def __repr__(self) -> str:
        return f"Migration(version={self.version}, name='{self.name}')"


class MigrationManager:
    """Manages database migrations for one target"""

    def __init__(self, database: DatabaseInterface):
        self.database = database
        self.migrations: List[Migration] = []
        self._migration_table = "schema_migrations"
        self._init_migrations()
        self._ensure_migration_table()

    def _init_migrations(self) -> None:
        """Initialize built-in migrations"""

        # v001: customers, accounts, transactions, metadata, branches
        self.add_migration(1, "Create core tables", {
            "sqlite": SQLITE_CORE_SCHEMA,
            "postgresql": POSTGRESQL_CORE_SCHEMA,
        }, {
            "sqlite": CORE_SCHEMA_DOWN,
            "postgresql": POSTGRESQL_CORE_SCHEMA_DOWN,
        })

        # v002: foreign key lookups used by cascades and the customer join
        self.add_migration(2, "Index foreign keys", {
            "sqlite": FOREIGN_KEY_INDEXES,
            "postgresql": FOREIGN_KEY_INDEXES,
        }, {
            "sqlite": FOREIGN_KEY_INDEXES_DOWN,
            "postgresql": FOREIGN_KEY_INDEXES_DOWN,
        })

    def _ensure_migration_table(self) -> None:
        """Ensure the migration tracking table exists"""
        self.database.execute_script(f"""
            CREATE TABLE IF NOT EXISTS {self._migration_table} (
                version INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                applied_at TEXT NOT NULL,
                checksum TEXT NOT NULL
            );
        """)

    def add_migration(self, version: int, name: str, up_sql: Dict[str, str],
                      down_sql: Optional[Dict[str, str]] = None) -> None:
        """Add a migration to the manager"""
        migration = Migration(version, name, up_sql, down_sql)
        self.migrations.append(migration)
        # Keep migrations sorted by version
        self.migrations.sort(key=lambda m: m.version)

    def get_current_version(self) -> int:
        """Get the current database version"""
        version = self.database.scalar(
            f"SELECT MAX(version) AS version FROM {self._migration_table}"
        )
        return int(version) if version is not None else 0

    def get_pending_migrations(self, target_version: Optional[int] = None) -> List[Migration]:
        """Get list of pending migrations"""
        current_version = self.get_current_version()
        max_version = target_version or max((m.version for m in self.migrations), default=0)

        return [
            migration for migration in self.migrations
            if current_version < migration.version <= max_version
        ]

    def get_applied_migrations(self) -> List[Dict[str, Any]]:
        """Get list of applied migrations"""
        return self.database.query(
            f"SELECT version, name, applied_at, checksum FROM {self._migration_table} ORDER BY version"
        )

    def migrate_up(self, target_version: Optional[int] = None) -> List[Migration]:
        """Apply pending migrations up to target version"""
        pending = self.get_pending_migrations(target_version)
        applied = []

        if not pending:
            logger.debug("No pending migrations to apply")
            return applied

        logger.info(f"Applying {len(pending)} pending migrations")

        for migration in pending:
            try:
                logger.info(f"Applying {migration}")
                up_sql = migration.up_for(self.database.dialect)

                with self.database.atomic():
                    self.database.execute_script(up_sql)
                    self.database.execute(
                        f"INSERT INTO {self._migration_table} (version, name, applied_at, checksum) "
                        "VALUES (?, ?, ?, ?)",
                        (
                            migration.version,
                            migration.name,
                            datetime.now(timezone.utc).isoformat(),
                            self._calculate_checksum(up_sql),
                        ),
                    )

                migration.applied_at = datetime.now(timezone.utc)
                applied.append(migration)

            except Exception as e:
                logger.error(f"Failed to apply {migration}: {e}")
                raise RuntimeError(f"Migration failed: {migration}") from e

        logger.info(f"Successfully applied {len(applied)} migrations")
        return applied

    def migrate_down(self, target_version: int) -> List[Migration]:
        """Rollback migrations down to target version"""
        current_version = self.get_current_version()

        if target_version >= current_version:
            logger.info("Target version is not lower than current version")
            return []

        rolledback = []
        for migration in reversed(self.migrations):
            if not target_version < migration.version <= current_version:
                continue

            down_sql = migration.down_for(self.database.dialect)
            if not down_sql:
                logger.warning(f"No rollback SQL for {migration}, skipping")
                continue

            try:
                logger.info(f"Rolling back {migration}")
                with self.database.atomic():
                    self.database.execute_script(down_sql)
                    self.database.execute(
                        f"DELETE FROM {self._migration_table} WHERE version = ?",
                        (migration.version,),
                    )
                rolledback.append(migration)

            except Exception as e:
                logger.error(f"Failed to rollback {migration}: {e}")
                raise RuntimeError(f"Rollback failed: {migration}") from e

        logger.info(f"Successfully rolled back {len(rolledback)} migrations")
        return rolledback

    def _calculate_checksum(self, sql: str) -> str:
        """Calculate checksum for migration SQL"""
        return hashlib.md5(sql.encode()).hexdigest()

    def validate_migrations(self) -> bool:
        """Validate that applied migrations match expected checksums"""
        for applied_migration in self.get_applied_migrations():
            version = applied_migration["version"]
            migration = next((m for m in self.migrations if m.version == version), None)
            if not migration:
                logger.warning(f"Applied migration v{version} not found in definitions")
                continue

            expected_checksum = self._calculate_checksum(migration.up_for(self.database.dialect))
            if applied_migration["checksum"] != expected_checksum:
                logger.error(f"Checksum mismatch for v{version}")
                return False

        return True

    def get_migration_status(self) -> Dict[str, Any]:
        """Get detailed migration status"""
        pending = self.get_pending_migrations()
        return {
            "current_version": self.get_current_version(),
            "latest_version": max((m.version for m in self.migrations), default=0),
            "pending_count": len(pending),
            "applied_count": len(self.get_applied_migrations()),
            "needs_migration": len(pending) > 0,
        }
