"""
Database Routing Module

Maps the per-request target selector onto one of three schema-identical
storage instances. The router is built once at startup and handed to every
service; it holds no state besides the three handles.
"""

from enum import Enum
from typing import Dict, Optional
import logging

from .config import BankDemoConfig
from .exceptions import ValidationError
from .migrations import MigrationManager
from .storage import DatabaseInterface, create_database


logger = logging.getLogger(__name__)


class DatabaseType(Enum):
    """Logical storage targets selectable per request"""
    SEED = "SEED"
    TESTING = "TESTING"
    PROD = "PROD"

    @classmethod
    def parse(cls, value: Optional[str]) -> "DatabaseType":
        """
        Resolve a selector string, case-insensitively.

        Missing or blank values select TESTING; anything outside the three
        targets is a client input error.
        """
        if value is None or not value.strip():
            return cls.TESTING
        try:
            return cls[value.strip().upper()]
        except KeyError:
            allowed = ", ".join(member.value for member in cls)
            raise ValidationError(f"Unknown database '{value}'. Allowed values: {allowed}") from None


class DatabaseRouter:
    """Holds one live handle per DatabaseType"""

    def __init__(self, databases: Dict[DatabaseType, DatabaseInterface]):
        missing = [t.value for t in DatabaseType if t not in databases]
        if missing:
            raise ValueError(f"No database configured for: {', '.join(missing)}")
        self._databases = dict(databases)

    @classmethod
    def from_config(cls, config: BankDemoConfig) -> "DatabaseRouter":
        urls = {
            DatabaseType.SEED: config.seed_database_url,
            DatabaseType.TESTING: config.testing_database_url,
            DatabaseType.PROD: config.prod_database_url,
        }
        databases = {}
        for database_type, url in urls.items():
            logger.info(f"Connecting {database_type.value} target ({url.split('://', 1)[0]})")
            databases[database_type] = create_database(
                url,
                schema=config.database_schema,
                min_connections=config.database_pool_min,
                max_connections=config.database_pool_max,
            )
        return cls(databases)

    def get(self, database_type: DatabaseType) -> DatabaseInterface:
        """Return the handle bound to the given target"""
        return self._databases[database_type]

    def initialize_schema(self) -> None:
        """Apply pending schema migrations on every target"""
        for database_type, database in self._databases.items():
            applied = MigrationManager(database).migrate_up()
            if applied:
                logger.info(f"Applied {len(applied)} migrations on {database_type.value}")

    def close(self) -> None:
        for database in self._databases.values():
            database.close()
