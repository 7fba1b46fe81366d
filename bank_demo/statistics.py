"""
Statistics Service Module

Bank-wide totals for the dashboard summary. Each count is its own query, so
the four numbers are not taken from one snapshot.
"""

from typing import Dict, Optional
import logging

from .accounts import AccountService
from .exceptions import StorageError
from .models import Statistics
from .routing import DatabaseRouter, DatabaseType


logger = logging.getLogger(__name__)

COUNT_QUERIES = {
    "total_transactions": "SELECT COUNT(*) FROM transactions",
    "total_customers": "SELECT COUNT(*) FROM customers",
    "total_accounts": "SELECT COUNT(*) FROM accounts",
    "total_branches": "SELECT COUNT(*) FROM branches",
}


class StatisticsService:

    def __init__(self, router: DatabaseRouter, account_service: Optional[AccountService] = None):
        self.router = router
        self.account_service = account_service or AccountService(router)

    def get_statistics(self, database_type: DatabaseType) -> Statistics:
        database = self.router.get(database_type)
        try:
            totals = {
                name: int(database.scalar(sql) or 0)
                for name, sql in COUNT_QUERIES.items()
            }
        except StorageError:
            logger.error(f"Failed to compute statistics for {database_type.value}", exc_info=True)
            raise

        logger.debug(f"Statistics for {database_type.value}: {totals}")
        return Statistics(**totals)

    def get_account_status_counts(self, database_type: DatabaseType) -> Dict[str, int]:
        """Accounts per status, every status label present"""
        return self.account_service.count_by_status(database_type)
