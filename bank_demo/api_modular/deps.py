"""
Request dependencies: the wired service graph and the per-request target
"""

from typing import Optional

from fastapi import Query

from ..accounts import AccountService
from ..branches import BranchService
from ..cascade import CascadingDeleteCoordinator
from ..config import BankDemoConfig, get_config
from ..customers import CustomerService
from ..routing import DatabaseRouter, DatabaseType
from ..statistics import StatisticsService
from ..transactions import TransactionService


class BankingSystem:
    """Database router and every service, wired once per process"""

    def __init__(self, router: Optional[DatabaseRouter] = None,
                 config: Optional[BankDemoConfig] = None):
        self.config = config or get_config()

        if router is None:
            router = DatabaseRouter.from_config(self.config)
            if self.config.auto_migrate:
                router.initialize_schema()
        self.router = router

        cascade = CascadingDeleteCoordinator()
        max_page_size = self.config.max_page_size
        self.account_service = AccountService(router, cascade, max_page_size)
        self.transaction_service = TransactionService(router, cascade, max_page_size)
        self.customer_service = CustomerService(router, cascade, max_page_size)
        self.branch_service = BranchService(router)
        self.statistics_service = StatisticsService(router, self.account_service)

    def page_size(self, size: Optional[int]) -> int:
        return self.config.default_page_size if size is None else size

    def close(self) -> None:
        self.router.close()


# Global banking system instance, created on first use
banking_system: Optional[BankingSystem] = None


# Dependency to get banking system
def get_banking_system() -> BankingSystem:
    global banking_system
    if banking_system is None:
        banking_system = BankingSystem()
    return banking_system


def get_database_type(
    database: Optional[str] = Query(None, description="SEED, TESTING (default) or PROD")
) -> DatabaseType:
    """Resolve the ``database`` query parameter; unknown names are a client error"""
    return DatabaseType.parse(database)
