"""
Account Service Module

Filtered account listing, creation, status updates, cascading deletion and
per-status counts against the selected database target.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
import logging

from .cascade import CascadingDeleteCoordinator
from .exceptions import NotFoundError, ValidationError
from .logging_config import log_action
from .mappers import MONEY_QUANTUM, map_account
from .models import Account, AccountStatus, AccountType, Page
from .queries import AccountFilter, PageRequest, build_account_query, fetch_page
from .routing import DatabaseRouter, DatabaseType


logger = logging.getLogger(__name__)

ACCOUNT_COLUMNS = "account_id, customer_id, account_type, status, balance"

# NUMERIC(15, 2)
MONEY_INTEGER_DIGITS = 13
MONEY_LIMIT = Decimal(10) ** MONEY_INTEGER_DIGITS


def require_text(value: Optional[str], label: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required")
    return str(value).strip()


def to_money(value: Any, label: str) -> Decimal:
    """
    Exact Decimal from client input, quantized to cents; floats go through
    their text form.

    Values must fit NUMERIC(15, 2): at most 13 integer digits and 2 decimal
    places. Anything finer is rejected rather than rounded.
    """
    if value is None:
        raise ValidationError(f"{label} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a decimal number")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{label} must be a decimal number") from None
    if not amount.is_finite():
        raise ValidationError(f"{label} must be a decimal number")
    if abs(amount) >= MONEY_LIMIT:
        raise ValidationError(f"{label} must have at most {MONEY_INTEGER_DIGITS} integer digits")
    cents = amount.quantize(MONEY_QUANTUM)
    if cents != amount:
        raise ValidationError(f"{label} must have at most 2 decimal places")
    return cents


class AccountService:
    """
    Account operations routed per request to one database target
    """

    def __init__(self, router: DatabaseRouter,
                 cascade: Optional[CascadingDeleteCoordinator] = None,
                 max_page_size: Optional[int] = None):
        self.router = router
        self.cascade = cascade or CascadingDeleteCoordinator()
        self.max_page_size = max_page_size

    def list_accounts(self, database_type: DatabaseType, filters: AccountFilter,
                      page: PageRequest) -> Page[Account]:
        """Get one page of accounts matching the filters, with the total match count"""
        query = build_account_query(filters, page, self.max_page_size)
        result = fetch_page(self.router.get(database_type), query, map_account)

        log_action(
            logger, "info", f"Found {result.total_count} accounts",
            action="list", resource="accounts", database=database_type.value,
            extra={"filters": vars(filters), "page": page.page, "size": page.size},
        )
        return result

    def find_all(self, database_type: DatabaseType) -> List[Account]:
        """All accounts, identifier ascending"""
        rows = self.router.get(database_type).query(
            f"SELECT {ACCOUNT_COLUMNS} FROM accounts ORDER BY account_id ASC"
        )
        return [map_account(row) for row in rows]

    def get_account(self, database_type: DatabaseType, account_id: int) -> Account:
        row = self.router.get(database_type).query_one(
            f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE account_id = ?", (account_id,)
        )
        if row is None:
            raise NotFoundError(f"Account not found with ID: {account_id}")
        return map_account(row)

    def create_account(self, database_type: DatabaseType, customer_id: Optional[int] = None,
                       account_type: Optional[str] = None, status: Optional[str] = None,
                       balance: Optional[Any] = None) -> Account:
        """
        Create a new account.

        customer_id, account_type, status and balance are all required; the
        identifier is assigned by the store. A customer_id that references no
        customer is rejected by the foreign key and surfaces as a storage error.
        """
        if customer_id is None:
            raise ValidationError("Customer ID is required")
        account_type = AccountType.parse(require_text(account_type, "Account Type"), "accountType").value
        status = AccountStatus.parse(require_text(status, "Status"), "status").value
        balance = to_money(balance, "Balance")

        database = self.router.get(database_type)
        account_id = database.insert(
            "INSERT INTO accounts (customer_id, account_type, status, balance) VALUES (?, ?, ?, ?)",
            (customer_id, account_type, status, balance),
            "account_id",
        )

        log_action(
            logger, "info", f"Created account {account_id} for customer {customer_id}",
            action="create", resource=f"account:{account_id}", database=database_type.value,
        )
        return self.get_account(database_type, account_id)

    def update_account_status(self, database_type: DatabaseType, account_id: int,
                              status: Optional[str]) -> Account:
        """Change an account's status and return the full updated record"""
        if status is None or not status.strip():
            raise ValidationError("Status is required")
        status = AccountStatus.parse(status.strip(), "status").value

        database = self.router.get(database_type)
        with database.atomic():
            updated = database.execute(
                "UPDATE accounts SET status = ? WHERE account_id = ?", (status, account_id)
            )
            if updated == 0:
                raise NotFoundError(f"Account not found with ID: {account_id}")
            account = self.get_account(database_type, account_id)

        log_action(
            logger, "info", f"Updated account {account_id} status to {status}",
            action="update_status", resource=f"account:{account_id}", database=database_type.value,
        )
        return account

    def count_by_status(self, database_type: DatabaseType) -> Dict[str, int]:
        """Accounts per status label; statuses with no rows report zero"""
        counts = {label: 0 for label in AccountStatus.labels()}
        rows = self.router.get(database_type).query(
            "SELECT status, COUNT(*) AS total FROM accounts GROUP BY status"
        )
        for row in rows:
            counts[str(row["status"])] = int(row["total"])
        return counts

    def delete_account(self, database_type: DatabaseType, account_id: int) -> None:
        """
        Delete an account with its transactions and their metadata.

        Deleting an identifier that does not exist is a no-op.
        """
        deleted = self.cascade.delete_account(self.router.get(database_type), account_id)
        if deleted == 0:
            logger.warning(f"Delete requested for missing account {account_id}")
            return

        log_action(
            logger, "info", f"Deleted account {account_id}",
            action="delete", resource=f"account:{account_id}", database=database_type.value,
        )
