"""
Transaction Service Module

Filtered transaction listing (with the 1:1 metadata sub-record joined in),
creation of a transaction together with its metadata row, and deletion.
Creating a transaction records it only; balances are never touched.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional
import logging

from .accounts import to_money
from .cascade import CascadingDeleteCoordinator
from .exceptions import NotFoundError, ValidationError
from .logging_config import log_action
from .mappers import map_transaction
from .models import (
    AuthMethod, Channel, Currency, DEFAULT_CURRENCY, DeviceType, Page,
    Transaction, TransactionType
)
from .queries import (
    PageRequest, TRANSACTION_QUERY, TransactionFilter, build_transaction_query, fetch_page
)
from .routing import DatabaseRouter, DatabaseType


logger = logging.getLogger(__name__)

SELECT_TRANSACTIONS = (
    f"SELECT {TRANSACTION_QUERY.select_list} FROM {TRANSACTION_QUERY.from_clause}"
)


def _optional_label(value: Optional[str], enum_cls: type, field_name: str) -> Optional[str]:
    if value is None or value == "":
        return None
    return enum_cls.parse(value, field_name).value


class TransactionService:
    """
    Transaction operations routed per request to one database target
    """

    def __init__(self, router: DatabaseRouter,
                 cascade: Optional[CascadingDeleteCoordinator] = None,
                 max_page_size: Optional[int] = None):
        self.router = router
        self.cascade = cascade or CascadingDeleteCoordinator()
        self.max_page_size = max_page_size

    def list_transactions(self, database_type: DatabaseType, filters: TransactionFilter,
                          page: PageRequest) -> Page[Transaction]:
        query = build_transaction_query(filters, page, self.max_page_size)
        result = fetch_page(self.router.get(database_type), query, map_transaction)

        log_action(
            logger, "info", f"Found {result.total_count} transactions",
            action="list", resource="transactions", database=database_type.value,
            extra={"filters": vars(filters), "page": page.page, "size": page.size},
        )
        return result

    def find_all(self, database_type: DatabaseType) -> List[Transaction]:
        rows = self.router.get(database_type).query(
            f"{SELECT_TRANSACTIONS} ORDER BY t.transaction_id ASC"
        )
        return [map_transaction(row) for row in rows]

    def get_transaction(self, database_type: DatabaseType, transaction_id: int) -> Transaction:
        row = self.router.get(database_type).query_one(
            f"{SELECT_TRANSACTIONS} WHERE t.transaction_id = ?", (transaction_id,)
        )
        if row is None:
            raise NotFoundError(f"Transaction not found with ID: {transaction_id}")
        return map_transaction(row)

    def create_transaction(self, database_type: DatabaseType,
                           account_id: Optional[int] = None,
                           transaction_type: Optional[str] = None,
                           amount: Optional[Any] = None,
                           transaction_date: Optional[datetime] = None,
                           currency: Optional[str] = None,
                           channel: Optional[str] = None,
                           location: Optional[str] = None,
                           device_type: Optional[str] = None,
                           auth_method: Optional[str] = None,
                           channel_details: Optional[str] = None) -> Transaction:
        """
        Record a transaction and its metadata row in one atomic scope.

        account_id, transaction_type and amount are required. currency
        defaults to USD and transaction_date to the current time.
        """
        if account_id is None:
            raise ValidationError("Account ID is required")
        if transaction_type is None or not transaction_type.strip():
            raise ValidationError("Transaction Type is required")
        transaction_type = TransactionType.parse(transaction_type.strip(), "transactionType").value
        amount = to_money(amount, "Amount")

        currency = _optional_label(currency, Currency, "currency") or DEFAULT_CURRENCY.value
        channel = _optional_label(channel, Channel, "channel")
        device_type = _optional_label(device_type, DeviceType, "deviceType")
        auth_method = _optional_label(auth_method, AuthMethod, "authMethod")
        if transaction_date is None:
            transaction_date = datetime.now(timezone.utc).replace(tzinfo=None)

        database = self.router.get(database_type)
        with database.atomic():
            transaction_id = database.insert(
                "INSERT INTO transactions "
                "(account_id, transaction_type, transaction_date, amount, currency, channel) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (account_id, transaction_type, transaction_date, amount, currency, channel),
                "transaction_id",
            )
            database.execute(
                "INSERT INTO transaction_metadata "
                "(transaction_id, channel_details, location, device_type, auth_method) "
                "VALUES (?, ?, ?, ?, ?)",
                (transaction_id, channel_details, location, device_type, auth_method),
            )
            transaction = self.get_transaction(database_type, transaction_id)

        log_action(
            logger, "info", f"Created transaction {transaction_id} on account {account_id}",
            action="create", resource=f"transaction:{transaction_id}", database=database_type.value,
        )
        return transaction

    def delete_transaction(self, database_type: DatabaseType, transaction_id: int) -> None:
        """Delete a transaction after its metadata row; missing ids are a no-op"""
        deleted = self.cascade.delete_transaction(self.router.get(database_type), transaction_id)
        if deleted == 0:
            logger.warning(f"Delete requested for missing transaction {transaction_id}")
            return

        log_action(
            logger, "info", f"Deleted transaction {transaction_id}",
            action="delete", resource=f"transaction:{transaction_id}", database=database_type.value,
        )
