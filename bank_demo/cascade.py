"""
Cascading Delete Module

Removes an entity together with every row that depends on it, in dependency
order: transaction metadata, then transactions, then accounts, then the
customer. Each top-level delete runs inside one atomic scope, so a failure at
any step rolls the whole cascade back and no concurrent reader observes a
partially deleted graph.
"""

import logging

from .storage import DatabaseInterface


logger = logging.getLogger(__name__)


DELETE_METADATA_FOR_TRANSACTION = "DELETE FROM transaction_metadata WHERE transaction_id = ?"
DELETE_TRANSACTION = "DELETE FROM transactions WHERE transaction_id = ?"

DELETE_METADATA_FOR_ACCOUNT = (
    "DELETE FROM transaction_metadata WHERE transaction_id IN "
    "(SELECT transaction_id FROM transactions WHERE account_id = ?)"
)
DELETE_TRANSACTIONS_FOR_ACCOUNT = "DELETE FROM transactions WHERE account_id = ?"
DELETE_ACCOUNT = "DELETE FROM accounts WHERE account_id = ?"

SELECT_ACCOUNT_IDS_FOR_CUSTOMER = (
    "SELECT account_id FROM accounts WHERE customer_id = ? ORDER BY account_id"
)
DELETE_CUSTOMER = "DELETE FROM customers WHERE customer_id = ?"


class CascadingDeleteCoordinator:
    """
    Ordered multi-table deletes for transactions, accounts and customers.

    Every public method returns the number of root rows removed (0 or 1);
    the caller decides whether 0 is an error.
    """

    def delete_transaction(self, database: DatabaseInterface, transaction_id: int) -> int:
        with database.atomic():
            database.execute(DELETE_METADATA_FOR_TRANSACTION, (transaction_id,))
            deleted = database.execute(DELETE_TRANSACTION, (transaction_id,))

        logger.debug(f"Deleted transaction {transaction_id} ({deleted} row)")
        return deleted

    def delete_account(self, database: DatabaseInterface, account_id: int) -> int:
        with database.atomic():
            deleted = self._delete_account_rows(database, account_id)
        return deleted

    def delete_customer(self, database: DatabaseInterface, customer_id: int) -> int:
        with database.atomic():
            rows = database.query(SELECT_ACCOUNT_IDS_FOR_CUSTOMER, (customer_id,))
            account_ids = [row["account_id"] for row in rows]

            for account_id in account_ids:
                self._delete_account_rows(database, account_id)

            deleted = database.execute(DELETE_CUSTOMER, (customer_id,))

        logger.debug(
            f"Deleted customer {customer_id} with {len(account_ids)} accounts ({deleted} row)"
        )
        return deleted

    def _delete_account_rows(self, database: DatabaseInterface, account_id: int) -> int:
        """Account sequence; callers provide the atomic scope"""
        database.execute(DELETE_METADATA_FOR_ACCOUNT, (account_id,))
        transactions = database.execute(DELETE_TRANSACTIONS_FOR_ACCOUNT, (account_id,))
        deleted = database.execute(DELETE_ACCOUNT, (account_id,))

        logger.debug(f"Deleted account {account_id} with {transactions} transactions")
        return deleted
