"""
Tests for the transaction service
"""

from datetime import datetime
from decimal import Decimal

import pytest

from bank_demo.accounts import AccountService
from bank_demo.customers import CustomerService
from bank_demo.exceptions import NotFoundError, StorageError, ValidationError
from bank_demo.queries import PageRequest, TransactionFilter
from bank_demo.routing import DatabaseRouter, DatabaseType
from bank_demo.storage import SQLiteDatabase
from bank_demo.transactions import TransactionService


TESTING = DatabaseType.TESTING


class TestTransactionService:
    """Test transaction creation, listing and deletion"""

    def setup_method(self):
        """Set up test fixtures"""
        self.router = DatabaseRouter({t: SQLiteDatabase() for t in DatabaseType})
        self.router.initialize_schema()
        self.service = TransactionService(self.router)

        customer = CustomerService(self.router).create_customer(
            TESTING, first_name="Grace", last_name="Hopper", email="grace@example.com"
        )
        accounts = AccountService(self.router)
        self.account = accounts.create_account(
            TESTING, customer_id=customer.customer_id, account_type="Checking",
            status="Active", balance="500.00",
        )
        self.other_account = accounts.create_account(
            TESTING, customer_id=customer.customer_id, account_type="Savings",
            status="Active", balance="0",
        )

    def teardown_method(self):
        self.router.close()

    def create(self, account_id=None, transaction_type="Deposit", amount="100.00", **kwargs):
        return self.service.create_transaction(
            TESTING, account_id=account_id or self.account.account_id,
            transaction_type=transaction_type, amount=amount, **kwargs
        )

    def test_currency_defaults_to_usd(self):
        """Test a transaction without currency is stored as USD"""
        transaction = self.create(channel="ATM")

        assert transaction.currency == "USD"
        assert transaction.channel == "ATM"
        assert transaction.amount == Decimal("100.00")
        assert transaction.transaction_date is not None

    def test_metadata_is_written_and_joined(self):
        transaction = self.create(
            channel="Mobile", location="Seattle", device_type="Mobile",
            auth_method="Biometric", channel_details="iOS app",
        )

        fetched = self.service.get_transaction(TESTING, transaction.transaction_id)

        assert fetched.location == "Seattle"
        assert fetched.device_type == "Mobile"
        assert fetched.auth_method == "Biometric"
        assert fetched.channel_details == "iOS app"
        database = self.router.get(TESTING)
        assert database.scalar("SELECT COUNT(*) FROM transaction_metadata") == 1

    def test_explicit_date_and_currency(self):
        when = datetime(2024, 5, 17, 9, 45)

        transaction = self.create(transaction_date=when, currency="EUR")

        assert transaction.transaction_date == when
        assert transaction.currency == "EUR"

    def test_create_does_not_touch_balance(self):
        self.create(transaction_type="Withdrawal", amount="75")

        account = AccountService(self.router).get_account(TESTING, self.account.account_id)
        assert account.balance == Decimal("500.00")

    def test_required_fields(self):
        with pytest.raises(ValidationError, match="Account ID is required"):
            self.service.create_transaction(TESTING, transaction_type="Deposit", amount="1")
        with pytest.raises(ValidationError, match="Transaction Type is required"):
            self.service.create_transaction(TESTING, account_id=self.account.account_id, amount="1")
        with pytest.raises(ValidationError, match="Amount is required"):
            self.service.create_transaction(
                TESTING, account_id=self.account.account_id, transaction_type="Deposit"
            )

    def test_unknown_labels_rejected(self):
        with pytest.raises(ValidationError, match="transactionType"):
            self.create(transaction_type="Gift")
        with pytest.raises(ValidationError, match="currency"):
            self.create(currency="JPY")
        with pytest.raises(ValidationError, match="channel"):
            self.create(channel="Carrier Pigeon")
        with pytest.raises(ValidationError, match="authMethod"):
            self.create(auth_method="Retina")

        assert self.service.find_all(TESTING) == []

    def test_failed_create_leaves_no_rows(self):
        """Test the transaction and metadata rows commit together or not at all"""
        with pytest.raises(StorageError):
            self.create(account_id=999)

        database = self.router.get(TESTING)
        assert database.scalar("SELECT COUNT(*) FROM transactions") == 0
        assert database.scalar("SELECT COUNT(*) FROM transaction_metadata") == 0

    def test_list_by_account_ids(self):
        self.create()
        self.create()
        self.create(account_id=self.other_account.account_id)

        page = self.service.list_transactions(
            TESTING, TransactionFilter(account_ids=str(self.other_account.account_id)), PageRequest()
        )
        both = self.service.list_transactions(
            TESTING,
            TransactionFilter(account_ids=f"{self.account.account_id},{self.other_account.account_id}"),
            PageRequest(),
        )

        assert page.total_count == 1
        assert page.items[0].account_id == self.other_account.account_id
        assert both.total_count == 3

    def test_list_by_type_and_search(self):
        self.create(transaction_type="Deposit", channel="Online", location="Denver")
        self.create(transaction_type="Fee", channel="Branch", location="Denver")
        self.create(transaction_type="Deposit", channel="ATM", location="Austin")

        deposits = self.service.list_transactions(
            TESTING, TransactionFilter(transaction_type="Deposit"), PageRequest()
        )
        in_denver = self.service.list_transactions(
            TESTING, TransactionFilter(search="denver"), PageRequest()
        )

        assert deposits.total_count == 2
        assert in_denver.total_count == 2
        assert {t.location for t in in_denver.items} == {"Denver"}

    def test_numeric_search_is_transaction_id(self):
        for _ in range(3):
            self.create(amount="2.00")

        page = self.service.list_transactions(TESTING, TransactionFilter(search="2"), PageRequest())

        assert [t.transaction_id for t in page.items] == [2]

    def test_sort_by_amount_desc(self):
        for amount in ["5", "50", "20"]:
            self.create(amount=amount)

        page = self.service.list_transactions(
            TESTING, TransactionFilter(), PageRequest(sort_by="amount", sort_order="desc")
        )

        assert [t.amount for t in page.items] == [Decimal("50.00"), Decimal("20.00"), Decimal("5.00")]

    def test_search_matches_two_decimal_amount(self):
        """Test amounts are searched through the same text on every dialect"""
        match = self.create(amount="75")
        self.create(amount="7.50")

        page = self.service.list_transactions(TESTING, TransactionFilter(search="75.00"), PageRequest())

        assert [t.transaction_id for t in page.items] == [match.transaction_id]

    def test_sub_cent_amount_rejected(self):
        with pytest.raises(ValidationError, match="Amount must have at most 2 decimal places"):
            self.create(amount="0.001")

    def test_get_missing_transaction(self):
        with pytest.raises(NotFoundError, match="Transaction not found with ID: 7"):
            self.service.get_transaction(TESTING, 7)

    def test_delete_transaction(self):
        kept = self.create()
        removed = self.create(location="Reno")

        self.service.delete_transaction(TESTING, removed.transaction_id)

        assert [t.transaction_id for t in self.service.find_all(TESTING)] == [kept.transaction_id]
        database = self.router.get(TESTING)
        assert database.scalar("SELECT COUNT(*) FROM transaction_metadata") == 1

    def test_delete_missing_transaction_is_noop(self):
        self.create()
        self.service.delete_transaction(TESTING, 404)
        assert len(self.service.find_all(TESTING)) == 1
