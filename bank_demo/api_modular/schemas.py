"""
Pydantic schemas for API requests and responses

Field names are snake_case in Python and camelCase on the wire. Money is
serialized as a decimal string so no precision is lost in transit.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models import Account, Branch, Customer, Page, Statistics, Transaction
from ..queries import MAX_INT


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request schemas; required fields are checked by the services so the
# client sees "<Field> is required" rather than a generic schema error
class CreateAccountRequest(CamelModel):
    customer_id: Optional[int] = Field(None, ge=1, le=MAX_INT)
    account_type: Optional[str] = Field(None, description="Checking, Savings, Credit, Loan or Investment")
    status: Optional[str] = Field(None, description="Active, Closed, Frozen, Dormant or Overdrawn")
    balance: Optional[Decimal] = None


class UpdateAccountStatusRequest(CamelModel):
    status: Optional[str] = None


class CreateTransactionRequest(CamelModel):
    account_id: Optional[int] = Field(None, ge=1, le=MAX_INT)
    transaction_type: Optional[str] = Field(None, description="Deposit, Withdrawal, Transfer, Payment or Fee")
    amount: Optional[Decimal] = None
    transaction_date: Optional[datetime] = None
    currency: Optional[str] = Field(None, description="USD (default), EUR or GBP")
    channel: Optional[str] = None
    location: Optional[str] = None
    device_type: Optional[str] = None
    auth_method: Optional[str] = None
    channel_details: Optional[str] = None


class CreateCustomerRequest(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    customer_type: Optional[str] = None


class CreateBranchRequest(CamelModel):
    name: Optional[str] = None
    region: Optional[str] = Field(None, description="North, South, East, West or Central")
    manager_name: Optional[str] = None


# Response schemas
class AccountModel(CamelModel):
    account_id: int
    customer_id: int
    account_type: str
    status: str
    balance: Decimal

    @classmethod
    def from_account(cls, account: Account) -> "AccountModel":
        return cls(
            account_id=account.account_id,
            customer_id=account.customer_id,
            account_type=account.account_type,
            status=account.status,
            balance=account.balance,
        )


class TransactionModel(CamelModel):
    transaction_id: int
    account_id: int
    transaction_type: str
    transaction_date: Optional[datetime] = None
    amount: Decimal
    currency: str
    channel: Optional[str] = None
    location: Optional[str] = None
    device_type: Optional[str] = None
    auth_method: Optional[str] = None
    channel_details: Optional[str] = None

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionModel":
        return cls(
            transaction_id=transaction.transaction_id,
            account_id=transaction.account_id,
            transaction_type=transaction.transaction_type,
            transaction_date=transaction.transaction_date,
            amount=transaction.amount,
            currency=transaction.currency,
            channel=transaction.channel,
            location=transaction.location,
            device_type=transaction.device_type,
            auth_method=transaction.auth_method,
            channel_details=transaction.channel_details,
        )


class CustomerModel(CamelModel):
    customer_id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    customer_type: Optional[str] = None
    created_at: Optional[datetime] = None
    account_ids: List[int] = []

    @classmethod
    def from_customer(cls, customer: Customer) -> "CustomerModel":
        return cls(
            customer_id=customer.customer_id,
            first_name=customer.first_name,
            last_name=customer.last_name,
            email=customer.email,
            phone=customer.phone,
            customer_type=customer.customer_type,
            created_at=customer.created_at,
            account_ids=list(customer.account_ids),
        )


class BranchModel(CamelModel):
    branch_id: int
    name: str
    region: str
    manager_name: Optional[str] = None

    @classmethod
    def from_branch(cls, branch: Branch) -> "BranchModel":
        return cls(
            branch_id=branch.branch_id,
            name=branch.name,
            region=branch.region,
            manager_name=branch.manager_name,
        )


class AccountPageResponse(CamelModel):
    accounts: List[AccountModel]
    total_count: int

    @classmethod
    def from_page(cls, page: Page[Account]) -> "AccountPageResponse":
        return cls(
            accounts=[AccountModel.from_account(a) for a in page.items],
            total_count=page.total_count,
        )


class TransactionPageResponse(CamelModel):
    transactions: List[TransactionModel]
    total_count: int

    @classmethod
    def from_page(cls, page: Page[Transaction]) -> "TransactionPageResponse":
        return cls(
            transactions=[TransactionModel.from_transaction(t) for t in page.items],
            total_count=page.total_count,
        )


class CustomerPageResponse(CamelModel):
    customers: List[CustomerModel]
    total_count: int

    @classmethod
    def from_page(cls, page: Page[Customer]) -> "CustomerPageResponse":
        return cls(
            customers=[CustomerModel.from_customer(c) for c in page.items],
            total_count=page.total_count,
        )


class StatisticsModel(CamelModel):
    total_transactions: int
    total_customers: int
    total_accounts: int
    total_branches: int

    @classmethod
    def from_statistics(cls, statistics: Statistics) -> "StatisticsModel":
        return cls(**vars(statistics))


class MessageResponse(BaseModel):
    message: str


StatusCounts = Dict[str, int]
