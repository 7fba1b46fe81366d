"""
Domain Model Module

Enumerated domains and record types shared by the query builder, row mappers
and services. All monetary values are Decimal, never float.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from .exceptions import ValidationError


class LabelEnum(Enum):
    """Enum whose values are the labels stored in the database"""

    @classmethod
    def labels(cls) -> List[str]:
        return [member.value for member in cls]

    @classmethod
    def parse(cls, label: str, field_name: str) -> "LabelEnum":
        """Resolve a stored label, raising ValidationError for unknown values"""
        try:
            return cls(label)
        except ValueError:
            raise ValidationError(
                f"Invalid {field_name} '{label}'. Allowed values: {', '.join(cls.labels())}"
            ) from None


class AccountType(LabelEnum):
    CHECKING = "Checking"
    SAVINGS = "Savings"
    CREDIT = "Credit"
    LOAN = "Loan"
    INVESTMENT = "Investment"


class AccountStatus(LabelEnum):
    ACTIVE = "Active"
    CLOSED = "Closed"
    FROZEN = "Frozen"
    DORMANT = "Dormant"
    OVERDRAWN = "Overdrawn"


class TransactionType(LabelEnum):
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"
    TRANSFER = "Transfer"
    PAYMENT = "Payment"
    FEE = "Fee"


class Currency(LabelEnum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"


class Channel(LabelEnum):
    ATM = "ATM"
    ONLINE = "Online"
    MOBILE = "Mobile"
    BRANCH = "Branch"


class DeviceType(LabelEnum):
    MOBILE = "Mobile"
    DESKTOP = "Desktop"
    TABLET = "Tablet"
    ATM = "ATM"
    POS = "POS"


class AuthMethod(LabelEnum):
    PIN = "PIN"
    PASSWORD = "Password"
    BIOMETRIC = "Biometric"
    CARD = "Card"
    TOKEN = "Token"
    NONE = "None"


class CustomerType(LabelEnum):
    INDIVIDUAL = "Individual"
    BUSINESS = "Business"
    VIP = "VIP"
    GOVERNMENT = "Government"
    NONPROFIT = "Nonprofit"


class Region(LabelEnum):
    NORTH = "North"
    SOUTH = "South"
    EAST = "East"
    WEST = "West"
    CENTRAL = "Central"


DEFAULT_CURRENCY = Currency.USD


@dataclass
class Account:
    """Bank account owned by a customer"""
    account_id: Optional[int]
    customer_id: int
    account_type: str
    status: str
    balance: Decimal


@dataclass
class Transaction:
    """
    Transaction against an account, with the optional metadata sub-record
    (location, device type, auth method, channel details) flattened in.
    """
    transaction_id: Optional[int]
    account_id: int
    transaction_type: str
    amount: Decimal
    transaction_date: Optional[datetime] = None
    currency: str = DEFAULT_CURRENCY.value
    channel: Optional[str] = None
    location: Optional[str] = None
    device_type: Optional[str] = None
    auth_method: Optional[str] = None
    channel_details: Optional[str] = None


@dataclass
class Customer:
    """Customer profile; account_ids is derived from the accounts table"""
    customer_id: Optional[int]
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    customer_type: Optional[str] = None
    created_at: Optional[datetime] = None
    account_ids: List[int] = field(default_factory=list)


@dataclass
class Branch:
    branch_id: Optional[int]
    name: str
    region: str
    manager_name: Optional[str] = None


T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """
    One page of a filtered, sorted result set.

    total_count covers every matching row, not just the returned items.
    """
    items: List[T]
    total_count: int


@dataclass
class Statistics:
    """Bank-wide counts; each is read independently, with no shared snapshot"""
    total_transactions: int
    total_customers: int
    total_accounts: int
    total_branches: int
