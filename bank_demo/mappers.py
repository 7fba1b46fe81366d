"""
Row Mapper Module

Pure, column-name-keyed conversion of one result row into one domain record.
Mappers never issue queries; whatever a record needs (such as a customer's
account ids) must already be carried by the row.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional

from .exceptions import MappingError
from .models import Account, Branch, Customer, Transaction


MONEY_QUANTUM = Decimal("0.01")


def _require(row: Mapping[str, Any], column: str, entity: str) -> Any:
    try:
        value = row[column]
    except KeyError:
        raise MappingError(f"Missing column '{column}' in {entity} row") from None
    if value is None:
        raise MappingError(f"Column '{column}' is null in {entity} row")
    return value


def to_int(value: Any, column: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MappingError(f"Column '{column}' is not an integer: {value!r}") from None


def to_decimal(value: Any, column: str) -> Decimal:
    """Exact decimal for money columns, quantized to cents"""
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, float):
            # NUMERIC affinity hands back floats; repr is the shortest exact text
            amount = Decimal(repr(value))
        else:
            amount = Decimal(str(value))
        return amount.quantize(MONEY_QUANTUM)
    except (InvalidOperation, ValueError):
        raise MappingError(f"Column '{column}' is not a decimal: {value!r}") from None


def to_datetime(value: Any, column: str) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise MappingError(f"Column '{column}' is not a timestamp: {value!r}") from None


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def parse_account_ids(value: Any) -> List[int]:
    """
    Collapse an aggregated one-to-many join into a sorted id list.

    Accepts a database array, a comma-joined string or None; null members
    (from a LEFT JOIN with no match) are dropped, so a customer without
    accounts maps to an empty list, never None.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        parts = value
    elif isinstance(value, int):
        parts = [value]
    else:
        parts = [part.strip() for part in str(value).split(",")]

    ids = {to_int(part, "account_ids") for part in parts if part is not None and part != ""}
    return sorted(ids)


def map_account(row: Mapping[str, Any]) -> Account:
    return Account(
        account_id=to_int(_require(row, "account_id", "account"), "account_id"),
        customer_id=to_int(_require(row, "customer_id", "account"), "customer_id"),
        account_type=str(_require(row, "account_type", "account")),
        status=str(_require(row, "status", "account")),
        balance=to_decimal(_require(row, "balance", "account"), "balance"),
    )


def map_transaction(row: Mapping[str, Any]) -> Transaction:
    # Metadata columns come from a LEFT JOIN and may all be null
    return Transaction(
        transaction_id=to_int(_require(row, "transaction_id", "transaction"), "transaction_id"),
        account_id=to_int(_require(row, "account_id", "transaction"), "account_id"),
        transaction_type=str(_require(row, "transaction_type", "transaction")),
        amount=to_decimal(_require(row, "amount", "transaction"), "amount"),
        transaction_date=to_datetime(_require(row, "transaction_date", "transaction"), "transaction_date"),
        currency=str(_require(row, "currency", "transaction")),
        channel=_text(row.get("channel")),
        location=_text(row.get("location")),
        device_type=_text(row.get("device_type")),
        auth_method=_text(row.get("auth_method")),
        channel_details=_text(row.get("channel_details")),
    )


def map_customer(row: Mapping[str, Any]) -> Customer:
    return Customer(
        customer_id=to_int(_require(row, "customer_id", "customer"), "customer_id"),
        first_name=str(_require(row, "first_name", "customer")),
        last_name=str(_require(row, "last_name", "customer")),
        email=str(_require(row, "email", "customer")),
        phone=_text(row.get("phone")),
        customer_type=_text(row.get("customer_type")),
        created_at=to_datetime(row.get("created_at"), "created_at"),
        account_ids=parse_account_ids(row.get("account_ids")),
    )


def map_branch(row: Mapping[str, Any]) -> Branch:
    return Branch(
        branch_id=to_int(_require(row, "branch_id", "branch"), "branch_id"),
        name=str(_require(row, "name", "branch")),
        region=str(_require(row, "region", "branch")),
        manager_name=_text(row.get("manager_name")),
    )
