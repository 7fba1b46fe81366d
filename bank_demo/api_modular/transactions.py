"""
Transaction endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path, Query

from .deps import BankingSystem, get_banking_system, get_database_type
from .schemas import (
    CreateTransactionRequest, MessageResponse, TransactionModel, TransactionPageResponse
)
from ..queries import MAX_INT, PageRequest, TransactionFilter
from ..routing import DatabaseType


router = APIRouter()


@router.get("", response_model=TransactionPageResponse)
def list_transactions(
    page: int = 0,
    size: Optional[int] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    transaction_type: Optional[str] = Query(None, alias="transactionType"),
    transaction_id: Optional[str] = Query(None, alias="transactionId"),
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    account_ids: Optional[str] = Query(None, alias="accountIds", description="Comma-separated account ids"),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """List transactions with filters, sorting and paging"""
    result = system.transaction_service.list_transactions(
        database_type,
        TransactionFilter(
            transaction_type=transaction_type, transaction_id=transaction_id,
            search=search_query, account_ids=account_ids,
        ),
        PageRequest(page, system.page_size(size), sort_by, sort_order),
    )
    return TransactionPageResponse.from_page(result)


@router.post("", response_model=TransactionModel)
def create_transaction(
    request: CreateTransactionRequest,
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """Record a transaction with its metadata"""
    transaction = system.transaction_service.create_transaction(
        database_type,
        account_id=request.account_id,
        transaction_type=request.transaction_type,
        amount=request.amount,
        transaction_date=request.transaction_date,
        currency=request.currency,
        channel=request.channel,
        location=request.location,
        device_type=request.device_type,
        auth_method=request.auth_method,
        channel_details=request.channel_details,
    )
    return TransactionModel.from_transaction(transaction)


@router.get("/{transaction_id}", response_model=TransactionModel)
def get_transaction(
    transaction_id: int = Path(ge=1, le=MAX_INT),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    transaction = system.transaction_service.get_transaction(database_type, transaction_id)
    return TransactionModel.from_transaction(transaction)


@router.delete("/{transaction_id}", response_model=MessageResponse)
def delete_transaction(
    transaction_id: int = Path(ge=1, le=MAX_INT),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    system.transaction_service.delete_transaction(database_type, transaction_id)
    return MessageResponse(message="Transaction deleted successfully")
