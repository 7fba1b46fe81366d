"""
Account management endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path, Query

from .deps import BankingSystem, get_banking_system, get_database_type
from .schemas import (
    AccountModel, AccountPageResponse, CreateAccountRequest, MessageResponse,
    UpdateAccountStatusRequest
)
from ..queries import MAX_INT, AccountFilter, PageRequest
from ..routing import DatabaseType


router = APIRouter()


@router.get("", response_model=AccountPageResponse)
def list_accounts(
    page: int = 0,
    size: Optional[int] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    account_type: Optional[str] = Query(None, alias="accountType"),
    status: Optional[str] = None,
    account_id: Optional[str] = Query(None, alias="accountId"),
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """List accounts with filters, sorting and paging"""
    result = system.account_service.list_accounts(
        database_type,
        AccountFilter(
            account_type=account_type, status=status,
            account_id=account_id, search=search_query,
        ),
        PageRequest(page, system.page_size(size), sort_by, sort_order),
    )
    return AccountPageResponse.from_page(result)


@router.post("", response_model=AccountModel)
def create_account(
    request: CreateAccountRequest,
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """Create a new account"""
    account = system.account_service.create_account(
        database_type,
        customer_id=request.customer_id,
        account_type=request.account_type,
        status=request.status,
        balance=request.balance,
    )
    return AccountModel.from_account(account)


@router.get("/{account_id}", response_model=AccountModel)
def get_account(
    account_id: int = Path(ge=1, le=MAX_INT),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get account details"""
    return AccountModel.from_account(system.account_service.get_account(database_type, account_id))


@router.patch("/{account_id}", response_model=AccountModel)
def update_account_status(
    request: UpdateAccountStatusRequest,
    account_id: int = Path(ge=1, le=MAX_INT),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """Change account status"""
    account = system.account_service.update_account_status(database_type, account_id, request.status)
    return AccountModel.from_account(account)


@router.delete("/{account_id}", response_model=MessageResponse)
def delete_account(
    account_id: int = Path(ge=1, le=MAX_INT),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """Delete an account with its transactions"""
    system.account_service.delete_account(database_type, account_id)
    return MessageResponse(message="Account deleted successfully")
