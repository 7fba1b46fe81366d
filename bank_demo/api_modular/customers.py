"""
Customer management endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path, Query

from .deps import BankingSystem, get_banking_system, get_database_type
from .schemas import CreateCustomerRequest, CustomerModel, CustomerPageResponse, MessageResponse
from ..queries import MAX_INT, CustomerFilter, PageRequest
from ..routing import DatabaseType


router = APIRouter()


@router.get("", response_model=CustomerPageResponse)
def list_customers(
    page: int = 0,
    size: Optional[int] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    customer_type: Optional[str] = Query(None, alias="customerType"),
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    customer_id: Optional[str] = Query(None, alias="customerId"),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """List customers with their account ids"""
    result = system.customer_service.list_customers(
        database_type,
        CustomerFilter(customer_type=customer_type, customer_id=customer_id, search=search_query),
        PageRequest(page, system.page_size(size), sort_by, sort_order),
    )
    return CustomerPageResponse.from_page(result)


@router.get("/{customer_id}", response_model=CustomerModel)
def get_customer(
    customer_id: int = Path(ge=1, le=MAX_INT),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get customer details"""
    return CustomerModel.from_customer(system.customer_service.get_customer(database_type, customer_id))


@router.post("", response_model=CustomerModel)
def create_customer(
    request: CreateCustomerRequest,
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """Create a new customer"""
    customer = system.customer_service.create_customer(
        database_type,
        first_name=request.first_name,
        last_name=request.last_name,
        email=request.email,
        phone=request.phone,
        customer_type=request.customer_type,
    )
    return CustomerModel.from_customer(customer)


@router.delete("/{customer_id}", response_model=MessageResponse)
def delete_customer(
    customer_id: int = Path(ge=1, le=MAX_INT),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """Delete a customer with all accounts and transactions"""
    system.customer_service.delete_customer(database_type, customer_id)
    return MessageResponse(message="Customer deleted successfully")
