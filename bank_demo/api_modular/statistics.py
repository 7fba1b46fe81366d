"""
Dashboard statistics endpoints
"""

from fastapi import APIRouter, Depends

from .deps import BankingSystem, get_banking_system, get_database_type
from .schemas import StatisticsModel, StatusCounts
from ..routing import DatabaseType


router = APIRouter()


@router.get("", response_model=StatisticsModel)
def get_statistics(
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """Total transactions, customers, accounts and branches"""
    return StatisticsModel.from_statistics(system.statistics_service.get_statistics(database_type))


@router.get("/account-status-counts", response_model=StatusCounts)
def get_account_status_counts(
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    return system.statistics_service.get_account_status_counts(database_type)
