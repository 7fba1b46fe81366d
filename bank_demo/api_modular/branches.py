"""
Branch endpoints
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Query

from .deps import BankingSystem, get_banking_system, get_database_type
from .schemas import BranchModel, CreateBranchRequest, MessageResponse
from ..queries import MAX_INT
from ..routing import DatabaseType


router = APIRouter()


@router.get("", response_model=List[BranchModel])
def list_branches(
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    return [BranchModel.from_branch(b) for b in system.branch_service.list_branches(database_type)]


@router.post("", response_model=BranchModel)
def create_branch(
    request: CreateBranchRequest,
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    branch = system.branch_service.create_branch(
        database_type, name=request.name, region=request.region, manager_name=request.manager_name
    )
    return BranchModel.from_branch(branch)


@router.put("/{branch_id}/manager", response_model=BranchModel)
def update_manager(
    branch_id: int = Path(ge=1, le=MAX_INT),
    manager_name: Optional[str] = Query(None, alias="managerName"),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    """Assign a new branch manager"""
    branch = system.branch_service.update_manager(database_type, branch_id, manager_name)
    return BranchModel.from_branch(branch)


@router.delete("/{branch_id}", response_model=MessageResponse)
def delete_branch(
    branch_id: int = Path(ge=1, le=MAX_INT),
    database_type: DatabaseType = Depends(get_database_type),
    system: BankingSystem = Depends(get_banking_system)
):
    system.branch_service.delete_branch(database_type, branch_id)
    return MessageResponse(message="Branch deleted successfully")
