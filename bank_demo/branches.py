"""
Branch Service Module
"""

from typing import List, Optional
import logging

from .accounts import require_text
from .exceptions import NotFoundError, ValidationError
from .logging_config import log_action
from .mappers import map_branch
from .models import Branch, Region
from .routing import DatabaseRouter, DatabaseType


logger = logging.getLogger(__name__)

BRANCH_COLUMNS = "branch_id, name, region, manager_name"


class BranchService:
    """Branch listing, creation, manager reassignment and deletion"""

    def __init__(self, router: DatabaseRouter):
        self.router = router

    def list_branches(self, database_type: DatabaseType) -> List[Branch]:
        rows = self.router.get(database_type).query(
            f"SELECT {BRANCH_COLUMNS} FROM branches ORDER BY branch_id ASC"
        )
        return [map_branch(row) for row in rows]

    def get_branch(self, database_type: DatabaseType, branch_id: int) -> Branch:
        row = self.router.get(database_type).query_one(
            f"SELECT {BRANCH_COLUMNS} FROM branches WHERE branch_id = ?", (branch_id,)
        )
        if row is None:
            raise NotFoundError(f"Branch not found with ID: {branch_id}")
        return map_branch(row)

    def create_branch(self, database_type: DatabaseType, name: Optional[str] = None,
                      region: Optional[str] = None,
                      manager_name: Optional[str] = None) -> Branch:
        name = require_text(name, "Name")
        region = Region.parse(require_text(region, "Region"), "region").value
        manager_name = manager_name.strip() if manager_name and manager_name.strip() else None

        database = self.router.get(database_type)
        branch_id = database.insert(
            "INSERT INTO branches (name, region, manager_name) VALUES (?, ?, ?)",
            (name, region, manager_name),
            "branch_id",
        )

        log_action(
            logger, "info", f"Created branch {branch_id} in {region}",
            action="create", resource=f"branch:{branch_id}", database=database_type.value,
        )
        return self.get_branch(database_type, branch_id)

    def update_manager(self, database_type: DatabaseType, branch_id: int,
                       manager_name: Optional[str]) -> Branch:
        """Reassign a branch manager and return the updated branch"""
        if manager_name is None or not manager_name.strip():
            raise ValidationError("Manager Name is required")

        database = self.router.get(database_type)
        with database.atomic():
            updated = database.execute(
                "UPDATE branches SET manager_name = ? WHERE branch_id = ?",
                (manager_name.strip(), branch_id),
            )
            if updated == 0:
                raise NotFoundError(f"Branch not found with ID: {branch_id}")
            branch = self.get_branch(database_type, branch_id)

        log_action(
            logger, "info", f"Branch {branch_id} manager set to {branch.manager_name}",
            action="update_manager", resource=f"branch:{branch_id}", database=database_type.value,
        )
        return branch

    def delete_branch(self, database_type: DatabaseType, branch_id: int) -> None:
        deleted = self.router.get(database_type).execute(
            "DELETE FROM branches WHERE branch_id = ?", (branch_id,)
        )
        if deleted == 0:
            logger.warning(f"Delete requested for missing branch {branch_id}")
            return

        log_action(
            logger, "info", f"Deleted branch {branch_id}",
            action="delete", resource=f"branch:{branch_id}", database=database_type.value,
        )
