"""
Customer Service Module

Filtered customer listing (each customer carrying the ids of the accounts it
owns), creation and cascading deletion.
"""

from typing import List, Optional
import logging

from .accounts import require_text
from .cascade import CascadingDeleteCoordinator
from .exceptions import NotFoundError
from .logging_config import log_action
from .mappers import map_customer
from .models import Customer, CustomerType, Page
from .queries import (
    CUSTOMER_QUERY, CustomerFilter, PageRequest, build_customer_query, fetch_page
)
from .routing import DatabaseRouter, DatabaseType


logger = logging.getLogger(__name__)


class CustomerService:
    """
    Customer operations routed per request to one database target
    """

    def __init__(self, router: DatabaseRouter,
                 cascade: Optional[CascadingDeleteCoordinator] = None,
                 max_page_size: Optional[int] = None):
        self.router = router
        self.cascade = cascade or CascadingDeleteCoordinator()
        self.max_page_size = max_page_size

    def _select_customers(self, database) -> str:
        aggregate = database.id_list_aggregate("a.account_id")
        return (
            f"SELECT {CUSTOMER_QUERY.select_list}, {aggregate} AS account_ids "
            f"FROM {CUSTOMER_QUERY.from_clause}"
        )

    def list_customers(self, database_type: DatabaseType, filters: CustomerFilter,
                       page: PageRequest) -> Page[Customer]:
        """
        Get one page of customers.

        The account join is collapsed per customer, so total_count and the page
        window count customers, not customer/account pairs.
        """
        database = self.router.get(database_type)
        query = build_customer_query(
            filters, page, database.id_list_aggregate("a.account_id"), self.max_page_size
        )
        result = fetch_page(database, query, map_customer)

        log_action(
            logger, "info", f"Found {result.total_count} customers",
            action="list", resource="customers", database=database_type.value,
            extra={"filters": vars(filters), "page": page.page, "size": page.size},
        )
        return result

    def find_all(self, database_type: DatabaseType) -> List[Customer]:
        database = self.router.get(database_type)
        rows = database.query(
            f"{self._select_customers(database)} "
            f"GROUP BY {CUSTOMER_QUERY.group_by} ORDER BY c.customer_id ASC"
        )
        return [map_customer(row) for row in rows]

    def get_customer(self, database_type: DatabaseType, customer_id: int) -> Customer:
        database = self.router.get(database_type)
        row = database.query_one(
            f"{self._select_customers(database)} WHERE c.customer_id = ? "
            f"GROUP BY {CUSTOMER_QUERY.group_by}",
            (customer_id,),
        )
        if row is None:
            raise NotFoundError(f"Customer not found with ID: {customer_id}")
        return map_customer(row)

    def create_customer(self, database_type: DatabaseType,
                        first_name: Optional[str] = None,
                        last_name: Optional[str] = None,
                        email: Optional[str] = None,
                        phone: Optional[str] = None,
                        customer_type: Optional[str] = None) -> Customer:
        """Create a customer and return it as stored, with an empty account list"""
        first_name = require_text(first_name, "First Name")
        last_name = require_text(last_name, "Last Name")
        email = require_text(email, "Email")
        if customer_type is not None and customer_type != "":
            customer_type = CustomerType.parse(customer_type, "customerType").value
        else:
            customer_type = None
        phone = phone.strip() if phone and phone.strip() else None

        database = self.router.get(database_type)
        customer_id = database.insert(
            "INSERT INTO customers (first_name, last_name, email, phone, customer_type) "
            "VALUES (?, ?, ?, ?, ?)",
            (first_name, last_name, email, phone, customer_type),
            "customer_id",
        )

        log_action(
            logger, "info", f"Created customer {customer_id}",
            action="create", resource=f"customer:{customer_id}", database=database_type.value,
        )
        return self.get_customer(database_type, customer_id)

    def delete_customer(self, database_type: DatabaseType, customer_id: int) -> None:
        """
        Delete a customer with every account it owns, their transactions and
        the transactions' metadata. A missing identifier is a no-op.
        """
        deleted = self.cascade.delete_customer(self.router.get(database_type), customer_id)
        if deleted == 0:
            logger.warning(f"Delete requested for missing customer {customer_id}")
            return

        log_action(
            logger, "info", f"Deleted customer {customer_id}",
            action="delete", resource=f"customer:{customer_id}", database=database_type.value,
        )
