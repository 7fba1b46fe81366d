#!/usr/bin/env python3
"""Seed script for the bank demo databases

Generates demo data through the services, so every row passes the same
validation as API writes:
- customers with realistic names and mixed customer types
- one to three accounts per customer
- transactions with metadata spread across all accounts
- one branch per region

Run with: python -m bank_demo.seed --database SEED
"""

import argparse
import logging
import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List

from .accounts import AccountService
from .branches import BranchService
from .config import get_config
from .customers import CustomerService
from .logging_config import setup_logging
from .models import (
    Account, AccountStatus, AccountType, AuthMethod, Channel, Currency, Customer,
    CustomerType, DeviceType, Region, TransactionType
)
from .routing import DatabaseRouter, DatabaseType
from .transactions import TransactionService


logger = logging.getLogger(__name__)

# Sample data
FIRST_NAMES = [
    'James', 'Mary', 'John', 'Patricia', 'Robert', 'Jennifer', 'Michael', 'Linda',
    'William', 'Elizabeth', 'David', 'Barbara', 'Richard', 'Susan', 'Joseph', 'Jessica',
    'Thomas', 'Sarah', 'Christopher', 'Karen', 'Charles', 'Nancy', 'Daniel', 'Lisa',
]

LAST_NAMES = [
    'Smith', 'Johnson', 'Williams', 'Brown', 'Jones', 'Garcia', 'Miller', 'Davis',
    'Rodriguez', 'Martinez', 'Hernandez', 'Lopez', 'Gonzalez', 'Wilson', 'Anderson',
    'Thomas', 'Taylor', 'Moore', 'Jackson', 'Martin', 'Lee', 'Perez', 'Thompson',
]

CITIES = [
    'New York', 'Los Angeles', 'Chicago', 'Houston', 'Phoenix', 'Philadelphia',
    'San Antonio', 'San Diego', 'Dallas', 'Austin', 'Seattle', 'Denver', 'Boston',
]

BRANCH_NAMES = {
    Region.NORTH: 'Northgate',
    Region.SOUTH: 'Riverside',
    Region.EAST: 'Harbor Point',
    Region.WEST: 'Sunset Plaza',
    Region.CENTRAL: 'Downtown',
}


def random_date_in_range(start_date, end_date):
    """Generate a random timestamp between start and end"""
    delta = end_date - start_date
    return start_date + timedelta(seconds=random.randint(0, int(delta.total_seconds())))


def random_money(low: int, high: int) -> Decimal:
    return Decimal(random.randint(low * 100, high * 100)) / 100


def create_customers(service: CustomerService, database: DatabaseType, count: int) -> List[Customer]:
    """Create demo customers with realistic data"""
    logger.info(f"Creating {count} customers...")
    customers = []

    for _ in range(count):
        first_name = random.choice(FIRST_NAMES)
        last_name = random.choice(LAST_NAMES)

        email_domain = random.choice(['gmail.com', 'yahoo.com', 'outlook.com', 'company.com'])
        email = f"{first_name.lower()}.{last_name.lower()}{random.randint(1, 999)}@{email_domain}"
        phone = f"+1-{random.randint(200, 999)}-{random.randint(200, 999)}-{random.randint(1000, 9999)}"

        customer_type = random.choices(CustomerType.labels(), weights=[60, 20, 10, 5, 5])[0]
        customers.append(service.create_customer(
            database,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            customer_type=customer_type,
        ))

    logger.info(f"Created {len(customers)} customers")
    return customers


def create_accounts(service: AccountService, database: DatabaseType,
                    customers: List[Customer]) -> List[Account]:
    """Create one to three accounts per customer"""
    accounts = []
    status_weights = [70, 10, 5, 10, 5]

    for customer in customers:
        for _ in range(random.randint(1, 3)):
            accounts.append(service.create_account(
                database,
                customer_id=customer.customer_id,
                account_type=random.choice(AccountType.labels()),
                status=random.choices(AccountStatus.labels(), weights=status_weights)[0],
                balance=random_money(0, 50000),
            ))

    logger.info(f"Created {len(accounts)} accounts")
    return accounts


def create_transactions(service: TransactionService, database: DatabaseType,
                        accounts: List[Account], count: int) -> int:
    """Create demo transactions over the last year"""
    end_date = datetime.now().replace(microsecond=0)
    start_date = end_date - timedelta(days=365)

    for _ in range(count):
        channel = random.choice(Channel.labels())
        device_type = DeviceType.ATM.value if channel == Channel.ATM.value else random.choice(DeviceType.labels())
        service.create_transaction(
            database,
            account_id=random.choice(accounts).account_id,
            transaction_type=random.choices(TransactionType.labels(), weights=[35, 30, 15, 15, 5])[0],
            amount=random_money(1, 5000),
            transaction_date=random_date_in_range(start_date, end_date),
            currency=random.choices(Currency.labels(), weights=[80, 12, 8])[0],
            channel=channel,
            location=random.choice(CITIES),
            device_type=device_type,
            auth_method=random.choice(AuthMethod.labels()),
            channel_details=f"{channel} session {random.randint(100000, 999999)}",
        )

    logger.info(f"Created {count} transactions")
    return count


def create_branches(service: BranchService, database: DatabaseType) -> int:
    for region, name in BRANCH_NAMES.items():
        manager = f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}"
        service.create_branch(database, name=name, region=region.value, manager_name=manager)
    return len(BRANCH_NAMES)


def seed(router: DatabaseRouter, database: DatabaseType, customers: int = 50,
         transactions: int = 300, random_seed=None) -> dict:
    """Load demo data into one target and return how many rows were created"""
    if random_seed is not None:
        random.seed(random_seed)

    account_service = AccountService(router)
    created_customers = create_customers(CustomerService(router), database, customers)
    accounts = create_accounts(account_service, database, created_customers)
    created_transactions = 0
    if accounts:
        created_transactions = create_transactions(
            TransactionService(router), database, accounts, transactions
        )
    branches = create_branches(BranchService(router), database)

    return {
        "customers": len(created_customers),
        "accounts": len(accounts),
        "transactions": created_transactions,
        "branches": branches,
    }


def main(argv=None):
    parser = argparse.ArgumentParser(description="Load demo data into a bank demo database")
    parser.add_argument("--database", default="SEED", help="SEED, TESTING or PROD")
    parser.add_argument("--customers", type=int, default=50)
    parser.add_argument("--transactions", type=int, default=300)
    parser.add_argument("--random-seed", type=int, default=None)
    args = parser.parse_args(argv)

    config = get_config()
    setup_logging(config.log_level, config.log_format, log_file=config.log_file)

    database = DatabaseType.parse(args.database)
    router = DatabaseRouter.from_config(config)
    try:
        router.initialize_schema()
        counts = seed(router, database, args.customers, args.transactions, args.random_seed)
    finally:
        router.close()

    logger.info(f"Seeded {database.value}: {counts}")
    return counts


if __name__ == "__main__":
    main()
