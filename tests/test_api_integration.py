"""
Integration tests for the Bank Demo API
Tests end-to-end workflows using FastAPI TestClient
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from bank_demo.api_modular import create_app
from bank_demo.config import BankDemoConfig
from bank_demo.routing import DatabaseRouter, DatabaseType
from bank_demo.storage import SQLiteDatabase


@pytest.fixture
def client():
    """Create a test client bound to fresh in-memory databases"""
    router = DatabaseRouter({t: SQLiteDatabase() for t in DatabaseType})
    router.initialize_schema()
    app = create_app(router=router, config=BankDemoConfig(max_page_size=50))

    yield TestClient(app)
    router.close()


def create_customer(client, first_name="Ada", database=None, **extra):
    body = {"firstName": first_name, "lastName": "Lovelace", "email": f"{first_name.lower()}@example.com"}
    body.update(extra)
    params = {"database": database} if database else None
    r = client.post("/api/customers", json=body, params=params)
    assert r.status_code == 200, r.text
    return r.json()


def create_account(client, customer_id, **extra):
    body = {"customerId": customer_id, "accountType": "Checking", "status": "Active", "balance": 1000.00}
    body.update(extra)
    r = client.post("/api/accounts", json=body)
    assert r.status_code == 200, r.text
    return r.json()


class TestHealthEndpoints:
    """Test basic health and root endpoints"""

    def test_health(self, client):
        """Test health endpoint"""
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

    def test_root(self, client):
        """Test root endpoint"""
        r = client.get("/")
        assert r.status_code == 200
        data = r.json()
        assert data["databases"] == ["SEED", "TESTING", "PROD"]
        assert data["endpoints"]["accounts"] == "/api/accounts"


class TestAccountFlow:
    """End-to-end account scenarios"""

    def test_create_then_filter_by_id(self, client):
        """Test a created account is found by its generated id"""
        customer = create_customer(client)

        account = create_account(client, customer["customerId"])

        assert account["accountId"] > 0
        r = client.get("/api/accounts", params={"accountId": account["accountId"]})
        assert r.status_code == 200
        data = r.json()
        assert data["totalCount"] == 1
        assert data["accounts"][0]["status"] == "Active"
        assert Decimal(data["accounts"][0]["balance"]) == Decimal("1000.00")

    def test_update_status(self, client):
        """Test a status change leaves every other field alone"""
        customer = create_customer(client)
        account = create_account(client, customer["customerId"])

        r = client.patch(f"/api/accounts/{account['accountId']}", json={"status": "Frozen"})
        assert r.status_code == 200
        assert r.json()["status"] == "Frozen"

        r = client.get(f"/api/accounts/{account['accountId']}")
        assert r.json() == {**account, "status": "Frozen"}

    def test_update_status_of_missing_account(self, client):
        r = client.patch("/api/accounts/999", json={"status": "Frozen"})
        assert r.status_code == 404
        assert r.json() == {"error": "Account not found with ID: 999"}

    def test_update_status_with_bad_label(self, client):
        customer = create_customer(client)
        account = create_account(client, customer["customerId"])

        r = client.patch(f"/api/accounts/{account['accountId']}", json={"status": "Suspended"})
        assert r.status_code == 400
        assert "Allowed values" in r.json()["error"]

    def test_missing_required_field(self, client):
        customer = create_customer(client)

        r = client.post("/api/accounts", json={"customerId": customer["customerId"], "status": "Active", "balance": 1})
        assert r.status_code == 400
        assert r.json() == {"error": "Account Type is required"}

    def test_paging_and_sorting(self, client):
        customer = create_customer(client)
        for balance in [30, 10, 20]:
            create_account(client, customer["customerId"], balance=balance)

        r = client.get("/api/accounts", params={"sortBy": "balance", "sortOrder": "desc", "page": 0, "size": 2})
        data = r.json()

        assert data["totalCount"] == 3
        assert [Decimal(a["balance"]) for a in data["accounts"]] == [Decimal("30"), Decimal("20")]

    def test_search_by_full_balance(self, client):
        """Test a two-decimal balance is found by its rendered text"""
        customer = create_customer(client)
        account = create_account(client, customer["customerId"], balance="1000.00")
        create_account(client, customer["customerId"], balance="10.00")

        data = client.get("/api/accounts", params={"searchQuery": "1000.00"}).json()

        assert data["totalCount"] == 1
        assert data["accounts"][0]["accountId"] == account["accountId"]
        assert data["accounts"][0]["balance"] == "1000.00"

    def test_default_page_size(self, client):
        customer = create_customer(client)
        for _ in range(12):
            create_account(client, customer["customerId"])

        data = client.get("/api/accounts").json()

        assert data["totalCount"] == 12
        assert len(data["accounts"]) == 10


class TestClientErrors:
    """Test that bad input is a 400 with an error body"""

    def test_unknown_sort_column(self, client):
        r = client.get("/api/accounts", params={"sortBy": "balance; DROP TABLE accounts"})
        assert r.status_code == 400
        assert "Invalid sortBy" in r.json()["error"]

    def test_malformed_identifier(self, client):
        r = client.get("/api/transactions", params={"transactionId": "abc"})
        assert r.status_code == 400
        assert "transactionId" in r.json()["error"]

    def test_malformed_account_ids(self, client):
        r = client.get("/api/transactions", params={"accountIds": "1,two"})
        assert r.status_code == 400

    def test_non_numeric_page(self, client):
        r = client.get("/api/customers", params={"page": "first"})
        assert r.status_code == 400
        assert "page" in r.json()["error"]

    def test_size_above_maximum(self, client):
        r = client.get("/api/customers", params={"size": 51})
        assert r.status_code == 400

    def test_unknown_database(self, client):
        r = client.get("/api/accounts", params={"database": "STAGING"})
        assert r.status_code == 400
        assert "STAGING" in r.json()["error"]

    def test_unknown_filter_label(self, client):
        r = client.get("/api/customers", params={"customerType": "Pirate"})
        assert r.status_code == 400

    def test_page_beyond_integer_range(self, client):
        r = client.get("/api/accounts", params={"page": str(10 ** 19)})
        assert r.status_code == 400
        assert "page" in r.json()["error"]

    def test_path_id_beyond_integer_range(self, client):
        """Test oversized ids get an error body instead of a driver overflow"""
        for path in ["/api/accounts/99999999999999999999", "/api/customers/99999999999999999999",
                     "/api/transactions/99999999999999999999"]:
            r = client.get(path)
            assert r.status_code == 400, path
            assert "error" in r.json()

        r = client.delete("/api/branches/99999999999999999999")
        assert r.status_code == 400

    def test_body_id_beyond_integer_range(self, client):
        r = client.post("/api/accounts", json={
            "customerId": 10 ** 20, "accountType": "Checking", "status": "Active", "balance": "1",
        })
        assert r.status_code == 400
        assert "customerId" in r.json()["error"]

    def test_sub_cent_balance(self, client):
        customer = create_customer(client)

        r = client.post("/api/accounts", json={
            "customerId": customer["customerId"], "accountType": "Checking",
            "status": "Active", "balance": "10.005",
        })

        assert r.status_code == 400
        assert r.json() == {"error": "Balance must have at most 2 decimal places"}

    def test_balance_wider_than_column(self, client):
        customer = create_customer(client)

        r = client.post("/api/accounts", json={
            "customerId": customer["customerId"], "accountType": "Checking",
            "status": "Active", "balance": "12345678901234567.89",
        })

        assert r.status_code == 400
        assert "integer digits" in r.json()["error"]


class TestTransactionFlow:
    """End-to-end transaction scenarios"""

    def test_currency_defaults_to_usd(self, client):
        customer = create_customer(client)
        account = create_account(client, customer["customerId"])

        r = client.post("/api/transactions", json={
            "accountId": account["accountId"],
            "transactionType": "Deposit",
            "amount": 100.00,
            "channel": "ATM",
        })

        assert r.status_code == 200
        data = r.json()
        assert data["currency"] == "USD"
        assert data["channel"] == "ATM"
        assert Decimal(data["amount"]) == Decimal("100.00")

    def test_metadata_round_trip(self, client):
        customer = create_customer(client)
        account = create_account(client, customer["customerId"])

        created = client.post("/api/transactions", json={
            "accountId": account["accountId"],
            "transactionType": "Payment",
            "amount": "42.50",
            "currency": "GBP",
            "channel": "Online",
            "location": "London",
            "deviceType": "Desktop",
            "authMethod": "Password",
            "channelDetails": "web checkout",
        }).json()

        r = client.get("/api/transactions", params={"searchQuery": "london"})
        listed = r.json()["transactions"]

        assert [t["transactionId"] for t in listed] == [created["transactionId"]]
        assert listed[0]["deviceType"] == "Desktop"
        assert listed[0]["channelDetails"] == "web checkout"

    def test_delete_account_removes_its_transactions(self, client):
        """Test listing by a deleted account's id finds nothing"""
        customer = create_customer(client)
        account = create_account(client, customer["customerId"])
        for _ in range(2):
            client.post("/api/transactions", json={
                "accountId": account["accountId"], "transactionType": "Deposit", "amount": 5,
            })

        r = client.delete(f"/api/accounts/{account['accountId']}")
        assert r.status_code == 200
        assert r.json() == {"message": "Account deleted successfully"}

        r = client.get("/api/transactions", params={"accountIds": str(account["accountId"])})
        assert r.json()["totalCount"] == 0

    def test_delete_transaction(self, client):
        customer = create_customer(client)
        account = create_account(client, customer["customerId"])
        created = client.post("/api/transactions", json={
            "accountId": account["accountId"], "transactionType": "Fee", "amount": 2,
        }).json()

        r = client.delete(f"/api/transactions/{created['transactionId']}")

        assert r.json() == {"message": "Transaction deleted successfully"}
        assert client.get("/api/transactions").json()["totalCount"] == 0

    def test_transaction_for_missing_account_is_server_error(self, client):
        r = client.post("/api/transactions", json={
            "accountId": 999, "transactionType": "Deposit", "amount": 5,
        })
        assert r.status_code == 500
        assert r.json()["error"].startswith("Database operation failed")


class TestCustomerFlow:
    """End-to-end customer management tests"""

    def test_get_customer_lists_account_ids(self, client):
        customer = create_customer(client, customerType="Business")
        first = create_account(client, customer["customerId"])
        second = create_account(client, customer["customerId"])

        r = client.get(f"/api/customers/{customer['customerId']}")

        assert r.status_code == 200
        data = r.json()
        assert data["customerType"] == "Business"
        assert data["accountIds"] == [first["accountId"], second["accountId"]]

    def test_get_missing_customer(self, client):
        r = client.get("/api/customers/404")
        assert r.status_code == 404
        assert r.json() == {"error": "Customer not found with ID: 404"}

    def test_integer_search_is_exact_id(self, client):
        for name in ["Ada", "Alan", "Grace"]:
            create_customer(client, first_name=name)

        data = client.get("/api/customers", params={"searchQuery": "2"}).json()

        assert data["totalCount"] == 1
        assert data["customers"][0]["firstName"] == "Alan"

    def test_delete_customer_cascades(self, client):
        customer = create_customer(client)
        account = create_account(client, customer["customerId"])
        client.post("/api/transactions", json={
            "accountId": account["accountId"], "transactionType": "Deposit", "amount": 1,
        })

        r = client.delete(f"/api/customers/{customer['customerId']}")

        assert r.json() == {"message": "Customer deleted successfully"}
        stats = client.get("/api/statistics").json()
        assert stats == {"totalTransactions": 0, "totalCustomers": 0, "totalAccounts": 0, "totalBranches": 0}


class TestBranchesAndStatistics:

    def test_branch_lifecycle(self, client):
        r = client.post("/api/branches", json={"name": "Downtown", "region": "Central"})
        assert r.status_code == 200
        branch = r.json()

        r = client.put(f"/api/branches/{branch['branchId']}/manager", params={"managerName": "Pat Lee"})
        assert r.json()["managerName"] == "Pat Lee"

        assert [b["name"] for b in client.get("/api/branches").json()] == ["Downtown"]

        r = client.delete(f"/api/branches/{branch['branchId']}")
        assert r.json() == {"message": "Branch deleted successfully"}
        assert client.get("/api/branches").json() == []

    def test_manager_update_for_missing_branch(self, client):
        r = client.put("/api/branches/12/manager", params={"managerName": "Pat Lee"})
        assert r.status_code == 404

    def test_statistics_per_database(self, client):
        """Test the database selector routes to separate targets"""
        create_customer(client, database="seed")
        client.post("/api/branches", json={"name": "Northgate", "region": "North"}, params={"database": "PROD"})

        seed_stats = client.get("/api/statistics", params={"database": "SEED"}).json()
        prod_stats = client.get("/api/statistics", params={"database": "prod"}).json()
        testing_stats = client.get("/api/statistics").json()

        assert seed_stats["totalCustomers"] == 1
        assert prod_stats["totalBranches"] == 1
        assert prod_stats["totalCustomers"] == 0
        assert testing_stats["totalCustomers"] == 0

    def test_account_status_counts(self, client):
        customer = create_customer(client)
        create_account(client, customer["customerId"])
        create_account(client, customer["customerId"], status="Dormant")

        counts = client.get("/api/statistics/account-status-counts").json()

        assert counts == {"Active": 1, "Closed": 0, "Frozen": 0, "Dormant": 1, "Overdrawn": 0}
