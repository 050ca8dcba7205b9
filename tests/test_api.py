"""
API tests for the rental ledger HTTP surface
"""

import pytest
from fastapi.testclient import TestClient

from rental_ledger.api import create_app
from rental_ledger.config import LedgerConfig
from rental_ledger.system import LedgerSystem


class TestLedgerAPI:
    """End-to-end flows through the FastAPI application"""

    def setup_method(self):
        self.system = LedgerSystem(LedgerConfig(database_url="memory://"))
        self.client = TestClient(create_app(self.system))
        self.customer = self.client.post("/parties/customer", json={"name": "John Doe"}).json()
        self.vendor = self.client.post("/parties/vendor", json={"name": "Sokha Garage"}).json()
        self.accounts = {
            a["name"]: a for a in self.client.get("/accounts").json()["accounts"]
        }

    def _sale(self, **overrides):
        payload = {
            "sale_date": "2024-05-10",
            "customer_id": self.customer["id"],
            "description": "Scooter rental",
            "amount": "50.00",
            "payment_type": "cash",
            "credit_account_id": self.accounts["AT Rental"]["id"],
        }
        payload.update(overrides)
        return self.client.post("/sales", json=payload, headers={"X-User-Id": "alice"})

    def test_health(self):
        """Test the health endpoint reports healthy"""
        response = self.client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_api_info(self):
        """Test the API root describes the service"""
        assert self.client.get("/").json()["name"] == "Rental Ledger API"

    def test_list_accounts(self):
        """Test listing accounts with bank flags and a type filter"""
        assert "Cash" in self.accounts
        assert self.accounts["Bank Account (ABA)"]["bank_account"] is True
        assert self.accounts["Cash"]["bank_account"] is False

        revenue = self.client.get("/accounts", params={"type": "Revenue"}).json()["accounts"]
        assert revenue and all(a["type"] == "Revenue" for a in revenue)

    def test_list_accounts_bad_type(self):
        """Test an unknown account type filter is a field error"""
        response = self.client.get("/accounts", params={"type": "Income"})
        assert response.status_code == 422
        assert "type" in response.json()["details"]["errors"]

    def test_create_account(self):
        """Test account creation and duplicate name rejection"""
        response = self.client.post("/accounts", json={
            "name": "Bank Account (Wing)", "type": "Asset"
        })
        assert response.status_code == 201
        assert response.json()["bank_account"] is True

        duplicate = self.client.post("/accounts", json={"name": "Cash", "type": "Asset"})
        assert duplicate.status_code == 422

    def test_create_sale(self):
        """Test posting a sale returns its numbers and account names"""
        response = self._sale()

        assert response.status_code == 201
        body = response.json()
        assert body["sale_no"] == "SALE-0001"
        assert body["transaction_no"] == "GL-001"
        assert body["amount"] == "50.00"
        assert body["customer_name"] == "John Doe"
        assert body["debit_account_name"] == "Cash"
        assert body["credit_account_name"] == "AT Rental"
        assert body["created_by"] == "alice"

        listed = self.client.get("/sales").json()["sales"]
        assert [s["sale_no"] for s in listed] == ["SALE-0001"]
        assert self.client.get(f"/sales/{body['id']}").json()["sale_no"] == "SALE-0001"

    def test_create_sale_by_customer_name(self):
        """Test a sale may name its customer instead of an id"""
        response = self._sale(customer_id=None, customer_name="John Doe")
        assert response.status_code == 201

        unknown = self._sale(customer_id=None, customer_name="Nobody")
        assert unknown.status_code == 422
        assert "customer_name" in unknown.json()["details"]["errors"]

    def test_sale_classification_error(self):
        """Test a misclassified bank target leaves no sale or posting"""
        response = self._sale(
            payment_type="bank",
            debit_target_account_id=self.accounts["AT Rental"]["id"]
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "ERR_ACCOUNT_CLASSIFICATION"
        assert self.client.get("/sales").json()["sales"] == []
        assert self.client.get("/ledger/postings").json()["postings"] == []

    def test_sale_invalid_amount(self):
        """Test a zero amount is rejected with ERR_INVALID_AMOUNT"""
        response = self._sale(amount="0")

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "ERR_INVALID_AMOUNT"
        assert "amount" in body["details"]["errors"]

    def test_sale_numeric_amount(self):
        """Test a sale amount sent as a JSON number"""
        response = self._sale(amount=50.00)

        assert response.status_code == 201
        assert response.json()["amount"] == "50.00"

        fractional = self._sale(amount=19.99)
        assert fractional.json()["amount"] == "19.99"

    def test_expense_numeric_amount(self):
        """Test an expense amount sent as a JSON number"""
        response = self.client.post("/expenses", json={
            "expense_date": "2024-05-11",
            "vendor_id": self.vendor["id"],
            "description": "Oil change",
            "amount": 7.5,
            "payment_type": "cash",
            "debit_account_id": self.accounts["Repair to 3rd Party"]["id"],
        })

        assert response.status_code == 201
        assert response.json()["amount"] == "7.50"

    def test_manual_posting_numeric_amount(self):
        """Test a manual posting amount sent as a JSON number"""
        response = self.client.post("/ledger/postings", json={
            "transaction_date": "2024-05-01",
            "description": "Owner contribution",
            "debit_account_id": self.accounts["Cash"]["id"],
            "credit_account_id": self.accounts["Owner's Equity"]["id"],
            "amount": 250,
        })

        assert response.status_code == 201
        assert response.json()["amount"] == "250.00"

    def test_numeric_amount_still_validated(self):
        """Test a numeric amount below one cent is rejected"""
        response = self._sale(amount=0.001)

        assert response.status_code == 422
        assert response.json()["error_code"] == "ERR_INVALID_AMOUNT"

    def test_request_body_validation(self):
        """Test missing body fields are grouped per field"""
        response = self.client.post("/sales", json={"sale_date": "2024-05-10"})

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "ERR_VALIDATION"
        assert "description" in body["details"]["errors"]
        assert "amount" in body["details"]["errors"]

    def test_delete_sale(self):
        """Test deleting a sale removes it and its posting"""
        sale = self._sale().json()

        response = self.client.delete(f"/sales/{sale['id']}")
        assert response.status_code == 200
        assert response.json()["postings_removed"] == 1

        missing = self.client.get(f"/sales/{sale['id']}")
        assert missing.status_code == 404
        assert missing.json()["error_code"] == "ERR_NOT_FOUND"

    def test_create_expense(self):
        """Test posting a bank expense"""
        response = self.client.post("/expenses", json={
            "expense_date": "2024-05-11",
            "vendor_id": self.vendor["id"],
            "description": "Brake pads",
            "amount": "12.50",
            "payment_type": "bank",
            "debit_account_id": self.accounts["Repair to 3rd Party"]["id"],
            "credit_target_account_id": self.accounts["Bank Account (ACLEDA)"]["id"],
        })

        assert response.status_code == 201
        body = response.json()
        assert body["expense_no"] == "EXP-0001"
        assert body["credit_account_name"] == "Bank Account (ACLEDA)"
        assert body["created_by"] == "guest"
        assert len(self.client.get("/expenses").json()["expenses"]) == 1

    def test_manual_posting(self):
        """Test posting a manual journal entry"""
        response = self.client.post("/ledger/postings", json={
            "transaction_date": "2024-05-01",
            "description": "Owner contribution",
            "debit_account_id": self.accounts["Cash"]["id"],
            "credit_account_id": self.accounts["Owner's Equity"]["id"],
            "amount": "500",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["transaction_no"] == "GL-001"
        assert body["amount"] == "500.00"
        assert body["origin"] == "manual"
        assert self.client.get(f"/ledger/postings/{body['id']}").json()["debit_account_name"] == "Cash"
        assert self.client.get("/ledger/postings/99").status_code == 404

    def test_trial_balance(self):
        """Test the trial balance endpoint after one sale"""
        self._sale()

        response = self.client.get("/reports/trial-balance", params={"as_of_date": "2024-05-31"})
        assert response.status_code == 200
        body = response.json()
        lines = {line["account_name"]: line for line in body["lines"]}

        assert body["as_of_date"] == "2024-05-31"
        assert lines["Cash"]["debit_balance"] == "50.00"
        assert lines["AT Rental"]["credit_balance"] == "50.00"
        assert body["total_debit"] == body["total_credit"] == "50.00"
        assert body["balanced"] is True

    def test_trial_balance_bad_date(self):
        """Test an unparseable cutoff date is a field error"""
        response = self.client.get("/reports/trial-balance", params={"as_of_date": "soon"})
        assert response.status_code == 422
        assert "as_of_date" in response.json()["details"]["errors"]

    def test_account_ledger(self):
        """Test the account ledger opening and running balances"""
        self._sale()
        self._sale(sale_date="2024-05-12", amount="20.00")
        cash_id = self.accounts["Cash"]["id"]

        body = self.client.get(f"/accounts/{cash_id}/ledger", params={"start_date": "2024-05-11"}).json()
        assert body["opening_balance"] == "50.00"
        assert [line["balance"] for line in body["lines"]] == ["70.00"]
        assert body["closing_balance"] == "70.00"

    def test_reclassify_account_in_use(self):
        """Test an account with postings cannot change type"""
        self._sale()
        cash_id = self.accounts["Cash"]["id"]

        response = self.client.put(f"/accounts/{cash_id}/type", json={"type": "Expense"})
        assert response.status_code == 409
        assert response.json()["error_code"] == "ERR_ACCOUNT_IN_USE"

    @pytest.mark.parametrize("path", ["/accounts/999", "/no-such-route"])
    def test_not_found_shape(self, path):
        """Test not-found responses use the standard error body"""
        response = self.client.get(path)
        assert response.status_code == 404
        assert set(response.json()) == {"error_code", "message", "details"}
