"""
Tests for the ledger system on a SQLite database file

Covers units of work, rollback and concurrent writers sharing one file.
"""

import pytest
import tempfile
import threading
from decimal import Decimal
from pathlib import Path

from rental_ledger.accounts import DEFAULT_CHART_OF_ACCOUNTS
from rental_ledger.config import LedgerConfig
from rental_ledger.errors import InvalidAccountClassification
from rental_ledger.system import LedgerSystem


class TestSQLiteLedger:
    """Sales, expenses and reports persisted to a database file"""

    def setup_method(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = Path(self.temp_dir.name) / "ledger.db"
        self.systems = []
        self.system = self._open()
        self.customer = self.system.parties.register("customer", "John Doe")
        self.vendor = self.system.parties.register("vendor", "Sokha Garage")
        self.rental = self.system.chart.resolve_by_name("AT Rental")
        self.repair = self.system.chart.resolve_by_name("Repair to 3rd Party")

    def teardown_method(self):
        for system in self.systems:
            system.close()
        self.temp_dir.cleanup()

    def _open(self) -> LedgerSystem:
        system = LedgerSystem(LedgerConfig(database_url=f"sqlite:///{self.db_path}"))
        self.systems.append(system)
        return system

    def _counts(self, system=None):
        storage = (system or self.system).storage
        return storage.count("sales"), storage.count("postings")

    def test_sale_and_expense_units(self):
        """Test a cash sale and a cash expense each write one linked posting"""
        sale = self.system.sales.create_sale(
            "2024-05-10", self.customer.id, "Scooter rental", "50.00", "cash", self.rental.id
        )
        expense = self.system.expenses.create_expense(
            "2024-05-11", self.vendor.id, "Brake pads", "12.50", "cash", self.repair.id
        )

        assert sale.sale_no == "SALE-0001"
        assert expense.expense_no == "EXP-0001"
        assert self.system.sales.posting_for(sale).transaction_no == "GL-001"
        assert self.system.expenses.posting_for(expense).transaction_no == "GL-002"

        report = self.system.reports.as_of("2024-05-31")
        assert report.line_for("Cash").debit_balance == Decimal("37.50")
        assert report.line_for("AT Rental").credit_balance == Decimal("50.00")
        assert report.line_for("Repair to 3rd Party").debit_balance == Decimal("12.50")
        assert report.is_balanced

    def test_rolled_back_sale_leaves_nothing(self):
        """Test a rejected bank sale leaves no sale, posting or used number"""
        with pytest.raises(InvalidAccountClassification):
            self.system.sales.create_sale(
                "2024-05-10", self.customer.id, "Scooter rental", "50.00", "bank",
                self.rental.id, debit_target_account_id=self.rental.id
            )
        assert self._counts() == (0, 0)

        sale = self.system.sales.create_sale(
            "2024-05-10", self.customer.id, "Scooter rental", "50.00", "cash", self.rental.id
        )
        assert sale.sale_no == "SALE-0001"
        assert self.system.sales.posting_for(sale).transaction_no == "GL-001"
        assert self.system.audit_trail.verify_integrity()["valid"]

    def test_reopen_keeps_data_without_reseeding(self):
        """Test a second system on the same file sees committed data"""
        self.system.sales.create_sale(
            "2024-05-10", self.customer.id, "Scooter rental", "50.00", "cash", self.rental.id
        )
        self.system.close()
        self.systems.remove(self.system)

        reopened = self._open()
        assert len(reopened.chart.list_accounts()) == len(DEFAULT_CHART_OF_ACCOUNTS)
        assert [s.sale_no for s in reopened.sales.list()] == ["SALE-0001"]
        assert reopened.parties.resolve_id("customer", name="John Doe") == self.customer.id

    def test_two_systems_racing_on_one_file(self):
        """Test concurrent sales from two systems receive unique numbers"""
        other = self._open()
        sales = []
        errors = []
        lock = threading.Lock()

        def worker(system):
            try:
                for _ in range(15):
                    sale = system.sales.create_sale(
                        "2024-05-10", self.customer.id, "Helmet", "5.00", "cash", self.rental.id
                    )
                    with lock:
                        sales.append((system, sale))
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=worker, args=(system,))
            for system in (self.system, other, self.system, other)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(sales) == 60

        sale_numbers = {sale.sale_no for _, sale in sales}
        gl_numbers = {system.sales.posting_for(sale).transaction_no for system, sale in sales}
        assert len(sale_numbers) == 60
        assert len(gl_numbers) == 60
        assert self._counts(other) == (60, 60)

        report = other.reports.as_of("2024-05-31")
        assert report.line_for("Cash").debit_balance == Decimal("300.00")
        assert other.audit_trail.verify_integrity()["valid"]
