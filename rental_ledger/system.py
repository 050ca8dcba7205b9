"""
Ledger System Composition

Wires storage, audit trail, chart of accounts, numbering, posting rules,
ledger, subsidiary ledgers and reports into one object.
"""

from typing import Optional

from .storage import StorageInterface, create_storage
from .audit import AuditTrail
from .accounts import ChartOfAccounts
from .numbering import DocumentNumberGenerator
from .posting_rules import PostingRules
from .ledger import GeneralLedger
from .parties import PartyDirectory
from .sales import SaleManager
from .expenses import ExpenseManager
from .reporting import TrialBalanceReporter
from .config import LedgerConfig, get_config
from .logging_config import get_logger


class LedgerSystem:
    """Posting and reporting engine with all components initialized"""

    def __init__(self, config: Optional[LedgerConfig] = None,
                 storage: Optional[StorageInterface] = None):
        self.config = config or get_config()
        self.logger = get_logger("rental_ledger.system")

        # Initialize storage
        if storage is None:
            storage = create_storage(self.config.database_url, timeout=self.config.sqlite_timeout_seconds)
        self.storage = storage

        # Initialize core components
        self.audit_trail = AuditTrail(self.storage) if self.config.enable_audit_logging else None
        self.chart = ChartOfAccounts(self.storage, self.audit_trail, self.config.bank_name_marker)
        self.numbering = DocumentNumberGenerator(self.storage, self.config.document_number_max_attempts)
        self.rules = PostingRules(self.chart, self.config.cash_account_name)
        self.ledger = GeneralLedger(self.storage, self.chart, self.numbering, self.audit_trail)
        self.parties = PartyDirectory(self.storage)

        self.sales = SaleManager(
            self.storage, self.ledger, self.rules, self.parties, self.numbering, self.audit_trail
        )
        self.expenses = ExpenseManager(
            self.storage, self.ledger, self.rules, self.parties, self.numbering, self.audit_trail
        )
        self.reports = TrialBalanceReporter(self.chart, self.ledger)

        if self.config.seed_chart_of_accounts:
            self.chart.seed_defaults()

        self.logger.info(f"Ledger system ready ({type(self.storage).__name__})")

    def close(self) -> None:
        self.storage.close()
