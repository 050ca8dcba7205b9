"""
Chart of Accounts Module

Registry of the ledger accounts the posting engine books against. Each
account has a unique name and one of the five classic account types.
Bank accounts are identified by an explicit flag when set, and otherwise
by the "Bank" naming convention on Asset accounts.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from enum import Enum

from .storage import StorageInterface, StorageRecord, UniqueViolation
from .audit import AuditTrail, AuditEventType
from .errors import RecordNotFound, ValidationError
from .logging_config import get_logger, log_action


class AccountType(Enum):
    """Account types for double-entry bookkeeping"""
    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSE = "Expense"

    @property
    def is_debit_normal(self) -> bool:
        """Assets and expenses carry their balance on the debit side"""
        return self in (AccountType.ASSET, AccountType.EXPENSE)


@dataclass
class Account(StorageRecord):
    """Ledger account in the chart of accounts"""
    name: str
    type: AccountType
    description: Optional[str] = None
    bank_account: Optional[bool] = None  # None: fall back to the name convention

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError.for_field("name", "Account name is required")
        if len(self.name) > 255:
            raise ValidationError.for_field("name", "Account name may not exceed 255 characters")

    def is_bank_asset(self, marker: str = "Bank") -> bool:
        """True if this account may receive or pay bank settlements"""
        if self.type != AccountType.ASSET:
            return False
        if self.bank_account is not None:
            return self.bank_account
        return marker in self.name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        if isinstance(data.get('type'), str):
            data['type'] = AccountType(data['type'])
        return super().from_dict(data)


# Default chart for the rental business: (name, type)
DEFAULT_CHART_OF_ACCOUNTS = [
    # Assets and liabilities
    ("Cash", AccountType.ASSET),
    ("Bank Account (ABA)", AccountType.ASSET),
    ("Bank Account (ACLEDA)", AccountType.ASSET),
    ("Accounts Receivable", AccountType.ASSET),
    ("Supplies (Asset)", AccountType.ASSET),
    ("Accounts Payable", AccountType.LIABILITY),
    ("Notes Payable", AccountType.LIABILITY),
    ("Owner's Equity", AccountType.EQUITY),

    # Motorbike rental income
    ("AT Rental", AccountType.REVENUE),
    ("50cc AT Rental", AccountType.REVENUE),
    ("Big AT Rental", AccountType.REVENUE),
    ("MT Rental", AccountType.REVENUE),
    ("Helmet Income", AccountType.REVENUE),
    ("Repair Income", AccountType.REVENUE),
    ("Oil Income", AccountType.REVENUE),
    ("Gasoline Income", AccountType.REVENUE),
    ("Other Motor Income", AccountType.REVENUE),
    ("Key Income", AccountType.REVENUE),

    # Visa and work permit services
    ("Basic Visa Income", AccountType.REVENUE),
    ("Overstay Income", AccountType.REVENUE),
    ("Visa Express Income", AccountType.REVENUE),
    ("Visa Run Income", AccountType.REVENUE),
    ("Other Visa Income", AccountType.REVENUE),
    ("Basic WP Income", AccountType.REVENUE),
    ("WP Express Income", AccountType.REVENUE),
    ("Other WP Income", AccountType.REVENUE),
    ("Driver License Income", AccountType.REVENUE),

    # Payment and other income
    ("Credit Card Commission Income", AccountType.REVENUE),
    ("ABA Bank Interest Income", AccountType.REVENUE),
    ("ACLEDA Bank Interest Income", AccountType.REVENUE),
    ("House Rental Income", AccountType.REVENUE),
    ("Other Income", AccountType.REVENUE),
    ("Selling Motorbike Income", AccountType.REVENUE),
    ("Motor Compensation Income", AccountType.REVENUE),
    ("Customer Deposit", AccountType.REVENUE),

    # Refunds
    ("Rental Fee Refund", AccountType.EXPENSE),
    ("Visa Fee Refund", AccountType.EXPENSE),
    ("Other Refund", AccountType.EXPENSE),

    # Motorbike expense
    ("Motorbike Goods", AccountType.EXPENSE),
    ("Repair to 3rd Party", AccountType.EXPENSE),
    ("Stock Gasoline", AccountType.EXPENSE),
    ("Helmet Expense", AccountType.EXPENSE),
    ("Other Motor Expense", AccountType.EXPENSE),
    ("Initial Repair", AccountType.EXPENSE),
    ("Motorbike Purchase", AccountType.EXPENSE),

    # Visa and work permit expense
    ("Basic Visa Expense", AccountType.EXPENSE),
    ("Visa Run Expense", AccountType.EXPENSE),
    ("Other Visa Expense", AccountType.EXPENSE),
    ("Basic WP Expense", AccountType.EXPENSE),
    ("Other WP Expense", AccountType.EXPENSE),
    ("Driver License Expense", AccountType.EXPENSE),

    # Labor and welfare
    ("Basic Salary", AccountType.EXPENSE),
    ("Incentive", AccountType.EXPENSE),
    ("Lunch Fee", AccountType.EXPENSE),
    ("NSSF", AccountType.EXPENSE),
    ("Training Expense", AccountType.EXPENSE),

    # Operations
    ("Utilities", AccountType.EXPENSE),
    ("Top-Up Expense", AccountType.EXPENSE),
    ("IT Service Expense", AccountType.EXPENSE),
    ("TAX", AccountType.EXPENSE),
    ("Office Consumable", AccountType.EXPENSE),
    ("Office Equipment", AccountType.EXPENSE),
    ("Material Advertisement Expense", AccountType.EXPENSE),
    ("IT Advertisement Expense", AccountType.EXPENSE),
    ("Renovation Expense", AccountType.EXPENSE),
    ("Customer Deposit Back", AccountType.EXPENSE),
    ("Other Expense", AccountType.EXPENSE),
]


class ChartOfAccounts:
    """
    Chart of accounts registry

    Read model for the posting engine, plus the setup-time operations
    (account creation, default seeding) that populate it.
    """

    TABLE = "accounts"

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: Optional[AuditTrail] = None,
        bank_name_marker: str = "Bank"
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.bank_name_marker = bank_name_marker
        self.logger = get_logger("rental_ledger.accounts")

    def create_account(
        self,
        name: str,
        account_type: AccountType,
        description: Optional[str] = None,
        bank_account: Optional[bool] = None,
        user_id: Optional[str] = None
    ) -> Account:
        """
        Add an account to the chart

        Raises:
            ValidationError: If the name is empty or already taken
        """
        now = datetime.now(timezone.utc)
        account = Account(
            id=None,
            created_at=now,
            updated_at=now,
            name=name.strip() if name else name,
            type=account_type,
            description=description,
            bank_account=bank_account
        )

        with self.storage.atomic():
            try:
                account.id = self.storage.insert(self.TABLE, account.to_dict(), unique_key=account.name)
            except UniqueViolation:
                raise ValidationError.for_field("name", f"Account name '{account.name}' is already taken")

            if self.audit_trail:
                self.audit_trail.log_event(
                    event_type=AuditEventType.ACCOUNT_CREATED,
                    entity_type="account",
                    entity_id=account.id,
                    metadata={"name": account.name, "type": account.type.value},
                    user_id=user_id
                )

        log_action(
            self.logger, "info", f"Account created: {account.name}",
            user_id=user_id, action="create_account", resource=f"account:{account.id}",
            extra={"type": account.type.value}
        )
        return account

    def save_account(self, account: Account) -> None:
        """Persist changes to an existing account"""
        account.updated_at = datetime.now(timezone.utc)
        self.storage.save(self.TABLE, account.id, account.to_dict())

    def resolve_by_id(self, account_id: int) -> Optional[Account]:
        """Get account by id, or None"""
        data = self.storage.load(self.TABLE, account_id)
        if data:
            return Account.from_dict(data)
        return None

    def resolve_by_name(self, name: str) -> Optional[Account]:
        """Get account by exact name, or None"""
        matches = self.storage.find(self.TABLE, {"name": name})
        if matches:
            return Account.from_dict(matches[0])
        return None

    def get_account(self, account_id: int) -> Account:
        """Get account by id, raising RecordNotFound if missing"""
        account = self.resolve_by_id(account_id)
        if account is None:
            raise RecordNotFound("Account", account_id)
        return account

    def list_accounts(self, account_type: Optional[AccountType] = None) -> List[Account]:
        """All accounts, optionally of one type, sorted by name"""
        accounts = [Account.from_dict(data) for data in self.storage.load_all(self.TABLE)]
        if account_type:
            accounts = [a for a in accounts if a.type == account_type]
        return sorted(accounts, key=lambda a: (a.name, a.id))

    def list_by_type(self, account_type: AccountType) -> List[Account]:
        return self.list_accounts(account_type)

    def is_bank_asset(self, account: Account) -> bool:
        return account.is_bank_asset(self.bank_name_marker)

    def seed_defaults(self, user_id: Optional[str] = "system") -> int:
        """
        Populate an empty chart with the default rental-business accounts.

        Returns:
            Number of accounts created (0 if the chart was not empty)
        """
        with self.storage.atomic():
            if self.storage.count(self.TABLE) > 0:
                return 0
            for name, account_type in DEFAULT_CHART_OF_ACCOUNTS:
                self.create_account(name, account_type, user_id=user_id)

        self.logger.info(f"Seeded {len(DEFAULT_CHART_OF_ACCOUNTS)} default accounts")
        return len(DEFAULT_CHART_OF_ACCOUNTS)
