"""
Posting Rules Engine

Decides which accounts a business event debits and credits, and enforces
the account-type rules of each role:

- Sale: the credit account is a Revenue account chosen by the caller; the
  debit account is the canonical Cash account for cash sales, or a bank
  Asset account chosen by the caller for bank and credit sales.
- Expense: the debit account is an Expense account chosen by the caller;
  the credit account is Cash for cash payments, or a bank Asset account
  chosen by the caller for bank payments.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Optional

from .accounts import Account, AccountType, ChartOfAccounts
from .errors import (
    InvalidAccountClassification, MissingCanonicalAccount, UnknownAccount, ValidationError
)
from .logging_config import get_logger, log_action


class PaymentType(Enum):
    """How a sale was settled or an expense was paid"""
    CASH = "cash"
    BANK = "bank"
    CREDIT = "credit"


SALE_PAYMENT_TYPES: FrozenSet[PaymentType] = frozenset(
    {PaymentType.CASH, PaymentType.BANK, PaymentType.CREDIT}
)
# Expenses are assumed paid, never owed
EXPENSE_PAYMENT_TYPES: FrozenSet[PaymentType] = frozenset({PaymentType.CASH, PaymentType.BANK})


@dataclass(frozen=True)
class PostingAccounts:
    """Resolved debit/credit pair for one posting"""
    debit_account_id: int
    credit_account_id: int


def parse_payment_type(value: Any, allowed: FrozenSet[PaymentType]) -> PaymentType:
    """Coerce a raw payment type, rejecting values outside the allowed set"""
    try:
        payment_type = value if isinstance(value, PaymentType) else PaymentType(value)
    except ValueError:
        payment_type = None

    if payment_type not in allowed:
        choices = ", ".join(sorted(p.value for p in allowed))
        raise ValidationError.for_field(
            "payment_type", f"The payment type must be one of: {choices}."
        )
    return payment_type


class PostingRules:
    """Resolves and validates the accounts of sale and expense postings"""

    def __init__(self, chart: ChartOfAccounts, cash_account_name: str = "Cash"):
        self.chart = chart
        self.cash_account_name = cash_account_name
        self.logger = get_logger("rental_ledger.posting_rules")

    def cash_account(self) -> Account:
        """
        The canonical Cash account

        Raises:
            MissingCanonicalAccount: If the chart has no account of that name
        """
        account = self.chart.resolve_by_name(self.cash_account_name)
        if account is None:
            self.logger.error(f"Canonical account '{self.cash_account_name}' is missing from the chart")
            raise MissingCanonicalAccount(self.cash_account_name)
        return account

    def _require_account(self, account_id: Optional[int], field: str, label: str) -> Account:
        if account_id is None:
            raise ValidationError.for_field(field, f"The {label} account is required.")
        account = self.chart.resolve_by_id(account_id)
        if account is None:
            raise UnknownAccount(account_id, field=field)
        return account

    def _reject(self, message: str, account: Account, role: str) -> None:
        log_action(
            self.logger, "warning", message,
            action="classify_account", resource=f"account:{account.id}",
            extra={"role": role, "account_name": account.name, "account_type": account.type.value}
        )
        raise InvalidAccountClassification(message, account_id=account.id, role=role)

    def _require_bank_asset(self, account_id: Optional[int], field: str, role: str) -> Account:
        account = self._require_account(account_id, field, "bank")
        if not self.chart.is_bank_asset(account):
            self._reject(
                f"Account '{account.name}' must be a valid Bank Asset account for bank payments.",
                account, role
            )
        return account

    def _require_type(self, account_id: Optional[int], field: str, role: str,
                      account_type: AccountType) -> Account:
        account = self._require_account(account_id, field, role)
        if account.type != account_type:
            self._reject(
                f"Account '{account.name}' is a {account.type.value} account; "
                f"please select a {account_type.value} type account.",
                account, role
            )
        return account

    def resolve_sale_posting(
        self,
        payment_type: Any,
        credit_account_id: Optional[int],
        debit_target_account_id: Optional[int] = None
    ) -> PostingAccounts:
        """
        Resolve the accounts of a sale posting

        Args:
            payment_type: cash, bank or credit
            credit_account_id: Revenue account credited by the sale
            debit_target_account_id: Bank account debited for bank/credit sales

        Raises:
            ValidationError: Unknown payment type or missing bank account
            UnknownAccount: A referenced account does not exist
            InvalidAccountClassification: An account does not fit its role
            MissingCanonicalAccount: Cash sale without a Cash account
        """
        payment_type = parse_payment_type(payment_type, SALE_PAYMENT_TYPES)

        if payment_type == PaymentType.CASH:
            debit = self.cash_account()
        else:
            debit = self._require_bank_asset(
                debit_target_account_id, "debit_target_account_id", "sale_debit"
            )

        credit = self._require_type(
            credit_account_id, "credit_account_id", "credit", AccountType.REVENUE
        )
        return PostingAccounts(debit_account_id=debit.id, credit_account_id=credit.id)

    def resolve_expense_posting(
        self,
        payment_type: Any,
        debit_account_id: Optional[int],
        credit_target_account_id: Optional[int] = None
    ) -> PostingAccounts:
        """
        Resolve the accounts of an expense posting

        Args:
            payment_type: cash or bank
            debit_account_id: Expense account debited
            credit_target_account_id: Bank account credited for bank payments
        """
        payment_type = parse_payment_type(payment_type, EXPENSE_PAYMENT_TYPES)

        debit = self._require_type(
            debit_account_id, "debit_account_id", "debit", AccountType.EXPENSE
        )

        if payment_type == PaymentType.CASH:
            credit = self.cash_account()
        else:
            credit = self._require_bank_asset(
                credit_target_account_id, "credit_target_account_id", "expense_credit"
            )
        return PostingAccounts(debit_account_id=debit.id, credit_account_id=credit.id)
