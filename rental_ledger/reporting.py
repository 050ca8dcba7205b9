"""
Reporting Module

Read-only reports derived fresh from posting history:

- Trial balance as of a cutoff date, one line per account, each account's
  net position shown on its natural side (or the opposite side when the
  balance is inverted).
- Account ledger: opening balance, dated lines with a running balance and
  the closing balance of one account over a date range.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .accounts import Account, AccountType, ChartOfAccounts
from .ledger import GeneralLedger
from .errors import ValidationError
from .validation import ZERO, parse_date


@dataclass
class TrialBalanceLine:
    """One account's line in a trial balance"""
    account_id: int
    account_name: str
    account_type: AccountType
    debit_balance: Decimal
    credit_balance: Decimal

    @property
    def is_anomalous(self) -> bool:
        """True when the balance sits on the account's non-natural side"""
        if self.account_type.is_debit_normal:
            return self.credit_balance > ZERO
        return self.debit_balance > ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "account_name": self.account_name,
            "account_type": self.account_type.value,
            "debit_balance": str(self.debit_balance),
            "credit_balance": str(self.credit_balance),
            "anomalous": self.is_anomalous,
        }


@dataclass
class TrialBalance:
    as_of_date: date
    lines: List[TrialBalanceLine]

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit_balance for line in self.lines), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit_balance for line in self.lines), ZERO)

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit

    def line_for(self, account_name: str) -> Optional[TrialBalanceLine]:
        for line in self.lines:
            if line.account_name == account_name:
                return line
        return None


@dataclass
class AccountLedgerLine:
    posting_id: int
    transaction_no: str
    transaction_date: date
    description: str
    memo: Optional[str]
    debit: Decimal
    credit: Decimal
    balance: Decimal


@dataclass
class AccountLedger:
    """Activity of one account over a date range"""
    account: Account
    start_date: Optional[date]
    end_date: Optional[date]
    opening_balance: Decimal
    lines: List[AccountLedgerLine] = field(default_factory=list)

    @property
    def closing_balance(self) -> Decimal:
        return self.lines[-1].balance if self.lines else self.opening_balance

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)


def natural_balance(account_type: AccountType, debit: Decimal, credit: Decimal) -> Decimal:
    """Signed balance in the account's natural direction"""
    if account_type.is_debit_normal:
        return debit - credit
    return credit - debit


def normalize(account_type: AccountType, raw_debit: Decimal, raw_credit: Decimal) -> Tuple[Decimal, Decimal]:
    """
    Place an account's net position on one side

    Returns:
        (debit_balance, credit_balance), at most one of them non-zero
    """
    net = raw_debit - raw_credit
    if account_type.is_debit_normal:
        if net >= ZERO:
            return net, ZERO
        return ZERO, abs(net)
    if net <= ZERO:
        return ZERO, abs(net)
    return net, ZERO


class TrialBalanceReporter:
    """Aggregates postings per account"""

    def __init__(self, chart: ChartOfAccounts, ledger: GeneralLedger):
        self.chart = chart
        self.ledger = ledger

    def as_of(self, cutoff_date: Optional[Any] = None) -> TrialBalance:
        """
        Trial balance including every posting dated on or before the cutoff

        Args:
            cutoff_date: Inclusive cutoff (date or ISO string), today when omitted

        Returns:
            TrialBalance with one line per account, sorted by account name
        """
        if cutoff_date is None:
            cutoff_date = date.today()
        else:
            cutoff_date = parse_date(cutoff_date, "as_of_date")

        accounts = self.chart.list_accounts()
        raw_debit = {account.id: ZERO for account in accounts}
        raw_credit = {account.id: ZERO for account in accounts}

        for posting in self.ledger.list_up_to(cutoff_date):
            if posting.debit_account_id in raw_debit:
                raw_debit[posting.debit_account_id] += posting.amount
            if posting.credit_account_id in raw_credit:
                raw_credit[posting.credit_account_id] += posting.amount

        lines = []
        for account in accounts:
            debit_balance, credit_balance = normalize(
                account.type, raw_debit[account.id], raw_credit[account.id]
            )
            lines.append(TrialBalanceLine(
                account_id=account.id,
                account_name=account.name,
                account_type=account.type,
                debit_balance=debit_balance,
                credit_balance=credit_balance
            ))

        return TrialBalance(as_of_date=cutoff_date, lines=lines)

    def account_ledger(
        self,
        account_id: int,
        start_date: Optional[Any] = None,
        end_date: Optional[Any] = None
    ) -> AccountLedger:
        """
        Ledger card of one account

        Args:
            account_id: Account to report on
            start_date: First day shown; earlier postings fold into the opening balance
            end_date: Last day shown (inclusive)

        Raises:
            RecordNotFound: If the account does not exist
            ValidationError: If start_date is after end_date
        """
        account = self.chart.get_account(account_id)
        start = parse_date(start_date, "start_date") if start_date is not None else None
        end = parse_date(end_date, "end_date") if end_date is not None else None
        if start and end and start > end:
            raise ValidationError.for_field("end_date", "The end date must not be before the start date.")

        opening = ZERO
        report = AccountLedger(account=account, start_date=start, end_date=end, opening_balance=ZERO)
        balance = opening

        for posting in self.ledger.postings_for_account(account_id, end_date=end):
            debit, credit = posting.split_for(account_id)
            if start and posting.transaction_date < start:
                opening += natural_balance(account.type, debit, credit)
                balance = opening
                continue
            balance += natural_balance(account.type, debit, credit)
            report.lines.append(AccountLedgerLine(
                posting_id=posting.id,
                transaction_no=posting.transaction_no,
                transaction_date=posting.transaction_date,
                description=posting.description,
                memo=posting.memo,
                debit=debit,
                credit=credit,
                balance=balance
            ))

        report.opening_balance = opening
        return report
