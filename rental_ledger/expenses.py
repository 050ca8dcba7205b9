"""
Expenses Ledger

An expense records what was bought from which vendor and how it was paid.
It is booked as one posting: debit the chosen Expense account, credit Cash
or a bank account. Expenses are always paid, never owed.
"""

from decimal import Decimal
from datetime import date, datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .storage import StorageRecord
from .audit import AuditEventType
from .numbering import EXPENSE_SERIES
from .parties import PartyKind
from .posting_rules import PaymentType, EXPENSE_PAYMENT_TYPES, parse_payment_type
from .subsidiary import SubsidiaryLedger
from .validation import clean_text, parse_amount, parse_date
from .logging_config import log_action


@dataclass
class Expense(StorageRecord):
    """Expense with exactly one linked posting"""
    expense_no: str
    expense_date: date
    vendor_id: int
    description: str
    amount: Decimal
    payment_type: PaymentType
    memo: Optional[str] = None
    created_by: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.expense_date, str):
            self.expense_date = date.fromisoformat(self.expense_date)
        if isinstance(self.amount, str):
            self.amount = Decimal(self.amount)
        if isinstance(self.payment_type, str):
            self.payment_type = PaymentType(self.payment_type)

    @property
    def document_no(self) -> str:
        return self.expense_no

    @property
    def party_id(self) -> int:
        return self.vendor_id


class ExpenseManager(SubsidiaryLedger):
    """Creates, lists and deletes expenses"""

    SERIES = EXPENSE_SERIES
    RESOURCE = "Expense"
    ORIGIN_FIELD = "expense_id"
    PARTY_KIND = PartyKind.VENDOR
    DELETED_EVENT = AuditEventType.EXPENSE_DELETED
    RECORD_CLASS = Expense

    def create_expense(
        self,
        expense_date: Any,
        vendor_id: Optional[int],
        description: str,
        amount: Any,
        payment_type: Any,
        debit_account_id: Optional[int],
        credit_target_account_id: Optional[int] = None,
        memo: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> Expense:
        """
        Record an expense and its posting

        Raises:
            ValidationError: Malformed input, unknown vendor or credit payment
            UnknownAccount: A referenced account does not exist
            InvalidAccountClassification: An account does not fit its role
            MissingCanonicalAccount: Cash payment without a Cash account
            ExhaustedRetries: No free EXP or GL number
        """
        expense_date = parse_date(expense_date, "expense_date")
        description = clean_text(description, "description")
        memo = clean_text(memo, "memo", required=False)
        amount = parse_amount(amount)
        payment_type = parse_payment_type(payment_type, EXPENSE_PAYMENT_TYPES)

        now = datetime.now(timezone.utc)
        with self.storage.atomic():
            vendor = self.parties.require(PartyKind.VENDOR, vendor_id)

            expense = Expense(
                id=None,
                created_at=now,
                updated_at=now,
                expense_no="",
                expense_date=expense_date,
                vendor_id=vendor.id,
                description=description,
                amount=amount,
                payment_type=payment_type,
                memo=memo,
                created_by=created_by
            )

            def build_record(number: str) -> Dict[str, Any]:
                expense.expense_no = number
                return expense.to_dict()

            expense.id, _ = self.numbering.allocate(EXPENSE_SERIES, build_record)

            accounts = self.rules.resolve_expense_posting(
                payment_type, debit_account_id, credit_target_account_id
            )
            posting = self.ledger.post(
                transaction_date=expense_date,
                description=self._posting_description(f"Expense to {vendor.name} for {description}"),
                debit_account_id=accounts.debit_account_id,
                credit_account_id=accounts.credit_account_id,
                amount=amount,
                memo=memo or expense.expense_no,
                expense_id=expense.id,
                created_by=created_by
            )

            if self.audit_trail:
                self.audit_trail.log_event(
                    event_type=AuditEventType.EXPENSE_CREATED,
                    entity_type="expense",
                    entity_id=expense.id,
                    metadata={
                        "expense_no": expense.expense_no,
                        "vendor_id": vendor.id,
                        "amount": amount,
                        "payment_type": payment_type,
                        "transaction_no": posting.transaction_no
                    },
                    user_id=created_by
                )

        log_action(
            self.logger, "info", f"Expense created: {expense.expense_no}",
            user_id=created_by, action="create_expense", resource=f"expense:{expense.id}",
            extra={
                "expense_no": expense.expense_no,
                "amount": str(amount),
                "payment_type": payment_type.value,
                "transaction_no": posting.transaction_no
            }
        )
        return expense
