"""
General Ledger Module

Append-only store of postings. Every posting moves one amount from a
credit account to a debit account, so the ledger is balanced by
construction. A posting is never edited; it disappears only when the sale
or expense it originated from is deleted.
"""

from decimal import Decimal
from datetime import date, datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .storage import StorageInterface, StorageRecord
from .audit import AuditTrail, AuditEventType
from .accounts import AccountType, ChartOfAccounts
from .numbering import DocumentNumberGenerator, GL_SERIES
from .errors import AccountInUse, InvalidAmount, UnknownAccount, ValidationError
from .validation import ZERO, clean_text, parse_amount, parse_date
from .logging_config import get_logger, log_action


@dataclass
class Posting(StorageRecord):
    """
    One double-entry ledger transaction
    Debits exactly one account and credits exactly one other account
    """
    transaction_no: str
    transaction_date: date
    description: str
    debit_account_id: int
    credit_account_id: int
    amount: Decimal
    memo: Optional[str] = None
    sale_id: Optional[int] = None
    expense_id: Optional[int] = None
    created_by: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.amount, (str, int)):
            self.amount = Decimal(str(self.amount))
        if isinstance(self.transaction_date, str):
            self.transaction_date = date.fromisoformat(self.transaction_date)

        if self.debit_account_id == self.credit_account_id:
            raise ValidationError.for_field(
                "credit_account_id", "The debit and credit accounts must be different."
            )
        if self.amount <= ZERO:
            raise InvalidAmount("The amount must be greater than zero.")
        if self.sale_id is not None and self.expense_id is not None:
            raise ValidationError("A posting originates from a sale or an expense, not both.")

    @property
    def origin(self) -> str:
        """sale, expense or manual"""
        if self.sale_id is not None:
            return "sale"
        if self.expense_id is not None:
            return "expense"
        return "manual"

    def touches(self, account_id: int) -> bool:
        return account_id in (self.debit_account_id, self.credit_account_id)

    def split_for(self, account_id: int) -> Tuple[Decimal, Decimal]:
        """(debit, credit) amounts this posting books to the given account"""
        debit = self.amount if self.debit_account_id == account_id else ZERO
        credit = self.amount if self.credit_account_id == account_id else ZERO
        return debit, credit


class GeneralLedger:
    """
    General ledger that records postings and answers queries over them
    Balances are derived from postings, never stored separately
    """

    TABLE = GL_SERIES.table

    def __init__(
        self,
        storage: StorageInterface,
        chart: ChartOfAccounts,
        numbering: DocumentNumberGenerator,
        audit_trail: Optional[AuditTrail] = None
    ):
        self.storage = storage
        self.chart = chart
        self.numbering = numbering
        self.audit_trail = audit_trail
        self.logger = get_logger("rental_ledger.ledger")

    def post(
        self,
        transaction_date: Any,
        description: str,
        debit_account_id: Optional[int],
        credit_account_id: Optional[int],
        amount: Any,
        memo: Optional[str] = None,
        sale_id: Optional[int] = None,
        expense_id: Optional[int] = None,
        created_by: Optional[str] = None
    ) -> Posting:
        """
        Record a balanced posting under a fresh GL number

        Number allocation and persistence happen in one atomic unit; when
        called inside an enclosing unit (sale/expense creation) they join it.

        Args:
            transaction_date: Date the posting takes effect
            description: Human-readable description
            debit_account_id: Account debited
            credit_account_id: Account credited
            amount: Positive amount, rounded to cents
            memo: Optional reference
            sale_id: Originating sale, if any
            expense_id: Originating expense, if any
            created_by: Caller identity

        Returns:
            The persisted Posting

        Raises:
            ValidationError: Malformed input or identical accounts
            InvalidAmount: Amount below 0.01
            UnknownAccount: An account id is not in the chart
            ExhaustedRetries: No free GL number could be allocated
        """
        transaction_date = parse_date(transaction_date, "transaction_date")
        description = clean_text(description, "description")
        memo = clean_text(memo, "memo", required=False)
        amount = parse_amount(amount)
        for field, account_id in (("debit_account_id", debit_account_id),
                                  ("credit_account_id", credit_account_id)):
            if account_id is None:
                raise ValidationError.for_field(field, f"The {field.split('_')[0]} account is required.")

        now = datetime.now(timezone.utc)
        posting = Posting(
            id=None,
            created_at=now,
            updated_at=now,
            transaction_no="",
            transaction_date=transaction_date,
            description=description,
            debit_account_id=debit_account_id,
            credit_account_id=credit_account_id,
            amount=amount,
            memo=memo,
            sale_id=sale_id,
            expense_id=expense_id,
            created_by=created_by
        )

        with self.storage.atomic():
            for field, account_id in (("debit_account_id", debit_account_id),
                                      ("credit_account_id", credit_account_id)):
                if self.chart.resolve_by_id(account_id) is None:
                    raise UnknownAccount(account_id, field=field)

            def build_record(number: str) -> Dict[str, Any]:
                posting.transaction_no = number
                return posting.to_dict()

            posting.id, _ = self.numbering.allocate(GL_SERIES, build_record)

            if self.audit_trail:
                self.audit_trail.log_event(
                    event_type=AuditEventType.POSTING_CREATED,
                    entity_type="posting",
                    entity_id=posting.id,
                    metadata={
                        "transaction_no": posting.transaction_no,
                        "debit_account_id": debit_account_id,
                        "credit_account_id": credit_account_id,
                        "amount": amount,
                        "origin": posting.origin
                    },
                    user_id=created_by
                )

        log_action(
            self.logger, "info", f"Posting created: {posting.transaction_no}",
            user_id=created_by, action="create_posting", resource=f"posting:{posting.id}",
            extra={
                "transaction_no": posting.transaction_no,
                "amount": str(amount),
                "debit_account_id": debit_account_id,
                "credit_account_id": credit_account_id,
                "origin": posting.origin
            }
        )
        return posting

    def get_posting(self, posting_id: int) -> Optional[Posting]:
        """Get posting by id"""
        data = self.storage.load(self.TABLE, posting_id)
        if data:
            return Posting.from_dict(data)
        return None

    def find_by_transaction_no(self, transaction_no: str) -> Optional[Posting]:
        matches = self.storage.find(self.TABLE, {"transaction_no": transaction_no})
        if matches:
            return Posting.from_dict(matches[0])
        return None

    def postings_for_origin(self, sale_id: Optional[int] = None,
                            expense_id: Optional[int] = None) -> List[Posting]:
        """Postings linked to a sale or an expense"""
        if (sale_id is None) == (expense_id is None):
            raise ValueError("Exactly one of sale_id or expense_id is required")
        filters = {"sale_id": sale_id} if sale_id is not None else {"expense_id": expense_id}
        return [Posting.from_dict(data) for data in self.storage.find(self.TABLE, filters)]

    def list_all(self) -> List[Posting]:
        """All postings, newest first"""
        postings = [Posting.from_dict(data) for data in self.storage.load_all(self.TABLE)]
        postings.sort(key=lambda p: p.id, reverse=True)
        return postings

    def list_up_to(self, cutoff_date: date) -> List[Posting]:
        """Postings dated on or before the cutoff, in id order"""
        postings = [Posting.from_dict(data) for data in self.storage.load_all(self.TABLE)]
        return [p for p in postings if p.transaction_date <= cutoff_date]

    def postings_for_account(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Posting]:
        """Postings touching an account within an inclusive date range, by (date, id)"""
        postings = [
            Posting.from_dict(data) for data in self.storage.load_all(self.TABLE)
        ]
        postings = [p for p in postings if p.touches(account_id)]
        if start_date:
            postings = [p for p in postings if p.transaction_date >= start_date]
        if end_date:
            postings = [p for p in postings if p.transaction_date <= end_date]
        postings.sort(key=lambda p: (p.transaction_date, p.id))
        return postings

    def delete_for_origin(
        self,
        sale_id: Optional[int] = None,
        expense_id: Optional[int] = None,
        user_id: Optional[str] = None
    ) -> int:
        """
        Hard-delete the postings of a sale or an expense

        Returns:
            Number of postings removed
        """
        with self.storage.atomic():
            postings = self.postings_for_origin(sale_id=sale_id, expense_id=expense_id)
            for posting in postings:
                self.storage.delete(self.TABLE, posting.id)
                if self.audit_trail:
                    self.audit_trail.log_event(
                        event_type=AuditEventType.POSTING_DELETED,
                        entity_type="posting",
                        entity_id=posting.id,
                        metadata={
                            "transaction_no": posting.transaction_no,
                            "amount": posting.amount,
                            "origin": posting.origin
                        },
                        user_id=user_id
                    )

        for posting in postings:
            log_action(
                self.logger, "info", f"Posting deleted: {posting.transaction_no}",
                user_id=user_id, action="delete_posting", resource=f"posting:{posting.id}",
                extra={"transaction_no": posting.transaction_no, "origin": posting.origin}
            )
        return len(postings)

    def reclassify_account(self, account_id: int, new_type: AccountType,
                           user_id: Optional[str] = None):
        """
        Change an account's type while no posting references it

        Raises:
            RecordNotFound: If the account does not exist
            AccountInUse: If postings already reference the account
        """
        with self.storage.atomic():
            account = self.chart.get_account(account_id)
            if account.type == new_type:
                return account

            in_use = len(self.postings_for_account(account_id))
            if in_use:
                log_action(
                    self.logger, "warning", f"Reclassification of account {account.name} rejected",
                    user_id=user_id, action="reclassify_account", resource=f"account:{account_id}",
                    extra={"postings": in_use, "requested_type": new_type.value}
                )
                raise AccountInUse(account_id, in_use)

            previous_type = account.type
            account.type = new_type
            self.chart.save_account(account)

            if self.audit_trail:
                self.audit_trail.log_event(
                    event_type=AuditEventType.ACCOUNT_RECLASSIFIED,
                    entity_type="account",
                    entity_id=account_id,
                    metadata={"from": previous_type, "to": new_type},
                    user_id=user_id
                )

        return account
