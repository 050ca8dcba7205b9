"""
Sales Ledger

A sale records who bought what, for how much and how it was paid, and is
booked to the general ledger as one posting: debit Cash or a bank account,
credit the chosen Revenue account. The sale row and its posting are
written in one atomic unit.
"""

from decimal import Decimal
from datetime import date, datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .storage import StorageRecord
from .audit import AuditEventType
from .numbering import SALE_SERIES
from .parties import PartyKind
from .posting_rules import PaymentType, SALE_PAYMENT_TYPES, parse_payment_type
from .subsidiary import SubsidiaryLedger
from .validation import clean_text, parse_amount, parse_date
from .logging_config import log_action


@dataclass
class Sale(StorageRecord):
    """Sale with exactly one linked posting"""
    sale_no: str
    sale_date: date
    customer_id: int
    description: str
    amount: Decimal
    payment_type: PaymentType
    memo: Optional[str] = None
    created_by: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.sale_date, str):
            self.sale_date = date.fromisoformat(self.sale_date)
        if isinstance(self.amount, str):
            self.amount = Decimal(self.amount)
        if isinstance(self.payment_type, str):
            self.payment_type = PaymentType(self.payment_type)

    @property
    def document_no(self) -> str:
        return self.sale_no

    @property
    def party_id(self) -> int:
        return self.customer_id


class SaleManager(SubsidiaryLedger):
    """Creates, lists and deletes sales"""

    SERIES = SALE_SERIES
    RESOURCE = "Sale"
    ORIGIN_FIELD = "sale_id"
    PARTY_KIND = PartyKind.CUSTOMER
    DELETED_EVENT = AuditEventType.SALE_DELETED
    RECORD_CLASS = Sale

    def create_sale(
        self,
        sale_date: Any,
        customer_id: Optional[int],
        description: str,
        amount: Any,
        payment_type: Any,
        credit_account_id: Optional[int],
        debit_target_account_id: Optional[int] = None,
        memo: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> Sale:
        """
        Record a sale and its posting

        Args:
            sale_date: Date of sale (also the posting date)
            customer_id: Resolved customer id
            description: What was sold
            amount: Sale amount, at least 0.01
            payment_type: cash, bank or credit
            credit_account_id: Revenue account credited
            debit_target_account_id: Bank account debited for bank/credit sales
            memo: Reference; the posting memo defaults to the sale number
            created_by: Caller identity

        Returns:
            The persisted Sale

        Raises:
            ValidationError: Malformed input or unknown customer
            UnknownAccount: A referenced account does not exist
            InvalidAccountClassification: An account does not fit its role
            MissingCanonicalAccount: Cash sale without a Cash account
            ExhaustedRetries: No free SALE or GL number
        """
        sale_date = parse_date(sale_date, "sale_date")
        description = clean_text(description, "description")
        memo = clean_text(memo, "memo", required=False)
        amount = parse_amount(amount)
        payment_type = parse_payment_type(payment_type, SALE_PAYMENT_TYPES)

        now = datetime.now(timezone.utc)
        with self.storage.atomic():
            customer = self.parties.require(PartyKind.CUSTOMER, customer_id)

            sale = Sale(
                id=None,
                created_at=now,
                updated_at=now,
                sale_no="",
                sale_date=sale_date,
                customer_id=customer.id,
                description=description,
                amount=amount,
                payment_type=payment_type,
                memo=memo,
                created_by=created_by
            )

            def build_record(number: str) -> Dict[str, Any]:
                sale.sale_no = number
                return sale.to_dict()

            sale.id, _ = self.numbering.allocate(SALE_SERIES, build_record)

            accounts = self.rules.resolve_sale_posting(
                payment_type, credit_account_id, debit_target_account_id
            )
            posting = self.ledger.post(
                transaction_date=sale_date,
                description=self._posting_description(f"Sale to {customer.name} - {description}"),
                debit_account_id=accounts.debit_account_id,
                credit_account_id=accounts.credit_account_id,
                amount=amount,
                memo=memo or sale.sale_no,
                sale_id=sale.id,
                created_by=created_by
            )

            if self.audit_trail:
                self.audit_trail.log_event(
                    event_type=AuditEventType.SALE_CREATED,
                    entity_type="sale",
                    entity_id=sale.id,
                    metadata={
                        "sale_no": sale.sale_no,
                        "customer_id": customer.id,
                        "amount": amount,
                        "payment_type": payment_type,
                        "transaction_no": posting.transaction_no
                    },
                    user_id=created_by
                )

        log_action(
            self.logger, "info", f"Sale created: {sale.sale_no}",
            user_id=created_by, action="create_sale", resource=f"sale:{sale.id}",
            extra={
                "sale_no": sale.sale_no,
                "amount": str(amount),
                "payment_type": payment_type.value,
                "transaction_no": posting.transaction_no
            }
        )
        return sale
