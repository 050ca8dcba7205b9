"""
Subsidiary Ledger Base

Shared read and delete operations for the sale and expense ledgers. Each
subsidiary record owns exactly one posting in the general ledger; deleting
the record hard-deletes that posting in the same unit of work.
"""

from typing import Any, Dict, List, Optional

from .storage import StorageInterface
from .audit import AuditTrail, AuditEventType
from .ledger import GeneralLedger, Posting
from .numbering import DocumentNumberGenerator, NumberSeries
from .parties import PartyDirectory, PartyKind
from .posting_rules import PostingRules
from .errors import RecordNotFound
from .validation import MAX_TEXT_LENGTH
from .logging_config import get_logger, log_action


class SubsidiaryLedger:
    """Common plumbing of SaleManager and ExpenseManager"""

    SERIES: NumberSeries
    RESOURCE: str
    ORIGIN_FIELD: str
    PARTY_KIND: PartyKind
    DELETED_EVENT: AuditEventType
    RECORD_CLASS: type

    def __init__(
        self,
        storage: StorageInterface,
        ledger: GeneralLedger,
        rules: PostingRules,
        parties: PartyDirectory,
        numbering: DocumentNumberGenerator,
        audit_trail: Optional[AuditTrail] = None
    ):
        self.storage = storage
        self.ledger = ledger
        self.rules = rules
        self.parties = parties
        self.numbering = numbering
        self.audit_trail = audit_trail
        self.logger = get_logger(f"rental_ledger.{self.SERIES.table}")

    @staticmethod
    def _posting_description(text: str) -> str:
        return text[:MAX_TEXT_LENGTH]

    def get(self, record_id: int):
        data = self.storage.load(self.SERIES.table, record_id)
        if data:
            return self.RECORD_CLASS.from_dict(data)
        return None

    def require(self, record_id: int):
        record = self.get(record_id)
        if record is None:
            raise RecordNotFound(self.RESOURCE, record_id)
        return record

    def list(self) -> List[Any]:
        """All records, newest first"""
        records = [self.RECORD_CLASS.from_dict(data) for data in self.storage.load_all(self.SERIES.table)]
        records.sort(key=lambda r: r.id, reverse=True)
        return records

    def posting_for(self, record) -> Optional[Posting]:
        postings = self.ledger.postings_for_origin(**{self.ORIGIN_FIELD: record.id})
        return postings[0] if postings else None

    def describe(self, record) -> Dict[str, Any]:
        """Record fields plus party name and the linked posting's account names"""
        result = record.to_dict()
        party = self.parties.get(self.PARTY_KIND, record.party_id)
        result[f"{self.PARTY_KIND.value}_name"] = party.name if party else None

        posting = self.posting_for(record)
        result["transaction_no"] = None
        result["debit_account_name"] = None
        result["credit_account_name"] = None
        if posting:
            debit = self.ledger.chart.resolve_by_id(posting.debit_account_id)
            credit = self.ledger.chart.resolve_by_id(posting.credit_account_id)
            result["transaction_no"] = posting.transaction_no
            result["debit_account_name"] = debit.name if debit else None
            result["credit_account_name"] = credit.name if credit else None
        return result

    def list_described(self) -> List[Dict[str, Any]]:
        return [self.describe(record) for record in self.list()]

    def delete(self, record_id: int, user_id: Optional[str] = None) -> int:
        """
        Delete a record together with its posting

        Returns:
            Number of postings removed alongside the record

        Raises:
            RecordNotFound: If the record does not exist
        """
        with self.storage.atomic():
            record = self.require(record_id)
            removed = self.ledger.delete_for_origin(user_id=user_id, **{self.ORIGIN_FIELD: record.id})
            self.storage.delete(self.SERIES.table, record.id)

            if self.audit_trail:
                self.audit_trail.log_event(
                    event_type=self.DELETED_EVENT,
                    entity_type=self.RESOURCE.lower(),
                    entity_id=record.id,
                    metadata={"document_no": record.document_no, "postings_removed": removed},
                    user_id=user_id
                )

        log_action(
            self.logger, "info", f"{self.RESOURCE} deleted: {record.document_no}",
            user_id=user_id, action=f"delete_{self.RESOURCE.lower()}",
            resource=f"{self.RESOURCE.lower()}:{record.id}",
            extra={"document_no": record.document_no, "postings_removed": removed}
        )
        return removed
