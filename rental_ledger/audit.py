"""
Audit Trail Module

Append-only record of every change to the chart of accounts, the general
ledger and the sale and expense ledgers. Each event embeds the SHA-256
digest of its predecessor, so editing or removing a stored event breaks
the chain. Events are written inside the caller's atomic unit: a rolled
back sale leaves no audit entry behind.
"""

import hashlib
import json
from datetime import date, datetime, timezone
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .storage import StorageInterface, StorageRecord


class AuditEventType(Enum):
    """What happened to the audited entity"""
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_RECLASSIFIED = "account_reclassified"
    POSTING_CREATED = "posting_created"
    POSTING_DELETED = "posting_deleted"
    SALE_CREATED = "sale_created"
    SALE_DELETED = "sale_deleted"
    EXPENSE_CREATED = "expense_created"
    EXPENSE_DELETED = "expense_deleted"


def _jsonable(value: Any) -> Any:
    """Money as strings, dates as ISO text, enums by value"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


@dataclass
class AuditEvent(StorageRecord):
    event_type: AuditEventType
    entity_type: str  # account, posting, sale, expense
    entity_id: str
    previous_hash: str
    current_hash: str
    metadata: Dict[str, Any]
    user_id: Optional[str] = None

    def __post_init__(self):
        self.metadata = _jsonable(self.metadata or {})

    def digest_payload(self) -> str:
        """Canonical JSON of everything the digest covers (all but current_hash)"""
        return json.dumps({
            "id": self.id,
            "at": self.created_at.isoformat(),
            "type": self.event_type.value,
            "entity": [self.entity_type, self.entity_id],
            "prev": self.previous_hash,
            "user": self.user_id,
            "meta": self.metadata,
        }, sort_keys=True, separators=(",", ":"))

    def calculate_hash(self) -> str:
        return hashlib.sha256(self.digest_payload().encode("utf-8")).hexdigest()

    def verify_hash(self) -> bool:
        return self.calculate_hash() == self.current_hash

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEvent':
        data['event_type'] = AuditEventType(data['event_type'])
        return super().from_dict(data)


class AuditTrail:
    """Writes and checks the hash-chained event log"""

    def __init__(self, storage: StorageInterface, table_name: str = "audit_events"):
        self.storage = storage
        self.table_name = table_name

    def _chain_head(self) -> str:
        head_id = self.storage.max_id(self.table_name)
        if not head_id:
            return ""
        head = self.storage.load(self.table_name, head_id)
        return (head or {}).get("current_hash", "")

    def log_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Any,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ) -> AuditEvent:
        """
        Append an event to the chain

        Args:
            event_type: What happened
            entity_type: account, posting, sale or expense
            entity_id: Id of the affected record
            metadata: Event details (document numbers, amounts, account ids)
            user_id: Caller identity

        Returns:
            The stored AuditEvent, hash filled in
        """
        with self.storage.atomic():
            timestamp = datetime.now(timezone.utc)
            event = AuditEvent(
                id=None,
                created_at=timestamp,
                updated_at=timestamp,
                event_type=event_type,
                entity_type=entity_type,
                entity_id=str(entity_id),
                previous_hash=self._chain_head(),
                current_hash="",
                metadata=metadata,
                user_id=user_id
            )
            # The digest covers the id, which only exists after the insert
            event.id = self.storage.insert(self.table_name, event.to_dict())
            event.current_hash = event.calculate_hash()
            self.storage.save(self.table_name, event.id, event.to_dict())
        return event

    def get_events_for_entity(self, entity_type: str, entity_id: Any) -> List[AuditEvent]:
        """Events of one record, oldest first"""
        rows = self.storage.find(self.table_name, {"entity_type": entity_type, "entity_id": str(entity_id)})
        return [AuditEvent.from_dict(row) for row in rows]

    def get_all_events(self, event_type: Optional[AuditEventType] = None) -> List[AuditEvent]:
        events = [AuditEvent.from_dict(row) for row in self.storage.load_all(self.table_name)]
        if event_type is None:
            return events
        return [event for event in events if event.event_type == event_type]

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Walk the chain from the first event

        Returns:
            valid, total_events, and the offending events under
            hash_errors (content changed) and chain_breaks (event
            removed or reordered)
        """
        events = self.get_all_events()
        hash_errors = []
        chain_breaks = []

        expected_previous = ""
        for position, event in enumerate(events):
            recomputed = event.calculate_hash()
            if recomputed != event.current_hash:
                hash_errors.append({
                    "event_id": event.id,
                    "position": position,
                    "expected_hash": recomputed,
                    "actual_hash": event.current_hash,
                })
            if event.previous_hash != expected_previous:
                chain_breaks.append({
                    "event_id": event.id,
                    "position": position,
                    "expected_previous_hash": expected_previous,
                    "actual_previous_hash": event.previous_hash,
                })
            expected_previous = event.current_hash

        return {
            "valid": not hash_errors and not chain_breaks,
            "total_events": len(events),
            "hash_errors": hash_errors,
            "chain_breaks": chain_breaks,
        }

    def count_events(self) -> int:
        return self.storage.count(self.table_name)
