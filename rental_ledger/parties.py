"""
Party Directory

Minimal registry of customers and vendors. The rest of the rental system
owns the full party records; the ledger only needs to resolve a name to an
id, check that an id exists and print the party's display name.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from .storage import StorageInterface, StorageRecord, UniqueViolation
from .errors import ValidationError
from .validation import clean_text
from .logging_config import get_logger


class PartyKind(Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"

    @property
    def table(self) -> str:
        return f"{self.value}s"


@dataclass
class Party(StorageRecord):
    """Customer or vendor"""
    kind: PartyKind
    name: str

    @classmethod
    def from_dict(cls, data) -> 'Party':
        if isinstance(data.get('kind'), str):
            data['kind'] = PartyKind(data['kind'])
        return super().from_dict(data)


def _kind(kind: Any) -> PartyKind:
    try:
        return kind if isinstance(kind, PartyKind) else PartyKind(kind)
    except ValueError:
        raise ValidationError.for_field("kind", f"Unknown party kind '{kind}'.")


class PartyDirectory:
    """Register and look up customers and vendors by name"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.logger = get_logger("rental_ledger.parties")

    def register(self, kind: Any, name: str) -> Party:
        """
        Register a party under a unique display name

        Raises:
            ValidationError: If the name is empty or already registered
        """
        kind = _kind(kind)
        name = clean_text(name, "name")
        now = datetime.now(timezone.utc)
        party = Party(id=None, created_at=now, updated_at=now, kind=kind, name=name)
        try:
            party.id = self.storage.insert(kind.table, party.to_dict(), unique_key=name)
        except UniqueViolation:
            raise ValidationError.for_field("name", f"The {kind.value} '{name}' already exists.")
        self.logger.info(f"Registered {kind.value} {party.id}: {name}")
        return party

    def resolve_by_name(self, kind: Any, name: str) -> Optional[Party]:
        kind = _kind(kind)
        matches = self.storage.find(kind.table, {"name": name})
        if matches:
            return Party.from_dict(matches[0])
        return None

    def get(self, kind: Any, party_id: int) -> Optional[Party]:
        kind = _kind(kind)
        data = self.storage.load(kind.table, party_id)
        if data:
            return Party.from_dict(data)
        return None

    def require(self, kind: Any, party_id: Optional[int]) -> Party:
        """Get a party or raise a field error on {kind}_id"""
        kind = _kind(kind)
        field = f"{kind.value}_id"
        if party_id is None:
            raise ValidationError.for_field(field, f"The {kind.value} is required.")
        party = self.get(kind, party_id)
        if party is None:
            raise ValidationError.for_field(field, f"The selected {kind.value} does not exist.")
        return party

    def resolve_id(self, kind: Any, party_id: Optional[int] = None,
                   name: Optional[str] = None) -> Optional[int]:
        """Id given directly, or looked up from the display name"""
        kind = _kind(kind)
        if party_id is not None or not name:
            return party_id
        party = self.resolve_by_name(kind, name.strip())
        if party is None:
            raise ValidationError.for_field(
                f"{kind.value}_name", f"The selected {kind.value} does not exist."
            )
        return party.id

    def list(self, kind: Any) -> List[Party]:
        """All parties of a kind, sorted by name"""
        kind = _kind(kind)
        parties = [Party.from_dict(data) for data in self.storage.load_all(kind.table)]
        return sorted(parties, key=lambda p: p.name)
