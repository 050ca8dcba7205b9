"""
Document Number Generator

Mints human-readable document numbers (GL-001, SALE-0001, EXP-0001).
The candidate is the highest existing id of the series' table plus one;
collisions with numbers already on file are skipped, and the number is
claimed through the storage unique constraint so that concurrent writers
can never persist the same number twice.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

from .storage import StorageInterface, UniqueViolation
from .errors import ExhaustedRetries
from .logging_config import get_logger


@dataclass(frozen=True)
class NumberSeries:
    """A prefixed, zero-padded number series bound to one table"""
    prefix: str
    width: int
    table: str
    field: str

    def format(self, candidate: int) -> str:
        return f"{self.prefix}-{candidate:0{self.width}d}"


GL_SERIES = NumberSeries("GL", 3, "postings", "transaction_no")
SALE_SERIES = NumberSeries("SALE", 4, "sales", "sale_no")
EXPENSE_SERIES = NumberSeries("EXP", 4, "expenses", "expense_no")


class DocumentNumberGenerator:
    """Allocates unique document numbers with bounded retry"""

    def __init__(self, storage: StorageInterface, max_attempts: int = 25):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.storage = storage
        self.max_attempts = max_attempts
        self.logger = get_logger("rental_ledger.numbering")

    def _is_taken(self, series: NumberSeries, number: str) -> bool:
        return bool(self.storage.find(series.table, {series.field: number}))

    def allocate(self, series: NumberSeries, build_record: Callable[[str], Dict[str, Any]]) -> Tuple[int, str]:
        """
        Claim a number and insert the record carrying it.

        Args:
            series: Number series to allocate from
            build_record: Called with the candidate number, returns the row to insert

        Returns:
            Tuple of (record id, allocated number)

        Raises:
            ExhaustedRetries: If every candidate in the budget was taken
        """
        candidate = self.storage.max_id(series.table) + 1
        for attempt in range(self.max_attempts):
            number = series.format(candidate)
            candidate += 1
            if self._is_taken(series, number):
                continue
            try:
                record_id = self.storage.insert(series.table, build_record(number), unique_key=number)
            except UniqueViolation:
                self.logger.debug(f"{number} taken concurrently, retrying (attempt {attempt + 1})")
                continue
            return record_id, number

        self.logger.error(f"Number series {series.prefix} exhausted after {self.max_attempts} attempts")
        raise ExhaustedRetries(series.prefix, self.max_attempts)
