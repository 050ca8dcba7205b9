"""
Storage Backend Module

Provides abstract storage interface and implementations for in-memory (testing)
and SQLite (persistence). All monetary values stored as Decimal strings.

Every table hands out monotonically increasing integer ids that are never
reused, and may enforce one unique key per record (document numbers, account
names). Units of work run inside ``atomic()``: their writes become visible to
other callers together or not at all.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Union
from decimal import Decimal
from datetime import date, datetime, timezone
import sqlite3
import json
import threading
from dataclasses import dataclass, asdict
from enum import Enum
from pathlib import Path
from contextlib import contextmanager


class UniqueViolation(Exception):
    """Raised when an insert collides with an existing unique key"""

    def __init__(self, table: str, unique_key: str):
        self.table = table
        self.unique_key = unique_key
        super().__init__(f"Duplicate key {unique_key!r} in table {table}")


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: Optional[int]
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
            elif isinstance(value, Decimal):
                result[key] = str(value)
            elif isinstance(value, Enum):
                result[key] = value.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StorageRecord':
        """Create instance from dictionary"""
        # Convert ISO strings back to datetime objects
        if 'created_at' in data and isinstance(data['created_at'], str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        if 'updated_at' in data and isinstance(data['updated_at'], str):
            data['updated_at'] = datetime.fromisoformat(data['updated_at'])

        return cls(**data)


def _matches(record: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    for key, value in filters.items():
        if key not in record or record[key] != value:
            return False
    return True


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    def __init__(self):
        self._local = threading.local()

    @abstractmethod
    def insert(self, table: str, data: Dict[str, Any], unique_key: Optional[str] = None) -> int:
        """Insert a new record and return its assigned id"""
        pass

    @abstractmethod
    def save(self, table: str, record_id: int, data: Dict[str, Any]) -> None:
        """Save (create or replace) a record under an explicit id"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: int) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table, ordered by id"""
        pass

    @abstractmethod
    def delete(self, table: str, record_id: int) -> bool:
        """Delete a record from storage"""
        pass

    @abstractmethod
    def exists(self, table: str, record_id: int) -> bool:
        """Check if a record exists"""
        pass

    @abstractmethod
    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def max_id(self, table: str) -> int:
        """Highest existing id in table (0 when empty)"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def delete_where(self, table: str, filters: Dict[str, Any]) -> int:
        """Delete every record matching filters, returning how many went"""
        deleted = 0
        for record in self.find(table, filters):
            if self.delete(table, record['id']):
                deleted += 1
        return deleted

    def begin_transaction(self) -> None:
        """Start a database transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @property
    def in_transaction(self) -> bool:
        """True when the calling thread is inside an atomic unit"""
        return getattr(self._local, 'depth', 0) > 0

    @contextmanager
    def atomic(self):
        """
        Context manager for atomic operations.

        Nested calls join the outermost unit; only the outermost unit
        commits or rolls back.
        """
        depth = getattr(self._local, 'depth', 0)
        if depth:
            self._local.depth = depth + 1
            try:
                yield
            finally:
                self._local.depth = depth
            return

        self.begin_transaction()
        self._local.depth = 1
        try:
            yield
        except BaseException:
            self._local.depth = 0
            self.rollback()
            raise
        self._local.depth = 0
        self.commit()


class InMemoryStorage(StorageInterface):
    """
    In-memory storage implementation for testing.

    Units of work are serialised on a re-entrant lock and undone from an
    undo log on rollback.
    """

    def __init__(self):
        super().__init__()
        self._data: Dict[str, Dict[int, Dict[str, Any]]] = {}
        self._sequences: Dict[str, int] = {}
        self._unique: Dict[str, Dict[str, int]] = {}
        self._lock = threading.RLock()

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists"""
        if table not in self._data:
            self._data[table] = {}
            self._sequences[table] = 0
            self._unique[table] = {}

    def _record_undo(self, action: Callable[[], None]) -> None:
        undo_log = getattr(self._local, 'undo', None)
        if undo_log is not None:
            undo_log.append(action)

    @staticmethod
    def _copy(data: Dict[str, Any]) -> Dict[str, Any]:
        # Deep copy to prevent external mutation
        return json.loads(json.dumps(data, default=str))

    def insert(self, table: str, data: Dict[str, Any], unique_key: Optional[str] = None) -> int:
        """Insert a record, assigning the next id in the table's sequence"""
        with self._lock:
            self._ensure_table(table)
            if unique_key is not None and unique_key in self._unique[table]:
                raise UniqueViolation(table, unique_key)

            previous_sequence = self._sequences[table]
            record_id = previous_sequence + 1
            record = self._copy(data)
            record['id'] = record_id
            self._data[table][record_id] = record
            self._sequences[table] = record_id
            if unique_key is not None:
                self._unique[table][unique_key] = record_id

            def undo():
                self._data[table].pop(record_id, None)
                self._sequences[table] = previous_sequence
                if unique_key is not None:
                    self._unique[table].pop(unique_key, None)

            self._record_undo(undo)
            return record_id

    def save(self, table: str, record_id: int, data: Dict[str, Any]) -> None:
        """Save a record to memory"""
        with self._lock:
            self._ensure_table(table)
            previous = self._data[table].get(record_id)
            previous_sequence = self._sequences[table]

            record = self._copy(data)
            record['id'] = record_id
            self._data[table][record_id] = record
            self._sequences[table] = max(previous_sequence, record_id)

            def undo():
                if previous is None:
                    self._data[table].pop(record_id, None)
                else:
                    self._data[table][record_id] = previous
                self._sequences[table] = previous_sequence

            self._record_undo(undo)

    def load(self, table: str, record_id: int) -> Optional[Dict[str, Any]]:
        """Load a record from memory"""
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(record_id)
            if record:
                return self._copy(record)
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            return [self._copy(self._data[table][key]) for key in sorted(self._data[table])]

    def delete(self, table: str, record_id: int) -> bool:
        """Delete a record from memory"""
        with self._lock:
            self._ensure_table(table)
            if record_id not in self._data[table]:
                return False

            previous = self._data[table].pop(record_id)
            unique_key = None
            for key, owner in self._unique[table].items():
                if owner == record_id:
                    unique_key = key
                    break
            if unique_key is not None:
                del self._unique[table][unique_key]

            def undo():
                self._data[table][record_id] = previous
                if unique_key is not None:
                    self._unique[table][unique_key] = record_id

            self._record_undo(undo)
            return True

    def exists(self, table: str, record_id: int) -> bool:
        """Check if a record exists"""
        with self._lock:
            self._ensure_table(table)
            return record_id in self._data[table]

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        with self._lock:
            self._ensure_table(table)
            return [
                self._copy(self._data[table][key])
                for key in sorted(self._data[table])
                if _matches(self._data[table][key], filters)
            ]

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def max_id(self, table: str) -> int:
        """Highest existing id in table"""
        with self._lock:
            self._ensure_table(table)
            return max(self._data[table], default=0)

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._ensure_table(table)
            previous = (self._data[table], self._unique[table])
            self._data[table] = {}
            self._unique[table] = {}

            def undo():
                self._data[table], self._unique[table] = previous

            self._record_undo(undo)

    def begin_transaction(self) -> None:
        """Start a unit of work, holding the lock until commit or rollback"""
        self._lock.acquire()
        self._local.undo = []

    def commit(self) -> None:
        """Commit current unit of work"""
        self._local.undo = None
        self._lock.release()

    def rollback(self) -> None:
        """Undo every write of the current unit of work"""
        try:
            undo_log = getattr(self._local, 'undo', None) or []
            self._local.undo = None
            for action in reversed(undo_log):
                action()
        finally:
            self._lock.release()

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:", timeout: float = 30.0):
        super().__init__()
        self.db_path = str(db_path)
        # Autocommit mode; units of work issue explicit BEGIN IMMEDIATE
        self._connection = sqlite3.connect(
            self.db_path, check_same_thread=False, isolation_level=None, timeout=timeout
        )
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._known_tables = set()

        # Enable WAL mode for better concurrent access
        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        if table in self._known_tables:
            return
        with self._lock:
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    unique_key TEXT UNIQUE,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._known_tables.add(table)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> Dict[str, Any]:
        record = json.loads(row['data'])
        record['id'] = row['id']
        return record

    def insert(self, table: str, data: Dict[str, Any], unique_key: Optional[str] = None) -> int:
        """Insert a record; the AUTOINCREMENT id is never reused"""
        with self._lock:
            self._ensure_table(table)
            now = datetime.now(timezone.utc).isoformat()
            payload = {k: v for k, v in data.items() if k != 'id'}
            try:
                cursor = self._connection.execute(f"""
                    INSERT INTO {table} (unique_key, data, created_at, updated_at)
                    VALUES (?, ?, ?, ?)
                """, (unique_key, json.dumps(payload, default=str), now, now))
            except sqlite3.IntegrityError as e:
                raise UniqueViolation(table, unique_key) from e
            return cursor.lastrowid

    def save(self, table: str, record_id: int, data: Dict[str, Any]) -> None:
        """Save a record to SQLite"""
        with self._lock:
            self._ensure_table(table)

            now = datetime.now(timezone.utc).isoformat()
            payload = {k: v for k, v in data.items() if k != 'id'}

            # Use INSERT OR REPLACE to handle updates, keeping key and creation time
            self._connection.execute(f"""
                INSERT OR REPLACE INTO {table} (id, unique_key, data, created_at, updated_at)
                VALUES (?,
                    (SELECT unique_key FROM {table} WHERE id = ?),
                    ?,
                    COALESCE((SELECT created_at FROM {table} WHERE id = ?), ?),
                    ?)
            """, (record_id, record_id, json.dumps(payload, default=str), record_id, now, now))

    def load(self, table: str, record_id: int) -> Optional[Dict[str, Any]]:
        """Load a record from SQLite"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT id, data FROM {table} WHERE id = ?
            """, (record_id,))
            row = cursor.fetchone()
            if row:
                return self._row_to_record(row)
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT id, data FROM {table} ORDER BY id
            """)
            return [self._row_to_record(row) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: int) -> bool:
        """Delete a record from SQLite"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                DELETE FROM {table} WHERE id = ?
            """, (record_id,))
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: int) -> bool:
        """Check if a record exists"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT 1 FROM {table} WHERE id = ? LIMIT 1
            """, (record_id,))
            return cursor.fetchone() is not None

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters (simple JSON key matching)"""
        return [record for record in self.load_all(table) if _matches(record, filters)]

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT COUNT(*) as count FROM {table}
            """)
            return cursor.fetchone()['count']

    def max_id(self, table: str) -> int:
        """Highest existing id in table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT COALESCE(MAX(id), 0) as max_id FROM {table}
            """)
            return cursor.fetchone()['max_id']

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._ensure_table(table)
            self._connection.execute(f"DELETE FROM {table}")

    def begin_transaction(self) -> None:
        """Start a write transaction, holding the connection until it ends"""
        self._lock.acquire()
        try:
            self._connection.execute("BEGIN IMMEDIATE")
        except Exception:
            self._lock.release()
            raise

    def commit(self) -> None:
        """Commit current transaction"""
        try:
            self._connection.execute("COMMIT")
        finally:
            self._lock.release()

    def rollback(self) -> None:
        """Rollback current transaction"""
        try:
            self._connection.execute("ROLLBACK")
            # Tables created inside the rolled back unit are gone again
            self._known_tables.clear()
        finally:
            self._lock.release()

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(database_url: str, timeout: float = 30.0) -> StorageInterface:
    """
    Build a storage backend from a database URL.

    Supported: ``memory://``, ``sqlite:///:memory:`` and ``sqlite:///<path>``.
    """
    if database_url == "memory://":
        return InMemoryStorage()
    if database_url.startswith("sqlite:///"):
        return SQLiteStorage(database_url[len("sqlite:///"):], timeout=timeout)
    raise ValueError(f"Unsupported database URL: {database_url}")
