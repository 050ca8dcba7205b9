"""
Tests for storage backends and transaction support
"""

import pytest
import tempfile
import threading
from pathlib import Path

from rental_ledger.storage import (
    InMemoryStorage, SQLiteStorage, UniqueViolation, create_storage
)


class TestInMemoryStorage:
    """Test basic operations with InMemoryStorage"""

    def setup_method(self):
        self.storage = InMemoryStorage()

    def test_insert_assigns_increasing_ids(self):
        """Test inserts receive increasing ids"""
        first = self.storage.insert("items", {"name": "a"})
        second = self.storage.insert("items", {"name": "b"})

        assert first == 1
        assert second == 2
        assert self.storage.load("items", first) == {"name": "a", "id": 1}
        assert self.storage.max_id("items") == 2

    def test_ids_are_never_reused(self):
        """Test a deleted id is not handed out again"""
        self.storage.insert("items", {"name": "a"})
        second = self.storage.insert("items", {"name": "b"})
        self.storage.delete("items", second)

        third = self.storage.insert("items", {"name": "c"})
        assert third == 3
        assert self.storage.max_id("items") == 3

    def test_unique_key_rejects_duplicates(self):
        """Test a repeated unique key raises UniqueViolation"""
        self.storage.insert("items", {"name": "a"}, unique_key="A-1")

        with pytest.raises(UniqueViolation):
            self.storage.insert("items", {"name": "b"}, unique_key="A-1")
        assert self.storage.count("items") == 1

    def test_unique_key_released_on_delete(self):
        """Test deleting a record frees its unique key"""
        record_id = self.storage.insert("items", {"name": "a"}, unique_key="A-1")
        self.storage.delete("items", record_id)

        assert self.storage.insert("items", {"name": "b"}, unique_key="A-1") == 2

    def test_crud_operations(self):
        """Test load, find, save and delete"""
        record_id = self.storage.insert("items", {"name": "a", "kind": "x"})
        self.storage.insert("items", {"name": "b", "kind": "y"})

        assert self.storage.exists("items", record_id)
        assert not self.storage.exists("items", 99)
        assert len(self.storage.load_all("items")) == 2
        assert [r["name"] for r in self.storage.find("items", {"kind": "y"})] == ["b"]

        self.storage.save("items", record_id, {"name": "a2", "kind": "x"})
        assert self.storage.load("items", record_id)["name"] == "a2"

        assert self.storage.delete_where("items", {"kind": "x"}) == 1
        assert self.storage.count("items") == 1

        self.storage.clear_table("items")
        assert self.storage.count("items") == 0
        assert self.storage.max_id("items") == 0

    def test_loaded_records_are_copies(self):
        """Test loaded records do not alias stored data"""
        record_id = self.storage.insert("items", {"tags": ["a"]})
        loaded = self.storage.load("items", record_id)
        loaded["tags"].append("b")

        assert self.storage.load("items", record_id)["tags"] == ["a"]

    def test_atomic_commits(self):
        """Test a successful unit keeps its writes"""
        with self.storage.atomic():
            self.storage.insert("items", {"name": "a"})
            self.storage.insert("items", {"name": "b"})

        assert self.storage.count("items") == 2

    def test_atomic_rolls_back_every_write(self):
        """Test a failed unit undoes every write"""
        kept = self.storage.insert("items", {"name": "kept"}, unique_key="K")

        with pytest.raises(RuntimeError):
            with self.storage.atomic():
                self.storage.insert("items", {"name": "new"}, unique_key="N")
                self.storage.save("items", kept, {"name": "changed"})
                self.storage.delete("items", kept)
                raise RuntimeError("boom")

        assert self.storage.count("items") == 1
        assert self.storage.load("items", kept)["name"] == "kept"
        # Rolled back unique key is free again
        assert self.storage.insert("items", {"name": "new"}, unique_key="N") == 2

    def test_nested_atomic_joins_outer_unit(self):
        """Test an inner unit rolls back with the outer one"""
        with pytest.raises(RuntimeError):
            with self.storage.atomic():
                with self.storage.atomic():
                    self.storage.insert("items", {"name": "inner"})
                assert self.storage.in_transaction
                raise RuntimeError("outer failure")

        assert self.storage.count("items") == 0
        assert not self.storage.in_transaction

    def test_atomic_units_are_serialised(self):
        """Test concurrent units do not interleave"""
        errors = []

        def worker(n):
            try:
                for _ in range(20):
                    with self.storage.atomic():
                        next_id = self.storage.max_id("counter") + 1
                        self.storage.insert("counter", {"n": n}, unique_key=str(next_id))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert self.storage.count("counter") == 100


class TestSQLiteStorage:
    """Test SQLite backend with a real database file"""

    def setup_method(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = Path(self.temp_dir.name) / "ledger.db"
        self.storage = SQLiteStorage(self.db_path)

    def teardown_method(self):
        self.storage.close()
        self.temp_dir.cleanup()

    def test_insert_and_load(self):
        """Test inserting and loading a record"""
        record_id = self.storage.insert("items", {"name": "a", "amount": "10.00"})

        assert record_id == 1
        assert self.storage.load("items", record_id) == {"name": "a", "amount": "10.00", "id": 1}
        assert self.storage.load("items", 42) is None

    def test_ids_are_never_reused(self):
        """Test a deleted id is not handed out again"""
        self.storage.insert("items", {"name": "a"})
        second = self.storage.insert("items", {"name": "b"})
        self.storage.delete("items", second)

        assert self.storage.insert("items", {"name": "c"}) == 3

    def test_unique_key_rejects_duplicates(self):
        """Test a repeated unique key raises UniqueViolation"""
        self.storage.insert("items", {"name": "a"}, unique_key="A-1")

        with pytest.raises(UniqueViolation):
            self.storage.insert("items", {"name": "b"}, unique_key="A-1")

    def test_save_keeps_unique_key(self):
        """Test saving a record keeps its unique key"""
        record_id = self.storage.insert("items", {"name": "a"}, unique_key="A-1")
        self.storage.save("items", record_id, {"name": "a2"})

        assert self.storage.load("items", record_id)["name"] == "a2"
        with pytest.raises(UniqueViolation):
            self.storage.insert("items", {"name": "b"}, unique_key="A-1")

    def test_find_count_and_max_id(self):
        """Test find, count and max id queries"""
        self.storage.insert("items", {"kind": "x"})
        self.storage.insert("items", {"kind": "y"})
        self.storage.insert("items", {"kind": "x"})

        assert len(self.storage.find("items", {"kind": "x"})) == 2
        assert self.storage.count("items") == 3
        assert self.storage.max_id("items") == 3
        assert self.storage.max_id("empty") == 0

    def test_atomic_rollback(self):
        """Test a failed unit leaves no rows behind"""
        self.storage.insert("items", {"name": "kept"})

        with pytest.raises(ValueError):
            with self.storage.atomic():
                self.storage.insert("items", {"name": "lost"})
                self.storage.insert("other", {"name": "lost"})
                raise ValueError("abort")

        assert self.storage.count("items") == 1
        assert self.storage.count("other") == 0

    def test_data_persists_across_connections(self):
        """Test committed rows survive reopening the file"""
        with self.storage.atomic():
            self.storage.insert("items", {"name": "durable"}, unique_key="D")
        self.storage.close()

        reopened = SQLiteStorage(self.db_path)
        try:
            assert reopened.find("items", {"name": "durable"})[0]["id"] == 1
            with pytest.raises(UniqueViolation):
                reopened.insert("items", {"name": "again"}, unique_key="D")
        finally:
            reopened.close()
        self.storage = SQLiteStorage(self.db_path)


class TestCreateStorage:

    def test_memory_url(self):
        """Test the memory URL selects in-memory storage"""
        assert isinstance(create_storage("memory://"), InMemoryStorage)

    def test_sqlite_memory_url(self):
        """Test an in-memory SQLite URL"""
        storage = create_storage("sqlite:///:memory:")
        assert isinstance(storage, SQLiteStorage)
        assert storage.db_path == ":memory:"
        storage.close()

    def test_unsupported_url(self):
        """Test an unknown URL scheme is rejected"""
        with pytest.raises(ValueError, match="Unsupported database URL"):
            create_storage("postgresql://localhost/ledger")
