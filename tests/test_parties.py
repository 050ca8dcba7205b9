"""
Test suite for the customer and vendor directory
"""

import pytest

from rental_ledger.storage import InMemoryStorage
from rental_ledger.parties import PartyDirectory, PartyKind
from rental_ledger.errors import ValidationError


class TestPartyDirectory:

    def setup_method(self):
        self.parties = PartyDirectory(InMemoryStorage())

    def test_register_and_lookup(self):
        """Test registering a party trims and stores its name"""
        customer = self.parties.register("customer", "  John Doe ")

        assert customer.kind == PartyKind.CUSTOMER
        assert customer.name == "John Doe"
        assert self.parties.get("customer", customer.id).name == "John Doe"
        assert self.parties.resolve_by_name(PartyKind.CUSTOMER, "John Doe").id == customer.id

    def test_kinds_are_separate(self):
        """Test customers and vendors may share a name"""
        customer = self.parties.register("customer", "Sokha")
        vendor = self.parties.register("vendor", "Sokha")

        assert customer.id == vendor.id == 1
        assert self.parties.get("vendor", 2) is None

    def test_duplicate_name(self):
        """Test duplicate names within a kind are rejected"""
        self.parties.register("vendor", "EDC")
        with pytest.raises(ValidationError):
            self.parties.register("vendor", "EDC")

    def test_unknown_kind(self):
        """Test an unknown party kind is a field error"""
        with pytest.raises(ValidationError) as exc_info:
            self.parties.register("supplier", "EDC")
        assert "kind" in exc_info.value.errors

    def test_require(self):
        """Test requiring a party by kind and id"""
        vendor = self.parties.register("vendor", "EDC")
        assert self.parties.require("vendor", vendor.id).name == "EDC"

        with pytest.raises(ValidationError) as exc_info:
            self.parties.require("vendor", 99)
        assert exc_info.value.errors["vendor_id"] == ["The selected vendor does not exist."]

        with pytest.raises(ValidationError):
            self.parties.require("vendor", None)

    def test_resolve_id(self):
        """Test resolving a party from an id or a name"""
        customer = self.parties.register("customer", "John Doe")

        assert self.parties.resolve_id("customer", party_id=5) == 5
        assert self.parties.resolve_id("customer", name="John Doe") == customer.id
        assert self.parties.resolve_id("customer") is None
        with pytest.raises(ValidationError) as exc_info:
            self.parties.resolve_id("customer", name="Nobody")
        assert "customer_name" in exc_info.value.errors

    def test_list_sorted(self):
        """Test parties are listed by name"""
        self.parties.register("customer", "Zed")
        self.parties.register("customer", "Anna")
        assert [p.name for p in self.parties.list("customer")] == ["Anna", "Zed"]
