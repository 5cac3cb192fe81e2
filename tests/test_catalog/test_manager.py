"""Tests for CatalogDirectory."""

import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from lendingdesk.catalog import (
    STANDARD,
    BorrowerCreate,
    BorrowerPolicy,
    BorrowerResponse,
    CatalogDirectory,
    CatalogFile,
    ItemCreate,
    ItemResponse,
    PolicyRegistry,
)
from lendingdesk.errors import DuplicateEntryError, UnknownBorrowerType


class TestItems:
    """Tests for adding and finding items."""

    def test_add_item(self, directory):
        """Test adding an item starts with every copy available."""
        item = directory.add_item(
            ItemCreate(id="B001", title="Clean Code", author="Robert Martin",
                       catalog_code="ISBN-004", total_copies=3)
        )

        assert item.id == "B001"
        assert item.title == "Clean Code"
        assert item.total_copies == 3
        assert item.available_copies == 3

    def test_add_item_minimal(self, directory):
        """Test adding an item with only required fields."""
        item = directory.add_item(ItemCreate(id="B002", title="Untitled"))
        assert item.author is None
        assert item.total_copies == 1

    def test_add_duplicate_item(self, directory):
        """Test item ids must be unique."""
        directory.add_item(ItemCreate(id="B001", title="First"))

        with pytest.raises(DuplicateEntryError, match="B001"):
            directory.add_item(ItemCreate(id="B001", title="Second"))

        assert directory.find_item("B001").title == "First"

    def test_find_item_not_found(self, directory):
        """Test finding an unknown item returns None."""
        assert directory.find_item("missing") is None

    def test_list_items_sorted(self, catalog):
        """Test items are listed by id."""
        ids = [item.id for item in catalog.list_items()]
        assert ids == sorted(ids)
        assert len(ids) == 5

    def test_negative_copies_rejected(self):
        """Test total copies cannot be negative."""
        with pytest.raises(ValidationError):
            ItemCreate(id="B001", title="Bad", total_copies=-1)

    def test_blank_title_rejected(self):
        """Test whitespace titles are rejected."""
        with pytest.raises(ValidationError):
            ItemCreate(id="B001", title="   ")


class TestBorrowers:
    """Tests for registering and finding borrowers."""

    def test_register_borrower(self, directory):
        """Test registering a standard borrower."""
        borrower = directory.register_borrower(
            BorrowerCreate(id="S001", name="Alice", email="alice@example.com")
        )

        assert borrower.id == "S001"
        assert borrower.borrower_type == "standard"
        assert borrower.loan_limit == 3
        assert borrower.active_loan_ids == []

    def test_register_type_normalised(self, directory):
        """Test borrower types are stored in lower case."""
        borrower = directory.register_borrower(
            BorrowerCreate(id="F001", name="Carol", borrower_type=" Privileged ")
        )
        assert borrower.borrower_type == "privileged"
        assert borrower.loan_period_days == 30

    def test_register_unknown_type(self, directory):
        """Test unknown borrower types are rejected before storing."""
        with pytest.raises(UnknownBorrowerType):
            directory.register_borrower(
                BorrowerCreate(id="X001", name="Xavier", borrower_type="alien")
            )
        assert directory.find_borrower("X001") is None

    def test_register_duplicate(self, directory):
        """Test borrower ids must be unique."""
        directory.register_borrower(BorrowerCreate(id="S001", name="Alice"))
        with pytest.raises(DuplicateEntryError):
            directory.register_borrower(BorrowerCreate(id="S001", name="Alicia"))

    def test_find_borrower(self, catalog):
        """Test finding a borrower by id."""
        borrower = catalog.find_borrower("F001")
        assert borrower is not None
        assert borrower.name == "Dr. Carol White"

    def test_find_borrower_not_found(self, directory):
        """Test finding an unknown borrower returns None."""
        assert directory.find_borrower("nobody") is None

    def test_register_with_own_registry(self, db):
        """Test a directory accepts types known only to its own registry."""
        registry = PolicyRegistry((STANDARD,))
        registry.register(BorrowerPolicy(name="visiting", loan_limit=1,
                                         loan_period_days=7, fine_rate=Decimal("2.00")))
        directory = CatalogDirectory(db, registry)

        borrower = directory.register_borrower(
            BorrowerCreate(id="V001", name="Vera", borrower_type="visiting")
        )
        assert borrower.borrower_type == "visiting"

        with pytest.raises(UnknownBorrowerType):
            directory.register_borrower(
                BorrowerCreate(id="F001", name="Carol", borrower_type="privileged")
            )

    def test_list_borrowers_by_type(self, catalog):
        """Test filtering borrowers by type."""
        standard = catalog.list_borrowers(borrower_type="standard")
        assert [b.id for b in standard] == ["S001", "S002"]
        assert len(catalog.list_borrowers()) == 3


class TestLoad:
    """Tests for bulk catalog loading."""

    def test_load_catalog(self, directory):
        """Test loading a parsed catalog."""
        catalog = CatalogFile(
            items=[ItemCreate(id="B001", title="One"), ItemCreate(id="B002", title="Two")],
            borrowers=[BorrowerCreate(id="S001", name="Alice")],
        )
        assert directory.load(catalog) == (2, 1)
        assert len(directory.list_items()) == 2

    def test_load_file(self, directory, tmp_path):
        """Test loading a JSON catalog file."""
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({
            "items": [{"id": "B001", "title": "One", "total_copies": 2}],
            "borrowers": [{"id": "F001", "name": "Carol", "borrower_type": "privileged"}],
        }))

        assert directory.load_file(path) == (1, 1)
        assert directory.find_item("B001").available_copies == 2
        assert directory.find_borrower("F001").loan_limit == 5

    def test_load_file_invalid(self, directory, tmp_path):
        """Test malformed catalog files are rejected."""
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"items": [{"id": "B001"}]}))

        with pytest.raises(ValidationError):
            directory.load_file(path)

    def test_load_duplicate_stores_nothing(self, directory):
        """Test a repeated id rolls back the whole catalog."""
        catalog = CatalogFile(
            items=[ItemCreate(id="B001", title="One"), ItemCreate(id="B001", title="Again")],
            borrowers=[BorrowerCreate(id="S001", name="Alice")],
        )

        with pytest.raises(DuplicateEntryError, match="B001"):
            directory.load(catalog)

        assert directory.list_items() == []
        assert directory.list_borrowers() == []

    def test_load_unknown_type_stores_nothing(self, directory):
        """Test an unknown borrower type late in the file rolls back earlier entries."""
        catalog = CatalogFile(
            items=[ItemCreate(id="B001", title="One")],
            borrowers=[
                BorrowerCreate(id="S001", name="Alice"),
                BorrowerCreate(id="X001", name="Xavier", borrower_type="alien"),
            ],
        )

        with pytest.raises(UnknownBorrowerType):
            directory.load(catalog)

        assert directory.find_item("B001") is None
        assert directory.find_borrower("S001") is None

    def test_load_conflicts_with_stored_item(self, directory):
        """Test a clash with an existing item keeps the existing catalog intact."""
        directory.add_item(ItemCreate(id="B001", title="First"))
        catalog = CatalogFile(items=[ItemCreate(id="B002", title="Two"),
                                     ItemCreate(id="B001", title="Clash")])

        with pytest.raises(DuplicateEntryError):
            directory.load(catalog)

        assert [item.id for item in directory.list_items()] == ["B001"]
        assert directory.find_item("B001").title == "First"


class TestResponses:
    """Tests for response schemas built from stored records."""

    def test_item_response(self, catalog):
        """Test an item converts to its response schema."""
        response = ItemResponse.model_validate(catalog.find_item("B004"))
        assert response.title == "Clean Code"
        assert response.available_copies == response.total_copies == 1

    def test_borrower_response(self, catalog):
        """Test a borrower response includes policy constants."""
        response = BorrowerResponse.model_validate(catalog.find_borrower("F001"))
        assert response.borrower_type == "privileged"
        assert response.loan_limit == 5
        assert response.loan_period_days == 30
        assert response.active_loan_ids == []
