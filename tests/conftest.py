"""Pytest configuration and shared fixtures.

This module provides fixtures for testing lendingdesk, including an
in-memory database, the catalog directory, the lending engine and a
seeded sample catalog.
"""

import os
from datetime import date
from typing import Generator

import pytest

from lendingdesk.catalog import (
    BorrowerCreate,
    CatalogDirectory,
    ItemCreate,
    PolicyRegistry,
    default_registry,
    policies,
)
from lendingdesk.config import reset_config
from lendingdesk.db.sqlite import Database, reset_db
from lendingdesk.lending import LendingEngine
from lendingdesk.reports import ReportManager

DAY0 = date(2025, 1, 1)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def db() -> Generator[Database, None, None]:
    """Create an in-memory database for testing."""
    reset_db()
    reset_config()

    database = Database(":memory:")
    database.create_tables()
    yield database

    reset_db()
    reset_config()


@pytest.fixture
def registry() -> PolicyRegistry:
    """Borrower policies private to one test."""
    return default_registry()


@pytest.fixture
def directory(db: Database, registry: PolicyRegistry) -> CatalogDirectory:
    """Create a CatalogDirectory with test database."""
    return CatalogDirectory(db, registry)


@pytest.fixture
def engine(db: Database, directory: CatalogDirectory) -> LendingEngine:
    """Create a LendingEngine with test database."""
    return LendingEngine(db, directory)


@pytest.fixture
def reports(db: Database, registry: PolicyRegistry) -> ReportManager:
    """Create a ReportManager with test database."""
    return ReportManager(db, registry)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def day0() -> date:
    """Fixed issue date so tests never depend on the wall clock."""
    return DAY0


@pytest.fixture
def sample_items() -> list[ItemCreate]:
    """Sample catalog items."""
    return [
        ItemCreate(id="B001", title="Introduction to Java", author="James Gosling",
                   catalog_code="ISBN-001", total_copies=3),
        ItemCreate(id="B002", title="Data Structures", author="Robert Lafore",
                   catalog_code="ISBN-002", total_copies=2),
        ItemCreate(id="B003", title="Design Patterns", author="Gang of Four",
                   catalog_code="ISBN-003", total_copies=2),
        ItemCreate(id="B004", title="Clean Code", author="Robert Martin",
                   catalog_code="ISBN-004", total_copies=1),
        ItemCreate(id="B005", title="Refactoring", author="Martin Fowler",
                   catalog_code="ISBN-005", total_copies=1),
    ]


@pytest.fixture
def sample_borrowers() -> list[BorrowerCreate]:
    """Sample borrowers: two standard, one privileged."""
    return [
        BorrowerCreate(id="S001", name="Alice Johnson", email="alice@university.edu"),
        BorrowerCreate(id="S002", name="Bob Smith", email="bob@university.edu"),
        BorrowerCreate(id="F001", name="Dr. Carol White", email="carol@university.edu",
                       borrower_type="privileged"),
    ]


@pytest.fixture
def catalog(directory, sample_items, sample_borrowers) -> CatalogDirectory:
    """Directory loaded with the sample items and borrowers."""
    for item in sample_items:
        directory.add_item(item)
    for borrower in sample_borrowers:
        directory.register_borrower(borrower)
    return directory


@pytest.fixture
def policy_cleanup() -> Generator[list[str], None, None]:
    """Collect names registered in the shared registry and remove them afterwards."""
    names: list[str] = []
    yield names
    for name in names:
        policies.unregister(name)


# ============================================================================
# CLI Testing Fixtures
# ============================================================================


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner."""
    from typer.testing import CliRunner
    return CliRunner()


@pytest.fixture
def cli_app():
    """Get the CLI app for testing."""
    from lendingdesk.cli import app
    return app


@pytest.fixture
def memory_db_env() -> Generator[None, None, None]:
    """Point the global database at memory for CLI runs."""
    reset_db()
    reset_config()
    os.environ["LENDINGDESK_DB_PATH"] = ":memory:"
    yield
    reset_db()
    reset_config()
    del os.environ["LENDINGDESK_DB_PATH"]
