"""Catalog directory: keyed storage for items and borrowers."""

import logging
from pathlib import Path
from typing import Optional, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.sqlite import Database, get_db
from ..errors import DuplicateEntryError
from .models import Borrower, Item
from .policies import PolicyRegistry, policies
from .schemas import BorrowerCreate, CatalogFile, ItemCreate

logger = logging.getLogger(__name__)


class CatalogDirectory:
    """Adds and looks up items and borrowers.

    No lending rules live here; availability and active loans are only
    changed by the lending engine.
    """

    def __init__(self, db: Optional[Database] = None, registry: Optional[PolicyRegistry] = None):
        """Initialize catalog directory.

        Args:
            db: Database instance
            registry: Borrower policies to register against (default: shared registry)
        """
        self.db = db or get_db()
        self.policies = registry if registry is not None else policies

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    def add_item(self, data: ItemCreate) -> Item:
        """Add an item with every copy available.

        Args:
            data: Item creation data

        Returns:
            Created item

        Raises:
            DuplicateEntryError: If an item with this id exists
        """
        with self.db.get_session() as session:
            item = self._insert_item(session, data)
            session.commit()
            session.expunge(item)

        logger.info("Item added: %s (%d copies)", item.id, item.total_copies)
        return item

    def _insert_item(self, session: Session, data: ItemCreate) -> Item:
        if session.get(Item, data.id) is not None:
            raise DuplicateEntryError(f"Item already exists: {data.id}")

        item = Item(
            id=data.id,
            title=data.title,
            author=data.author,
            catalog_code=data.catalog_code,
            total_copies=data.total_copies,
            available_copies=data.total_copies,
        )
        session.add(item)
        session.flush()
        return item

    def find_item(self, item_id: str) -> Optional[Item]:
        """Get an item by ID.

        Args:
            item_id: Item ID

        Returns:
            Item or None
        """
        with self.db.get_session() as session:
            item = session.get(Item, item_id)
            if item:
                session.expunge(item)
            return item

    def list_items(self) -> list[Item]:
        """List all items ordered by id."""
        with self.db.get_session() as session:
            items = session.execute(select(Item).order_by(Item.id)).scalars().all()
            for item in items:
                session.expunge(item)
            return list(items)

    # -------------------------------------------------------------------------
    # Borrowers
    # -------------------------------------------------------------------------

    def register_borrower(self, data: BorrowerCreate) -> Borrower:
        """Register a borrower.

        Args:
            data: Borrower registration data

        Returns:
            Registered borrower

        Raises:
            UnknownBorrowerType: If no policy exists for the borrower type
            DuplicateEntryError: If a borrower with this id exists
        """
        with self.db.get_session() as session:
            borrower = self._insert_borrower(session, data)
            session.commit()
            session.refresh(borrower)
            session.expunge(borrower)

        logger.info("Borrower registered: %s (%s)", borrower.id, borrower.borrower_type)
        return borrower

    def _insert_borrower(self, session: Session, data: BorrowerCreate) -> Borrower:
        policy = self.policies.get(data.borrower_type)

        if session.get(Borrower, data.id) is not None:
            raise DuplicateEntryError(f"Borrower already exists: {data.id}")

        borrower = Borrower(
            id=data.id,
            name=data.name,
            email=data.email,
            borrower_type=policy.name,
        )
        session.add(borrower)
        session.flush()
        return borrower

    def find_borrower(self, borrower_id: str) -> Optional[Borrower]:
        """Get a borrower by ID.

        Args:
            borrower_id: Borrower ID

        Returns:
            Borrower or None
        """
        with self.db.get_session() as session:
            borrower = session.get(Borrower, borrower_id)
            if borrower:
                session.expunge(borrower)
            return borrower

    def list_borrowers(self, borrower_type: Optional[str] = None) -> list[Borrower]:
        """List borrowers ordered by id.

        Args:
            borrower_type: Only return borrowers of this type

        Returns:
            List of borrowers
        """
        with self.db.get_session() as session:
            stmt = select(Borrower).order_by(Borrower.id)
            if borrower_type:
                stmt = stmt.where(func.lower(Borrower.borrower_type) == borrower_type.lower())

            borrowers = session.execute(stmt).scalars().all()
            for borrower in borrowers:
                session.expunge(borrower)
            return list(borrowers)

    # -------------------------------------------------------------------------
    # Bulk loading
    # -------------------------------------------------------------------------

    def load(self, catalog: CatalogFile) -> tuple[int, int]:
        """Add every item and borrower from a catalog file.

        The whole catalog is written in one transaction: a duplicate id or
        unknown borrower type anywhere in it stores nothing.

        Args:
            catalog: Parsed catalog

        Returns:
            Tuple of (items added, borrowers registered)

        Raises:
            DuplicateEntryError: If an id is already stored or repeated
            UnknownBorrowerType: If a borrower names an unregistered type
        """
        with self.db.get_session() as session:
            for item in catalog.items:
                self._insert_item(session, item)
            for borrower in catalog.borrowers:
                self._insert_borrower(session, borrower)

        logger.info(
            "Catalog loaded: %d items, %d borrowers",
            len(catalog.items), len(catalog.borrowers),
        )
        return len(catalog.items), len(catalog.borrowers)

    def load_file(self, path: Union[str, Path]) -> tuple[int, int]:
        """Read a JSON catalog file and load it.

        Args:
            path: Path to a JSON file with "items" and "borrowers" lists

        Returns:
            Tuple of (items added, borrowers registered)
        """
        text = Path(path).read_text(encoding="utf-8")
        return self.load(CatalogFile.model_validate_json(text))
