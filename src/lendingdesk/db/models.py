"""SQLAlchemy declarative base shared by all ORM models.

Tables (defined by their feature packages):
- items, borrowers, active_loans: catalog directory (``catalog.models``)
- loans: loan history (``lending.models``)
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass
