"""SQLAlchemy models for lending.

Tables:
- loans: Every loan ever issued, active or returned
"""

from datetime import date, timedelta
from typing import Optional

from sqlalchemy import Date, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..catalog.models import Borrower, Item, utcnow_iso
from ..catalog.policies import BorrowerPolicy
from ..db.models import Base
from ..errors import AlreadyReturned, InvalidBorrower
from .schemas import LoanStatus


def format_loan_id(number: int) -> str:
    """Render a loan sequence number as a loan id (T0001, T0002, ...)."""
    return f"T{number:04d}"


class Loan(Base):
    """Loan model - one copy of an item held by one borrower."""

    __tablename__ = "loans"

    id: Mapped[str] = mapped_column(String(16), primary_key=True)

    item_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("items.id"),
        nullable=False,
        index=True,
    )
    borrower_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("borrowers.id"),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(20), default=LoanStatus.ACTIVE.value, nullable=False, index=True
    )

    # Dates
    borrow_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    return_date: Mapped[Optional[date]] = mapped_column(Date)

    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)

    # Relationships
    item: Mapped["Item"] = relationship("Item", lazy="joined")
    borrower: Mapped["Borrower"] = relationship("Borrower", lazy="joined")

    def __repr__(self) -> str:
        return f"<Loan(id={self.id}, item_id={self.item_id}, status={self.status})>"

    @classmethod
    def open(
        cls,
        loan_id: str,
        item: Item,
        borrower: Borrower,
        borrow_date: date,
        policy: Optional[BorrowerPolicy] = None,
    ) -> "Loan":
        """Create an active loan running for the borrower's loan period.

        The due date is fixed here; later policy changes do not move it.
        ``policy`` defaults to the borrower's policy in the shared registry.

        Raises:
            InvalidBorrower: If the borrower is missing or at their limit
        """
        if borrower is None:
            raise InvalidBorrower("Loan requires a borrower")
        policy = policy or borrower.policy
        if not borrower.can_borrow(policy):
            raise InvalidBorrower(
                f"Borrower {borrower.id} already holds {borrower.active_loan_count} "
                f"of {policy.loan_limit} loans"
            )
        return cls(
            id=loan_id,
            item_id=item.id,
            item=item,
            borrower_id=borrower.id,
            borrower=borrower,
            status=LoanStatus.ACTIVE.value,
            borrow_date=borrow_date,
            due_date=borrow_date + timedelta(days=policy.loan_period_days),
        )

    @property
    def is_active(self) -> bool:
        return self.return_date is None

    def mark_returned(self, on_date: date) -> None:
        """Close the loan on ``on_date``.

        Raises:
            AlreadyReturned: If the loan was already closed
        """
        if self.return_date is not None:
            raise AlreadyReturned(self.id)
        self.return_date = on_date
        self.status = LoanStatus.RETURNED.value

    def days_overdue(self, as_of: date) -> int:
        """Whole days past due, measured at the return date if there is one.

        Args:
            as_of: Date to measure against while the loan is still active

        Returns:
            Days overdue, never negative
        """
        check_date = self.return_date if self.return_date is not None else as_of
        return max(0, (check_date - self.due_date).days)

    def is_overdue(self, as_of: date) -> bool:
        """Check if an active loan is past its due date."""
        return self.is_active and as_of > self.due_date
