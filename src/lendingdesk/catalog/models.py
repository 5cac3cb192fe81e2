"""SQLAlchemy models for the lending catalog.

Tables:
- items: Catalog entries with total and available copy counts
- borrowers: People allowed to borrow, tagged with a policy name
- active_loans: Index of each borrower's outstanding loan ids
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base
from ..errors import CopyCountOverflow, NoCopyAvailable
from .policies import BorrowerPolicy, PolicyRegistry, get_policy

if TYPE_CHECKING:
    from ..lending.models import Loan


def utcnow_iso() -> str:
    """Current UTC timestamp as ISO string."""
    return datetime.now(timezone.utc).isoformat()


class Item(Base):
    """Item model - a lendable work with a fixed number of copies."""

    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("total_copies >= 0", name="ck_items_total_nonneg"),
        CheckConstraint(
            "available_copies >= 0 AND available_copies <= total_copies",
            name="ck_items_available_range",
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[Optional[str]] = mapped_column(String(500), index=True)
    catalog_code: Mapped[Optional[str]] = mapped_column(String(32), index=True)

    # Copy counts
    total_copies: Mapped[int] = mapped_column(Integer, nullable=False)
    available_copies: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)

    def __repr__(self) -> str:
        return (
            f"<Item(id={self.id}, title='{self.title}', "
            f"available={self.available_copies}/{self.total_copies})>"
        )

    @property
    def copies_on_loan(self) -> int:
        """Number of copies currently lent out."""
        return self.total_copies - self.available_copies

    def is_available(self) -> bool:
        """Check if at least one copy can be lent."""
        return self.available_copies > 0

    def reserve_copy(self) -> None:
        """Take one copy off the shelf.

        Raises:
            NoCopyAvailable: If every copy is already lent out
        """
        if self.available_copies <= 0:
            raise NoCopyAvailable(self.id)
        self.available_copies -= 1

    def release_copy(self) -> None:
        """Put one copy back on the shelf.

        Raises:
            CopyCountOverflow: If all copies are already on the shelf
        """
        if self.available_copies >= self.total_copies:
            raise CopyCountOverflow(self.id, self.total_copies)
        self.available_copies += 1


class Borrower(Base):
    """Borrower model - privileges come from the named policy."""

    __tablename__ = "borrowers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(200))
    borrower_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)

    # Index only; loan rows are owned by the loan history
    active_loan_refs: Mapped[list["ActiveLoan"]] = relationship(
        "ActiveLoan",
        back_populates="borrower",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ActiveLoan.loan_id",
    )

    def __repr__(self) -> str:
        return (
            f"<Borrower(id={self.id}, name='{self.name}', type={self.borrower_type}, "
            f"loans={len(self.active_loan_refs)}/{self.loan_limit})>"
        )

    def resolve_policy(self, registry: Optional[PolicyRegistry] = None) -> BorrowerPolicy:
        """Look up this borrower's policy, in the shared registry by default.

        Raises:
            UnknownBorrowerType: If the registry has no policy for the tag
        """
        if registry is None:
            return get_policy(self.borrower_type)
        return registry.get(self.borrower_type)

    @property
    def policy(self) -> BorrowerPolicy:
        """Policy constants for this borrower's category."""
        return self.resolve_policy()

    @property
    def loan_limit(self) -> int:
        return self.policy.loan_limit

    @property
    def loan_period_days(self) -> int:
        return self.policy.loan_period_days

    @property
    def active_loan_ids(self) -> list[str]:
        """Ids of loans currently held."""
        return [ref.loan_id for ref in self.active_loan_refs]

    @property
    def active_loan_count(self) -> int:
        return len(self.active_loan_refs)

    def can_borrow(self, policy: Optional[BorrowerPolicy] = None) -> bool:
        """Check if the borrower is below their loan limit."""
        return self.active_loan_count < (policy or self.policy).loan_limit

    def holds_loan(self, loan_id: str) -> bool:
        return loan_id in self.active_loan_ids

    def attach_loan(self, loan: "Loan") -> None:
        """Record a loan as held by this borrower."""
        if not self.holds_loan(loan.id):
            self.active_loan_refs.append(ActiveLoan(loan_id=loan.id))

    def detach_loan(self, loan: "Loan") -> None:
        """Drop a loan from the held set. Does nothing if it is not held."""
        for ref in self.active_loan_refs:
            if ref.loan_id == loan.id:
                self.active_loan_refs.remove(ref)
                return

    def compute_fine(
        self, days_overdue: int, policy: Optional[BorrowerPolicy] = None
    ) -> Decimal:
        """Fine for ``days_overdue`` days under this borrower's policy."""
        return (policy or self.policy).compute_fine(days_overdue)


class ActiveLoan(Base):
    """Active loan index entry - links a borrower to a loan id it holds."""

    __tablename__ = "active_loans"

    borrower_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("borrowers.id", ondelete="CASCADE"),
        primary_key=True,
    )
    loan_id: Mapped[str] = mapped_column(
        String(16),
        ForeignKey("loans.id"),
        primary_key=True,
        unique=True,
    )

    borrower: Mapped["Borrower"] = relationship("Borrower", back_populates="active_loan_refs")

    def __repr__(self) -> str:
        return f"<ActiveLoan(borrower_id={self.borrower_id}, loan_id={self.loan_id})>"
