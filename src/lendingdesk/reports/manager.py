"""Manager for lending reports.

Every figure is computed from current state on request; nothing is cached
or stored.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select

from ..catalog.models import Borrower, Item
from ..catalog.policies import PolicyRegistry, policies
from ..db.sqlite import Database, get_db
from ..lending.models import Loan
from ..lending.schemas import LoanStatus
from .schemas import LendingStats, OverdueLoan, OverdueReport


class ReportManager:
    """Read-only views over the catalog and loan history."""

    def __init__(self, db: Optional[Database] = None, registry: Optional[PolicyRegistry] = None):
        """Initialize the report manager.

        Args:
            db: Database instance
            registry: Borrower policies used to price fines (default: shared registry)
        """
        self.db = db or get_db()
        self.policies = registry if registry is not None else policies

    def get_stats(self) -> LendingStats:
        """Get overall lending statistics.

        Returns:
            LendingStats with counts
        """
        with self.db.get_session() as session:
            total_items = session.execute(
                select(func.count()).select_from(Item)
            ).scalar() or 0

            total_borrowers = session.execute(
                select(func.count()).select_from(Borrower)
            ).scalar() or 0

            total_loans = session.execute(
                select(func.count()).select_from(Loan)
            ).scalar() or 0

            active_loans = session.execute(
                select(func.count()).where(Loan.status == LoanStatus.ACTIVE.value)
            ).scalar() or 0

            total_copies = session.execute(
                select(func.sum(Item.total_copies))
            ).scalar() or 0

            total_available = session.execute(
                select(func.sum(Item.available_copies))
            ).scalar() or 0

            return LendingStats(
                total_items=total_items,
                total_borrowers=total_borrowers,
                total_loans=total_loans,
                active_loans=active_loans,
                total_copies=total_copies,
                total_available_copies=total_available,
            )

    def get_overdue_report(self, as_of: date) -> OverdueReport:
        """Get report of active loans past due on ``as_of``.

        Args:
            as_of: Date to measure overdue days against

        Returns:
            OverdueReport ordered by most overdue first

        Raises:
            UnknownBorrowerType: If an overdue borrower's type is not registered
        """
        with self.db.get_session() as session:
            stmt = (
                select(Loan)
                .where(
                    Loan.status == LoanStatus.ACTIVE.value,
                    Loan.due_date < as_of,
                )
                .order_by(Loan.due_date, Loan.id)
            )
            loans = session.execute(stmt).unique().scalars().all()

            entries = [
                OverdueLoan(
                    loan_id=loan.id,
                    item_id=loan.item_id,
                    item_title=loan.item.title,
                    borrower_id=loan.borrower_id,
                    borrower_name=loan.borrower.name,
                    due_date=loan.due_date,
                    days_overdue=loan.days_overdue(as_of),
                    accrued_fine=loan.borrower.compute_fine(
                        loan.days_overdue(as_of), loan.borrower.resolve_policy(self.policies)
                    ),
                )
                for loan in loans
            ]

        return OverdueReport(
            as_of=as_of,
            loans=entries,
            total_overdue=len(entries),
            oldest_overdue_days=max((e.days_overdue for e in entries), default=0),
            total_accrued_fines=sum((e.accrued_fine for e in entries), Decimal("0.00")),
        )
