"""Lending engine: issue and return workflows.

The engine is the only code that changes an item's available copies or a
borrower's active loans. Each issue or return runs in one session
transaction under the engine lock, so either every effect of the
operation is stored or none is.
"""

import logging
import threading
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..catalog.manager import CatalogDirectory
from ..catalog.models import Borrower, Item
from ..catalog.policies import BorrowerPolicy, PolicyRegistry
from ..db.sqlite import Database, get_db
from ..errors import ActiveLoanMismatch, InternalConsistencyError, UnknownBorrowerType
from .models import Loan, format_loan_id
from .schemas import (
    IssueReceipt,
    LendingError,
    LoanResponse,
    LoanStatus,
    Result,
    ReturnOutcome,
)

logger = logging.getLogger(__name__)


class LendingEngine:
    """Issues and settles loans against the catalog."""

    def __init__(
        self,
        db: Optional[Database] = None,
        directory: Optional[CatalogDirectory] = None,
        registry: Optional[PolicyRegistry] = None,
    ):
        """Initialize lending engine.

        Args:
            db: Database instance
            directory: Catalog directory sharing the same database
            registry: Borrower policies (default: the directory's registry)
        """
        self.db = db or (directory.db if directory else get_db())
        self.directory = directory or CatalogDirectory(self.db, registry)
        self.policies = registry if registry is not None else self.directory.policies
        self._lock = threading.RLock()

        with self.db.get_session() as session:
            self._loan_counter = session.execute(
                select(func.count()).select_from(Loan)
            ).scalar() or 0

    # -------------------------------------------------------------------------
    # Issue
    # -------------------------------------------------------------------------

    def issue(self, borrower_id: str, item_id: str, today: date) -> Result[IssueReceipt]:
        """Lend one copy of an item to a borrower.

        Args:
            borrower_id: Borrower ID
            item_id: Item ID
            today: Date the loan starts

        Returns:
            Result with an IssueReceipt, or the reason the loan was refused
        """
        with self._lock:
            try:
                with self.db.get_session() as session:
                    result = self._issue(session, borrower_id, item_id, today)
            except InternalConsistencyError:
                logger.exception(
                    "Issue rolled back | borrower=%s item=%s", borrower_id, item_id
                )
                raise

            # Only a committed loan consumes its id
            if result.ok:
                self._loan_counter += 1

        if result.ok:
            receipt = result.value
            logger.info(
                "Loan issued | loan=%s borrower=%s item=%s due=%s",
                receipt.loan_id, borrower_id, item_id, receipt.due_date,
            )
        else:
            logger.debug(
                "Issue refused | borrower=%s item=%s reason=%s",
                borrower_id, item_id, result.error.value,
            )
        return result

    def _issue(
        self, session: Session, borrower_id: str, item_id: str, today: date
    ) -> Result[IssueReceipt]:
        borrower = session.get(Borrower, borrower_id)
        if borrower is None:
            return Result.failure(LendingError.BORROWER_NOT_FOUND)

        policy = self._policy_for(borrower)
        if policy is None:
            return Result.failure(LendingError.UNKNOWN_BORROWER_TYPE)

        item = session.get(Item, item_id)
        if item is None:
            return Result.failure(LendingError.ITEM_NOT_FOUND)

        if not borrower.can_borrow(policy):
            return Result.failure(LendingError.BORROW_LIMIT_REACHED)

        if not item.is_available():
            return Result.failure(LendingError.ITEM_UNAVAILABLE)

        # One active loan per (borrower, item) keeps returns unambiguous
        if self._find_active_loan(session, borrower, item_id) is not None:
            return Result.failure(LendingError.DUPLICATE_LOAN)

        loan = Loan.open(format_loan_id(self._loan_counter + 1), item, borrower, today, policy)
        item.reserve_copy()
        session.add(loan)
        session.flush()
        borrower.attach_loan(loan)
        session.flush()

        if borrower.active_loan_count > policy.loan_limit:
            raise ActiveLoanMismatch(
                f"Borrower {borrower.id} holds {borrower.active_loan_count} loans, "
                f"limit is {policy.loan_limit}"
            )

        return Result.success(
            IssueReceipt(
                loan_id=loan.id,
                borrower_id=borrower.id,
                item_id=item.id,
                borrow_date=loan.borrow_date,
                due_date=loan.due_date,
            )
        )

    # -------------------------------------------------------------------------
    # Return
    # -------------------------------------------------------------------------

    def return_item(self, borrower_id: str, item_id: str, today: date) -> Result[ReturnOutcome]:
        """Settle the borrower's active loan of an item.

        Args:
            borrower_id: Borrower ID
            item_id: Item ID
            today: Date the copy came back

        Returns:
            Result with the overdue days and fine, or the reason it was refused
        """
        with self._lock:
            try:
                with self.db.get_session() as session:
                    borrower = session.get(Borrower, borrower_id)
                    if borrower is None:
                        result = Result.failure(LendingError.BORROWER_NOT_FOUND)
                    else:
                        loan = self._find_active_loan(session, borrower, item_id)
                        if loan is None:
                            result = Result.failure(LendingError.NO_ACTIVE_LOAN_FOR_ITEM)
                        else:
                            result = self._settle(session, loan, borrower, today)
            except InternalConsistencyError:
                logger.exception(
                    "Return rolled back | borrower=%s item=%s", borrower_id, item_id
                )
                raise

        self._log_return(result, borrower_id, item_id)
        return result

    def return_loan(self, loan_id: str, today: date) -> Result[ReturnOutcome]:
        """Settle a loan by its ID.

        Returning an already returned loan is refused with ALREADY_RETURNED
        and changes nothing.

        Args:
            loan_id: Loan ID
            today: Date the copy came back

        Returns:
            Result with the overdue days and fine, or the reason it was refused
        """
        with self._lock:
            try:
                with self.db.get_session() as session:
                    loan = session.get(Loan, loan_id)
                    if loan is None:
                        result = Result.failure(LendingError.LOAN_NOT_FOUND)
                    else:
                        result = self._settle(session, loan, loan.borrower, today)
            except InternalConsistencyError:
                logger.exception("Return rolled back | loan=%s", loan_id)
                raise

        self._log_return(result, None, None, loan_id=loan_id)
        return result

    def _settle(
        self, session: Session, loan: Loan, borrower: Borrower, today: date
    ) -> Result[ReturnOutcome]:
        if not loan.is_active:
            return Result.failure(LendingError.ALREADY_RETURNED)

        policy = self._policy_for(borrower)
        if policy is None:
            return Result.failure(LendingError.UNKNOWN_BORROWER_TYPE)

        loan.mark_returned(today)

        if not borrower.holds_loan(loan.id):
            raise ActiveLoanMismatch(
                f"Active loan {loan.id} is missing from borrower {borrower.id}"
            )

        days_overdue = loan.days_overdue(today)
        fine = borrower.compute_fine(days_overdue, policy)

        loan.item.release_copy()
        borrower.detach_loan(loan)
        session.flush()

        return Result.success(
            ReturnOutcome(
                loan_id=loan.id,
                borrower_id=borrower.id,
                item_id=loan.item_id,
                return_date=today,
                days_overdue=days_overdue,
                fine=fine,
            )
        )

    def _policy_for(self, borrower: Borrower) -> Optional[BorrowerPolicy]:
        try:
            return borrower.resolve_policy(self.policies)
        except UnknownBorrowerType:
            logger.warning(
                "No policy registered for borrower %s (type %s)",
                borrower.id, borrower.borrower_type,
            )
            return None

    def _log_return(
        self,
        result: Result[ReturnOutcome],
        borrower_id: Optional[str],
        item_id: Optional[str],
        loan_id: Optional[str] = None,
    ) -> None:
        if result.ok:
            outcome = result.value
            logger.info(
                "Loan returned | loan=%s borrower=%s item=%s overdue=%d fine=%s",
                outcome.loan_id, outcome.borrower_id, outcome.item_id,
                outcome.days_overdue, outcome.fine,
            )
        else:
            logger.debug(
                "Return refused | loan=%s borrower=%s item=%s reason=%s",
                loan_id, borrower_id, item_id, result.error.value,
            )

    def _find_active_loan(
        self, session: Session, borrower: Borrower, item_id: str
    ) -> Optional[Loan]:
        """Find the borrower's active loan of an item via the active index."""
        loan_ids = borrower.active_loan_ids
        if not loan_ids:
            return None

        loans = session.execute(select(Loan).where(Loan.id.in_(loan_ids))).scalars().all()
        if len(loans) != len(loan_ids) or any(not loan.is_active for loan in loans):
            raise ActiveLoanMismatch(
                f"Active loans of borrower {borrower.id} do not match loan history"
            )

        matches = [loan for loan in loans if loan.item_id == item_id]
        if len(matches) > 1:
            raise ActiveLoanMismatch(
                f"Borrower {borrower.id} holds {len(matches)} active loans of item {item_id}"
            )
        return matches[0] if matches else None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        """Get a loan by ID.

        Args:
            loan_id: Loan ID

        Returns:
            Loan or None
        """
        with self.db.get_session() as session:
            loan = session.get(Loan, loan_id)
            if loan:
                session.expunge(loan)
            return loan

    def list_loans(
        self,
        borrower_id: Optional[str] = None,
        item_id: Optional[str] = None,
        active_only: bool = False,
    ) -> list[Loan]:
        """List loans with optional filters, oldest first.

        Args:
            borrower_id: Filter by borrower
            item_id: Filter by item
            active_only: Only return loans not yet returned

        Returns:
            List of loans
        """
        with self.db.get_session() as session:
            stmt = select(Loan)

            if borrower_id:
                stmt = stmt.where(Loan.borrower_id == borrower_id)
            if item_id:
                stmt = stmt.where(Loan.item_id == item_id)
            if active_only:
                stmt = stmt.where(Loan.status == LoanStatus.ACTIVE.value)

            stmt = stmt.order_by(Loan.id)

            loans = session.execute(stmt).unique().scalars().all()
            for loan in loans:
                session.expunge(loan)
            return list(loans)

    def active_loans_for(self, borrower_id: str) -> list[Loan]:
        """Loans currently held by a borrower."""
        return self.list_loans(borrower_id=borrower_id, active_only=True)

    def describe_loan(self, loan: Loan) -> LoanResponse:
        """Build a response schema with item title and borrower name."""
        response = LoanResponse.model_validate(loan)
        response.item_title = loan.item.title if loan.item else None
        response.borrower_name = loan.borrower.name if loan.borrower else None
        return response

    @property
    def loans_issued(self) -> int:
        """Number of loans issued by this engine's database."""
        return self._loan_counter
