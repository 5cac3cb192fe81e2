"""Exception hierarchy for lendingdesk.

Expected lending outcomes (borrower not found, limit reached, ...) are not
exceptions; the engine reports them as ``LendingError`` values inside a
``Result``. The classes here cover:

- domain guards raised by model methods (``NoCopyAvailable``,
  ``AlreadyReturned``, ``InvalidBorrower``);
- internal-consistency violations that indicate corrupted bookkeeping;
- catalog directory errors.
"""


class LendingDeskError(Exception):
    """Base exception for lendingdesk errors."""


# -------------------------------------------------------------------------
# Domain guards
# -------------------------------------------------------------------------


class NoCopyAvailable(LendingDeskError):
    """An item has no available copy to reserve."""

    def __init__(self, item_id: str):
        super().__init__(f"No copy of item {item_id} is available")
        self.item_id = item_id


class AlreadyReturned(LendingDeskError):
    """A loan's return was processed more than once."""

    def __init__(self, loan_id: str):
        super().__init__(f"Loan {loan_id} has already been returned")
        self.loan_id = loan_id


class InvalidBorrower(LendingDeskError):
    """A loan was opened for a borrower that may not borrow."""


# -------------------------------------------------------------------------
# Internal consistency
# -------------------------------------------------------------------------


class InternalConsistencyError(LendingDeskError):
    """Stored state violates an invariant the engine is meant to keep."""


class CopyCountOverflow(InternalConsistencyError):
    """A copy was released for an item that already has every copy on hand."""

    def __init__(self, item_id: str, total_copies: int):
        super().__init__(
            f"Item {item_id} already has all {total_copies} copies available"
        )
        self.item_id = item_id
        self.total_copies = total_copies


class ActiveLoanMismatch(InternalConsistencyError):
    """A borrower's active-loan index disagrees with the loan history."""


# -------------------------------------------------------------------------
# Catalog directory
# -------------------------------------------------------------------------


class DuplicateEntryError(LendingDeskError, ValueError):
    """An item or borrower with the same identifier already exists."""


class UnknownBorrowerType(LendingDeskError, LookupError):
    """No borrower policy is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Unknown borrower type: {name}")
        self.name = name
