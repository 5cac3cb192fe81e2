"""Lending transaction module.

Provides functionality for:
- Issuing loans within borrower limits and item availability
- Returning loans and computing overdue fines
- Querying active and historical loans
"""

from .engine import LendingEngine
from .models import Loan
from .schemas import (
    IssueReceipt,
    LendingError,
    LoanResponse,
    LoanStatus,
    Result,
    ReturnOutcome,
)

__all__ = [
    "LendingEngine",
    "Loan",
    "IssueReceipt",
    "LendingError",
    "LoanResponse",
    "LoanStatus",
    "Result",
    "ReturnOutcome",
]
