"""Pydantic schemas and result types for lending."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class LoanStatus(str, Enum):
    """Status of a loan."""

    ACTIVE = "active"
    RETURNED = "returned"


class LendingError(str, Enum):
    """Reasons an issue or return request can be refused."""

    # Lookup
    BORROWER_NOT_FOUND = "borrower_not_found"
    ITEM_NOT_FOUND = "item_not_found"
    LOAN_NOT_FOUND = "loan_not_found"
    UNKNOWN_BORROWER_TYPE = "unknown_borrower_type"

    # Eligibility
    BORROW_LIMIT_REACHED = "borrow_limit_reached"
    ITEM_UNAVAILABLE = "item_unavailable"
    DUPLICATE_LOAN = "duplicate_loan"

    # Return
    NO_ACTIVE_LOAN_FOR_ITEM = "no_active_loan_for_item"
    ALREADY_RETURNED = "already_returned"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an engine operation: a value or one error kind."""

    value: Optional[T] = None
    error: Optional[LendingError] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: LendingError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising ValueError if the operation failed."""
        if self.error is not None:
            raise ValueError(f"Operation failed: {self.error.value}")
        return self.value


class IssueReceipt(BaseModel):
    """Result of a successful issue."""

    loan_id: str
    borrower_id: str
    item_id: str
    borrow_date: date
    due_date: date


class ReturnOutcome(BaseModel):
    """Result of a successful return. The fine is informational only."""

    loan_id: str
    borrower_id: str
    item_id: str
    return_date: date
    days_overdue: int = Field(ge=0)
    fine: Decimal = Field(ge=0)

    @property
    def on_time(self) -> bool:
        return self.days_overdue == 0


class LoanResponse(BaseModel):
    """Schema for loan responses."""

    id: str
    item_id: str
    borrower_id: str
    status: LoanStatus
    borrow_date: date
    due_date: date
    return_date: Optional[date]

    # Related data (populated by engine)
    item_title: Optional[str] = None
    borrower_name: Optional[str] = None

    model_config = {"from_attributes": True}
