"""Pydantic schemas for lending reports."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class LendingStats(BaseModel):
    """Overall catalog and lending statistics."""

    total_items: int
    total_borrowers: int
    total_loans: int
    active_loans: int
    total_copies: int
    total_available_copies: int


class OverdueLoan(BaseModel):
    """An active loan past its due date."""

    loan_id: str
    item_id: str
    item_title: str
    borrower_id: str
    borrower_name: str
    due_date: date
    days_overdue: int = Field(ge=1)
    accrued_fine: Decimal = Field(ge=0)


class OverdueReport(BaseModel):
    """Report of overdue loans as of a date."""

    as_of: date
    loans: list[OverdueLoan]
    total_overdue: int
    oldest_overdue_days: int
    total_accrued_fines: Decimal
