"""Tests for the Loan model."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from lendingdesk.catalog.models import Borrower, Item
from lendingdesk.catalog.policies import BorrowerPolicy
from lendingdesk.errors import AlreadyReturned, InvalidBorrower
from lendingdesk.lending.models import Loan, format_loan_id

DAY0 = date(2025, 1, 1)


@pytest.fixture
def item():
    return Item(id="B001", title="Test Item", total_copies=1, available_copies=1)


@pytest.fixture
def standard():
    return Borrower(id="S001", name="Alice", borrower_type="standard")


@pytest.fixture
def privileged():
    return Borrower(id="F001", name="Carol", borrower_type="privileged")


class TestLoanOpen:
    """Tests for creating loans."""

    def test_due_date_standard(self, item, standard):
        """Test standard loans run for 14 days."""
        loan = Loan.open("T0001", item, standard, DAY0)

        assert loan.id == "T0001"
        assert loan.borrow_date == DAY0
        assert loan.due_date == DAY0 + timedelta(days=14)
        assert loan.return_date is None
        assert loan.is_active
        assert loan.status == "active"

    def test_due_date_privileged(self, item, privileged):
        """Test privileged loans run for 30 days."""
        loan = Loan.open("T0001", item, privileged, DAY0)
        assert loan.due_date == date(2025, 1, 31)

    def test_open_without_borrower(self, item):
        """Test a loan needs a borrower."""
        with pytest.raises(InvalidBorrower):
            Loan.open("T0001", item, None, DAY0)

    def test_open_for_borrower_at_limit(self, item, standard):
        """Test a borrower at their limit cannot open a loan."""
        for i in range(standard.loan_limit):
            standard.attach_loan(Loan(id=format_loan_id(i + 1)))

        with pytest.raises(InvalidBorrower):
            Loan.open("T0009", item, standard, DAY0)

    def test_open_with_explicit_policy(self, item):
        """Test a given policy sets the period for a type the shared registry lacks."""
        visiting = BorrowerPolicy(name="visiting", loan_limit=1, loan_period_days=7,
                                  fine_rate=Decimal("2.00"))
        borrower = Borrower(id="V001", name="Vera", borrower_type="visiting")

        loan = Loan.open("T0001", item, borrower, DAY0, visiting)
        assert loan.due_date == DAY0 + timedelta(days=7)

    def test_format_loan_id(self):
        """Test loan ids are zero padded."""
        assert format_loan_id(1) == "T0001"
        assert format_loan_id(12345) == "T12345"


class TestLoanReturn:
    """Tests for closing loans and overdue days."""

    def test_mark_returned(self, item, standard):
        """Test marking a loan returned records the date."""
        loan = Loan.open("T0001", item, standard, DAY0)
        loan.mark_returned(DAY0 + timedelta(days=3))

        assert loan.return_date == date(2025, 1, 4)
        assert loan.status == "returned"
        assert not loan.is_active

    def test_mark_returned_twice(self, item, standard):
        """Test the return date is set exactly once."""
        loan = Loan.open("T0001", item, standard, DAY0)
        loan.mark_returned(DAY0)

        with pytest.raises(AlreadyReturned):
            loan.mark_returned(DAY0 + timedelta(days=10))

        assert loan.return_date == DAY0

    def test_days_overdue_active(self, item, standard):
        """Test overdue days are measured against as_of while active."""
        loan = Loan.open("T0001", item, standard, DAY0)

        assert loan.days_overdue(DAY0) == 0
        assert loan.days_overdue(DAY0 + timedelta(days=14)) == 0
        assert loan.days_overdue(DAY0 + timedelta(days=15)) == 1
        assert loan.days_overdue(DAY0 + timedelta(days=35)) == 21

    def test_days_overdue_never_negative(self, item, standard):
        """Test early dates never produce negative days."""
        loan = Loan.open("T0001", item, standard, DAY0)
        assert loan.days_overdue(DAY0 - timedelta(days=100)) == 0

    def test_days_overdue_uses_return_date(self, item, standard):
        """Test a returned loan stops accruing overdue days."""
        loan = Loan.open("T0001", item, standard, DAY0)
        loan.mark_returned(DAY0 + timedelta(days=20))

        assert loan.days_overdue(DAY0 + timedelta(days=100)) == 6

    def test_is_overdue(self, item, standard):
        """Test only active loans past due are overdue."""
        loan = Loan.open("T0001", item, standard, DAY0)
        assert not loan.is_overdue(DAY0 + timedelta(days=14))
        assert loan.is_overdue(DAY0 + timedelta(days=15))

        loan.mark_returned(DAY0 + timedelta(days=20))
        assert not loan.is_overdue(DAY0 + timedelta(days=30))
