"""Borrower policies.

A policy is the capability set that distinguishes one kind of borrower from
another: how many loans they may hold, how long a loan runs, and how an
overdue fine is computed. Borrowers carry a policy name; everything else is
looked up here, so adding a borrower category means registering a new policy.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterator, Optional, Union

from ..errors import UnknownBorrowerType

CENTS = Decimal("0.01")

FineFunction = Callable[[Decimal, int], Decimal]


def linear_fine(rate: Decimal, days_overdue: int) -> Decimal:
    """Charge ``rate`` for every overdue day."""
    return rate * days_overdue


@dataclass(frozen=True)
class BorrowerPolicy:
    """Policy constants for one borrower category."""

    name: str
    loan_limit: int
    loan_period_days: int
    fine_rate: Decimal
    fine_function: FineFunction = field(default=linear_fine, compare=False)
    label: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Policy name must not be empty")
        if self.loan_limit < 0:
            raise ValueError("loan_limit must be >= 0")
        if self.loan_period_days < 0:
            raise ValueError("loan_period_days must be >= 0")
        if not isinstance(self.fine_rate, Decimal):
            object.__setattr__(self, "fine_rate", Decimal(str(self.fine_rate)))
        if self.fine_rate < 0:
            raise ValueError("fine_rate must be >= 0")

    @property
    def display_name(self) -> str:
        """Human-facing name for the category."""
        return self.label or self.name.replace("_", " ").title()

    def compute_fine(self, days_overdue: int) -> Decimal:
        """Compute the fine owed for ``days_overdue`` days.

        Zero or negative days cost nothing. The result is rounded to cents
        and never negative.
        """
        if days_overdue <= 0:
            return Decimal("0.00")
        amount = self.fine_function(self.fine_rate, days_overdue)
        return max(Decimal("0.00"), Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP))


STANDARD = BorrowerPolicy(
    name="standard",
    loan_limit=3,
    loan_period_days=14,
    fine_rate=Decimal("1.00"),
)

PRIVILEGED = BorrowerPolicy(
    name="privileged",
    loan_limit=5,
    loan_period_days=30,
    fine_rate=Decimal("0.50"),
)


class PolicyRegistry:
    """Name -> policy lookup."""

    def __init__(self, policies: tuple[BorrowerPolicy, ...] = ()):
        self._policies: dict[str, BorrowerPolicy] = {}
        for policy in policies:
            self.register(policy)

    def register(self, policy: BorrowerPolicy, replace: bool = False) -> BorrowerPolicy:
        """Register a policy under its name.

        Args:
            policy: Policy to add
            replace: Allow overwriting an existing policy of the same name

        Returns:
            The registered policy
        """
        key = policy.name.lower()
        if key in self._policies and not replace:
            raise ValueError(f"Borrower type already registered: {policy.name}")
        self._policies[key] = policy
        return policy

    def unregister(self, name: str) -> None:
        """Remove a policy. Unknown names are ignored."""
        self._policies.pop(name.lower(), None)

    def get(self, name: str) -> BorrowerPolicy:
        """Look up a policy by name (case-insensitive)."""
        try:
            return self._policies[name.lower()]
        except KeyError:
            raise UnknownBorrowerType(name) from None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._policies

    def __iter__(self) -> Iterator[BorrowerPolicy]:
        return iter(self._policies.values())

    def names(self) -> list[str]:
        return list(self._policies)


def default_registry() -> PolicyRegistry:
    """A new registry holding only the built-in categories."""
    return PolicyRegistry((STANDARD, PRIVILEGED))


# Shared registry used when a directory or engine is not given its own
policies = default_registry()


def get_policy(name: Union[str, BorrowerPolicy]) -> BorrowerPolicy:
    """Resolve a policy name (or pass a policy through)."""
    if isinstance(name, BorrowerPolicy):
        return name
    return policies.get(name)


def register_policy(policy: BorrowerPolicy, replace: bool = False) -> BorrowerPolicy:
    """Register a new borrower category."""
    return policies.register(policy, replace=replace)
