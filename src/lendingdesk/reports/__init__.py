"""Reports module for catalog statistics and overdue loans."""

from .manager import ReportManager
from .schemas import LendingStats, OverdueLoan, OverdueReport

__all__ = [
    "ReportManager",
    "LendingStats",
    "OverdueLoan",
    "OverdueReport",
]
