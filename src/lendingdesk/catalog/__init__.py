"""Lending catalog module.

Provides:
- Items with total and available copy counts
- Borrowers and the policies that set their privileges
- A keyed directory for adding and finding both
"""

from .manager import CatalogDirectory
from .models import ActiveLoan, Borrower, Item
from .policies import (
    PRIVILEGED,
    STANDARD,
    BorrowerPolicy,
    PolicyRegistry,
    default_registry,
    get_policy,
    policies,
    register_policy,
)
from .schemas import (
    BorrowerCreate,
    BorrowerResponse,
    CatalogFile,
    ItemCreate,
    ItemResponse,
)

__all__ = [
    "CatalogDirectory",
    "ActiveLoan",
    "Borrower",
    "Item",
    "BorrowerPolicy",
    "PolicyRegistry",
    "default_registry",
    "STANDARD",
    "PRIVILEGED",
    "get_policy",
    "policies",
    "register_policy",
    "BorrowerCreate",
    "BorrowerResponse",
    "CatalogFile",
    "ItemCreate",
    "ItemResponse",
]
