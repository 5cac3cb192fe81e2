"""lendingdesk - lending catalog and loan transaction engine."""

__version__ = "0.1.0"
