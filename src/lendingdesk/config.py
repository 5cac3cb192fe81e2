"""Configuration management for lendingdesk.

Loads configuration from environment variables and provides defaults.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

MEMORY_DB = ":memory:"


@dataclass
class Config:
    """Application configuration."""

    # Database (":memory:" keeps everything in-process)
    db_path: str

    # Display name used by reports and the CLI
    library_name: str

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path = os.environ.get("LENDINGDESK_DB_PATH", MEMORY_DB)
        if db_path != MEMORY_DB:
            db_path = str(Path(db_path).expanduser())

        return cls(
            db_path=db_path,
            library_name=os.environ.get("LENDINGDESK_LIBRARY_NAME", "Central Library"),
            log_level=os.environ.get("LENDINGDESK_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.db_path != MEMORY_DB:
            parent = Path(self.db_path).parent
            if not parent.exists():
                try:
                    parent.mkdir(parents=True, exist_ok=True)
                except PermissionError:
                    errors.append(f"Cannot create database directory: {parent}")

        if not isinstance(logging.getLevelName(self.log_level), int):
            errors.append(f"Unknown log level: {self.log_level}")

        if not self.library_name.strip():
            errors.append("Library name must not be empty")

        return errors

    @property
    def is_memory(self) -> bool:
        """Check if the configured database lives in memory."""
        return self.db_path == MEMORY_DB


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
