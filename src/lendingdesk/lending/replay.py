"""Transaction scripts: dated issue/return rows applied in order.

A script is a CSV file with the columns ``date``, ``action``,
``borrower_id`` and ``item_id``. ``action`` is ``issue`` or ``return``.
Blank lines and rows whose date starts with ``#`` are skipped.
"""

import csv
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Iterator, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from .engine import LendingEngine
from .schemas import Result

REQUIRED_COLUMNS = ("date", "action", "borrower_id", "item_id")


class ScriptAction(str, Enum):
    """Kind of transaction in a script row."""

    ISSUE = "issue"
    RETURN = "return"


class ScriptStep(BaseModel):
    """One row of a transaction script."""

    line: int = Field(ge=1)
    date: date
    action: ScriptAction
    borrower_id: str = Field(..., min_length=1)
    item_id: str = Field(..., min_length=1)

    @field_validator("action", mode="before")
    @classmethod
    def normalise_action(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class ScriptError(ValueError):
    """A transaction script could not be parsed."""

    def __init__(self, message: str, line: int = 0):
        super().__init__(f"line {line}: {message}" if line else message)
        self.line = line


def read_script(path: Union[str, Path]) -> list[ScriptStep]:
    """Parse a transaction script.

    Args:
        path: Path to the CSV file

    Returns:
        Steps in file order

    Raises:
        ScriptError: If a column is missing or a row is invalid
    """
    with open(path, newline="", encoding="utf-8") as f:
        return list(_parse_rows(csv.DictReader(f)))


def _parse_rows(reader: csv.DictReader) -> Iterator[ScriptStep]:
    missing = [c for c in REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
    if missing:
        raise ScriptError(f"missing columns: {', '.join(missing)}")

    for row in reader:
        line = reader.line_num
        raw_date = (row.get("date") or "").strip()
        if not raw_date or raw_date.startswith("#"):
            continue
        try:
            yield ScriptStep(
                line=line,
                date=raw_date,
                action=row.get("action") or "",
                borrower_id=(row.get("borrower_id") or "").strip(),
                item_id=(row.get("item_id") or "").strip(),
            )
        except ValidationError as e:
            raise ScriptError(str(e.errors()[0]["msg"]), line) from e


def apply_step(engine: LendingEngine, step: ScriptStep) -> Result:
    """Run one script step against the engine."""
    if step.action == ScriptAction.ISSUE:
        return engine.issue(step.borrower_id, step.item_id, step.date)
    return engine.return_item(step.borrower_id, step.item_id, step.date)
