"""
result_models.py
================
Data model for normalized drift competition results.

    ResultType    — which extraction pipeline applies (qualification/final/general)
    ResultRecord  — one (position, first name, last name, score) tuple
    ParseContext  — year + competition + type, created once per document/sheet
    ParseRowError — a single line/row failed field extraction or coercion
    ParseOutcome  — records parsed from one document plus per-row diagnostics

Dependencies: standard library only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional


class ResultType(str, Enum):
    """Result category of a document or a sheet."""
    QUALIFICATION = "qualification"
    FINAL         = "final"
    GENERAL       = "general"


@dataclass(frozen=True)
class ResultRecord:
    """Normalized result row. Equality is structural."""
    first_name: str
    last_name: str
    position: int
    score: float = 0.0

    def __post_init__(self):
        if self.position < 0:
            raise ValueError(f"position must be >= 0, got {self.position}")

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "score": self.score,
        }


@dataclass(frozen=True)
class ParseContext:
    """Per-document (or per-sheet) metadata shared by every record."""
    year: int
    competition_name: str
    result_type: ResultType


class ParseRowError(ValueError):
    """One line/row could not be turned into a ResultRecord."""

    def __init__(self, row_number: int, reason: str, raw: object = None):
        self.row_number = row_number
        self.reason = reason
        self.raw = raw
        super().__init__(f"row {row_number}: {reason}")


@dataclass
class ParseOutcome:
    """
    Successfully parsed records in source order, plus the rows that failed.

    Iteration and len() work on the records, so an outcome can be handed
    to anything expecting a sequence of ResultRecord.
    """
    records: list[ResultRecord] = field(default_factory=list)
    errors: list[ParseRowError] = field(default_factory=list)

    def __iter__(self) -> Iterator[ResultRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def add(self, record: Optional[ResultRecord]):
        if record is not None:
            self.records.append(record)

    def fail(self, error: ParseRowError):
        self.errors.append(error)
