"""
sheet_row_parser.py
===================
Extraction of result rows from spreadsheet sheets.

A sheet is a grid: ordered rows of typed cells. Column convention (0-based):
    0 — position, 1 — full name "First Last", 2 — score

Per result type:
  qualification — skips 2 header rows; needs position, name and score
  final         — skips 2 header rows; needs position and name, score → 0.0
  general       — skips 1 header row;  needs position and name, score → 0.0;
                  position may be a string ("3rd" → 3)

A row whose cells cannot be coerced becomes a ParseRowError; the rest of the
sheet is still parsed.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from result_models import ParseOutcome, ParseRowError, ResultRecord, ResultType

logger = logging.getLogger(__name__)

POSITION_COL = 0
NAME_COL = 1
SCORE_COL = 2


# ---------------------------------------------------------------------------
# Grid model
# ---------------------------------------------------------------------------

class CellKind(str, Enum):
    NUMERIC = "numeric"
    STRING  = "string"
    EMPTY   = "empty"       # blank (incl. whitespace-only text), missing or other type


class CellTypeError(ValueError):
    """Typed accessor called on a cell of another kind."""
    pass


@dataclass(frozen=True)
class Cell:
    kind: CellKind = CellKind.EMPTY
    value: Any = None

    @classmethod
    def of(cls, value: Any) -> "Cell":
        """Wraps a raw workbook value into a typed cell."""
        if isinstance(value, bool) or value is None:
            return cls(CellKind.EMPTY, value)
        if isinstance(value, (int, float)):
            return cls(CellKind.NUMERIC, value)
        if isinstance(value, str):
            if not value.strip():
                return cls(CellKind.EMPTY, value)
            return cls(CellKind.STRING, value)
        return cls(CellKind.EMPTY, value)

    @property
    def present(self) -> bool:
        return self.kind is not CellKind.EMPTY

    def numeric(self) -> float:
        if self.kind is not CellKind.NUMERIC:
            raise CellTypeError(f"expected numeric cell, got {self.kind.value} {self.value!r}")
        return float(self.value)

    def string(self) -> str:
        if self.kind is not CellKind.STRING:
            raise CellTypeError(f"expected string cell, got {self.kind.value} {self.value!r}")
        return self.value


EMPTY_CELL = Cell()


@dataclass
class Sheet:
    name: str
    rows: list[list[Cell]] = field(default_factory=list)

    @classmethod
    def from_values(cls, name: str, rows: list[list[Any]]) -> "Sheet":
        return cls(name=name, rows=[[Cell.of(v) for v in row] for row in rows])


def cell_at(row: list[Cell], col: int) -> Cell:
    return row[col] if col < len(row) else EMPTY_CELL


def split_full_name(full_name: str) -> tuple[str, str]:
    """Single-space split; a one-word name leaves the last name empty."""
    parts = full_name.split(" ")
    first = parts[0] if len(parts) > 0 else ""
    last = parts[1] if len(parts) > 1 else ""
    return first, last


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class _RowStrategy:
    result_type: ResultType
    header_rows: int = 2
    score_required: bool = False

    def parse_row(self, row: list[Cell]) -> Optional[ResultRecord]:
        """Returns None for rows lacking required cells; raises ValueError on bad cells."""
        position_cell = cell_at(row, POSITION_COL)
        name_cell = cell_at(row, NAME_COL)
        score_cell = cell_at(row, SCORE_COL)

        if not (position_cell.present and name_cell.present):
            return None
        if self.score_required and not score_cell.present:
            return None

        position = self.read_position(position_cell)
        first_name, last_name = split_full_name(name_cell.string())
        score = score_cell.numeric() if score_cell.present else 0.0

        return ResultRecord(
            first_name=first_name,
            last_name=last_name,
            position=position,
            score=score,
        )

    def read_position(self, cell: Cell) -> int:
        return int(cell.numeric())


class QualificationRowStrategy(_RowStrategy):
    result_type = ResultType.QUALIFICATION
    score_required = True


class FinalRowStrategy(_RowStrategy):
    result_type = ResultType.FINAL


class GeneralRowStrategy(_RowStrategy):
    result_type = ResultType.GENERAL
    header_rows = 1

    def read_position(self, cell: Cell) -> int:
        if cell.kind is CellKind.STRING:
            digits = re.sub(r'[^0-9]', '', cell.value)
            if not digits:
                raise ValueError(f"no digits in position {cell.value!r}")
            return int(digits)
        return int(cell.numeric())


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class SheetRowParser:
    """Dispatches each row of a sheet to the strategy for its ResultType."""

    def __init__(self):
        self.strategies = {
            ResultType.QUALIFICATION: QualificationRowStrategy(),
            ResultType.FINAL: FinalRowStrategy(),
            ResultType.GENERAL: GeneralRowStrategy(),
        }

    def parse(self, sheet: Sheet, result_type: ResultType) -> ParseOutcome:
        strategy = self.strategies[ResultType(result_type)]
        outcome = ParseOutcome()

        for index, row in enumerate(sheet.rows):
            if index < strategy.header_rows:
                continue
            try:
                outcome.add(strategy.parse_row(row))
            except (ValueError, TypeError, OverflowError) as e:
                error = ParseRowError(index, str(e), [c.value for c in row])
                logger.warning(f"SheetRowParser[{sheet.name}]: error parsing {error}")
                outcome.fail(error)

        logger.info(
            f"SheetRowParser[{sheet.name}/{strategy.result_type.value}]: "
            f"{len(outcome.records)} records, {len(outcome.errors)} rows skipped"
        )
        return outcome
