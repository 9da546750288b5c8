"""
pdf_row_parser.py
=================
Rule-based extraction of result rows from PDF plain text. Pure Python + regex.

The text is split into lines and every line is handled on its own (no state
carries across lines). One strategy per result type:

  1. QualificationLineStrategy — "1 Jonas Jonaitis 95.50 ..."
     Line must have the shape <digits> <name> <name> <digits>.<digits>;
     the first four whitespace tokens are position, names and score.
  2. FinalLineStrategy — "1. Jonas Jonaitis (Team) 98.5"
     First match anywhere in the line, score taken from the first number
     after the names.
  3. GeneralLineStrategy — like final, but "1 ", "1." and "1 ." are all
     accepted as the position separator and the score is optional (0.0).

A line that matches the shape but cannot be converted becomes a
ParseRowError; the remaining lines are still parsed.

Usage:
    parser = PdfRowParser()
    outcome = parser.parse(text, ResultType.FINAL)
    for record in outcome:
        ...
"""

import logging
import re
from typing import Optional

from result_models import ParseOutcome, ParseRowError, ResultRecord, ResultType

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# Latin letters plus the Lithuanian alphabet
NAME = r'[A-Za-zĄČĘĖĮŠŲŪŽąčęėįšųūž]+'

RE_LINE_SPLIT = re.compile(r'\r?\n')

# Qualification: the whole line must carry the shape somewhere
RE_QUALIFICATION = re.compile(
    r'.*\d+\s+' + NAME + r'\s+' + NAME + r'\s+\d+\.\d+.*'
)

RE_FINAL = re.compile(
    r'(\d+)\.\s+'                   # position "1."
    r'(' + NAME + r')\s+'           # first name
    r'(' + NAME + r')'              # last name
    r'.*?(\d+\.?\d*)'               # first number after the name = score
)

RE_GENERAL = re.compile(
    r'(\d+)[.\s]+'                  # position "1", "1." or "1 ."
    r'(' + NAME + r')\s+'
    r'(' + NAME + r')'
    r'(?:.*?(\d+\.?\d*))?'          # score is optional
)


def split_lines(text: str) -> list[str]:
    """Splits on LF / CRLF boundaries."""
    return RE_LINE_SPLIT.split(text or "")


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class QualificationLineStrategy:
    """Whitespace-token parsing of qualification tables."""

    result_type = ResultType.QUALIFICATION

    def parse_line(self, line: str, line_number: int) -> Optional[ResultRecord]:
        if not RE_QUALIFICATION.fullmatch(line):
            return None
        parts = line.strip().split()
        if len(parts) < 4:
            return None
        try:
            return ResultRecord(
                first_name=parts[1],
                last_name=parts[2],
                position=int(parts[0]),
                score=float(parts[3]),
            )
        except ValueError as e:
            raise ParseRowError(line_number, f"bad numeric token: {e}", line)


class _PatternLineStrategy:
    """Scans a line for the first match of PATTERN (groups: pos, first, last, score)."""

    result_type: ResultType
    PATTERN: re.Pattern

    def parse_line(self, line: str, line_number: int) -> Optional[ResultRecord]:
        m = self.PATTERN.search(line)
        if not m:
            return None
        position, first_name, last_name, score = m.groups()
        try:
            return ResultRecord(
                first_name=first_name,
                last_name=last_name,
                position=int(position),
                score=float(score) if score is not None else 0.0,
            )
        except ValueError as e:
            raise ParseRowError(line_number, str(e), line)


class FinalLineStrategy(_PatternLineStrategy):
    result_type = ResultType.FINAL
    PATTERN = RE_FINAL


class GeneralLineStrategy(_PatternLineStrategy):
    result_type = ResultType.GENERAL
    PATTERN = RE_GENERAL


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class PdfRowParser:
    """Dispatches each line to the strategy for the document's ResultType."""

    def __init__(self):
        self.strategies = {
            ResultType.QUALIFICATION: QualificationLineStrategy(),
            ResultType.FINAL: FinalLineStrategy(),
            ResultType.GENERAL: GeneralLineStrategy(),
        }

    def parse(self, text: str, result_type: ResultType) -> ParseOutcome:
        """Returns records in line order, plus the lines that failed."""
        strategy = self.strategies[ResultType(result_type)]
        outcome = ParseOutcome()

        for i, line in enumerate(split_lines(text), 1):
            try:
                outcome.add(strategy.parse_line(line, i))
            except ParseRowError as e:
                logger.warning(f"PdfRowParser[{strategy.result_type.value}]: skipped {e} — {line.strip()!r}")
                outcome.fail(e)

        logger.info(
            f"PdfRowParser[{strategy.result_type.value}]: "
            f"{len(outcome.records)} records, {len(outcome.errors)} rows skipped"
        )
        return outcome
