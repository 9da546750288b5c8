"""
text_classifier.py
==================
Decides which extraction pipeline applies to a document or a sheet.

Keyword containment, case-insensitive, in priority order:
  1. "kvalifikacija" / "qualification" → qualification
  2. "finalas" / "final"               → final
  3. anything else                     → general (PDF path)

Sheets are stricter: a sheet is treated as general only when its name
contains "rezultatai" / "results"; a sheet matching nothing is skipped.
"""

import logging
from typing import Optional

from result_models import ResultType

logger = logging.getLogger(__name__)


QUALIFICATION_KEYWORDS = ("kvalifikacija", "qualification")
FINAL_KEYWORDS = ("finalas", "final")
GENERAL_KEYWORDS = ("rezultatai", "results")


def _contains_any(lower: str, keywords: tuple[str, ...]) -> bool:
    return any(k in lower for k in keywords)


def classify(text: str) -> ResultType:
    """Classifies extracted document text. Never fails; defaults to general."""
    lower = (text or "").lower()
    if _contains_any(lower, QUALIFICATION_KEYWORDS):
        return ResultType.QUALIFICATION
    if _contains_any(lower, FINAL_KEYWORDS):
        return ResultType.FINAL
    return ResultType.GENERAL


def classify_sheet(sheet_name: str) -> Optional[ResultType]:
    """
    Classifies a spreadsheet sheet by its name.

    Returns None for sheets that match no keyword group; the caller skips
    them instead of defaulting to general.
    """
    lower = (sheet_name or "").lower()
    if _contains_any(lower, QUALIFICATION_KEYWORDS):
        return ResultType.QUALIFICATION
    if _contains_any(lower, FINAL_KEYWORDS):
        return ResultType.FINAL
    if _contains_any(lower, GENERAL_KEYWORDS):
        return ResultType.GENERAL
    logger.debug(f"Sheet '{sheet_name}' matches no result keyword")
    return None
