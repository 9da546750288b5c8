"""
csv_sink.py
===========
Writes one CSV per (year, competition, result type) into the output directory.

File name: <year>_<competition with non-alphanumerics as "_">_<type>.csv
Columns:   Position,FirstName,LastName,Score,Year,Competition,Type

The Competition column carries the original competition name, not the
file-safe one. An existing file is overwritten.
"""

import csv
import logging
import math
import re
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Iterable, Union

from result_models import ResultRecord, ResultType

logger = logging.getLogger(__name__)

CSV_HEADER = ["Position", "FirstName", "LastName", "Score", "Year", "Competition", "Type"]

CENT = Decimal("0.01")


class SinkError(Exception):
    """Output file could not be written."""
    pass


def safe_file_name(competition_name: str) -> str:
    return re.sub(r'[^A-Za-z0-9]', '_', competition_name)


def _type_name(result_type: Union[ResultType, str]) -> str:
    return result_type.value if isinstance(result_type, ResultType) else str(result_type)


def format_score(score: float) -> str:
    """Two decimals, ties rounded half-up on the shortest decimal form (0.125 -> "0.13")."""
    if not math.isfinite(score) or abs(score) >= 1e15:
        return f"{score:.2f}"
    return str(Decimal(repr(float(score))).quantize(CENT, rounding=ROUND_HALF_UP))


class CsvSink:

    def __init__(self, output_dir: Union[str, Path] = "processed_data"):
        self.output_dir = Path(output_dir)

    def path_for(self, year: int, competition_name: str, result_type: Union[ResultType, str]) -> Path:
        return self.output_dir / f"{year}_{safe_file_name(competition_name)}_{_type_name(result_type)}.csv"

    def write(
        self,
        records: Iterable[ResultRecord],
        year: int,
        competition_name: str,
        result_type: Union[ResultType, str],
    ) -> Path:
        """Writes the records and returns the CSV path. Raises SinkError."""
        type_name = _type_name(result_type)
        path = self.path_for(year, competition_name, type_name)

        try:
            with open(path, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f, lineterminator="\n")
                writer.writerow(CSV_HEADER)
                count = 0
                for r in records:
                    writer.writerow([
                        r.position,
                        r.first_name,
                        r.last_name,
                        format_score(r.score),
                        year,
                        competition_name,
                        type_name,
                    ])
                    count += 1
        except OSError as e:
            raise SinkError(f"Cannot write {path}: {e}") from e

        logger.info(f"Saved {count} results to: {path}")
        return path
