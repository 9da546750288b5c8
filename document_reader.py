"""
document_reader.py
==================
Turns downloaded result documents into parser input.

  - PdfTextExtractor: pypdf text layer of every page, joined by newlines
  - SpreadsheetReader: openpyxl sheets as grids of typed cells;
    legacy .xls is converted to .xlsx with headless LibreOffice first

Usage:
    kind = document_kind("2022_Rezultatai.xlsx")     # DocumentKind.SPREADSHEET
    text = PdfTextExtractor().extract_text("downloads/finalas.pdf")
    sheets = SpreadsheetReader().open("downloads/2022_Rezultatai.xlsx")

Dependencies:
    pip install pypdf openpyxl
    (optional, for .xls) apt install libreoffice-calc
"""

import logging
import subprocess
from enum import Enum
from pathlib import Path
from typing import Union

import openpyxl
import pypdf
from pypdf.errors import PyPdfError

from sheet_row_parser import Sheet

logger = logging.getLogger(__name__)

PDF_EXTENSIONS = (".pdf",)
SPREADSHEET_EXTENSIONS = (".xlsx", ".xls")

CONVERT_TIMEOUT = 60  # seconds for one LibreOffice conversion


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class UnsupportedFormat(Exception):
    """File extension is neither PDF nor spreadsheet."""
    pass


class DocumentReadError(Exception):
    """Document exists but cannot be opened or converted."""
    pass


# ---------------------------------------------------------------------------
# Dispatch by extension
# ---------------------------------------------------------------------------

class DocumentKind(str, Enum):
    PDF         = "pdf"
    SPREADSHEET = "spreadsheet"


def document_kind(file_name: str) -> DocumentKind:
    """Raises UnsupportedFormat for anything but .pdf / .xlsx / .xls."""
    lower = file_name.lower()
    if lower.endswith(PDF_EXTENSIONS):
        return DocumentKind.PDF
    if lower.endswith(SPREADSHEET_EXTENSIONS):
        return DocumentKind.SPREADSHEET
    raise UnsupportedFormat(f"Unsupported file format: {file_name}")


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------

class PdfTextExtractor:

    def extract_text(self, pdf_path: Union[str, Path]) -> str:
        path = Path(pdf_path)
        try:
            reader = pypdf.PdfReader(path)
            pages = list(reader.pages)
        except (PyPdfError, OSError, ValueError) as e:
            raise DocumentReadError(f"Cannot read PDF {path.name}: {e}") from e

        texts = []
        for i, page in enumerate(pages):
            try:
                texts.append(page.extract_text() or "")
            except Exception as e:
                logger.warning(f"  {path.name} page {i + 1}: pypdf error — {e}")
                texts.append("")

        text = "\n".join(texts)
        logger.debug(f"PDF {path.name}: {len(pages)} pages, {len(text):,} chars")
        return text


# ---------------------------------------------------------------------------
# Spreadsheets
# ---------------------------------------------------------------------------

class SpreadsheetReader:

    def open(self, workbook_path: Union[str, Path]) -> list[Sheet]:
        """Reads every sheet into memory, in workbook order."""
        path = self._ensure_xlsx(Path(workbook_path))
        try:
            wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
        except Exception as e:
            raise DocumentReadError(f"Cannot open workbook {path.name}: {e}") from e

        # read_only workbooks parse sheet XML lazily, so damage surfaces here
        try:
            sheets = [
                Sheet.from_values(ws.title, [list(row) for row in ws.iter_rows(values_only=True)])
                for ws in wb.worksheets
            ]
        except Exception as e:
            raise DocumentReadError(f"Cannot read sheets of {path.name}: {e}") from e
        finally:
            wb.close()

        logger.debug(f"Workbook {path.name}: sheets {[s.name for s in sheets]}")
        return sheets

    @staticmethod
    def _ensure_xlsx(path: Path) -> Path:
        """Converts .xls to .xlsx next to the original (reused if already there)."""
        if path.suffix.lower() != ".xls":
            return path

        xlsx_path = path.with_suffix(".xlsx")
        if xlsx_path.exists() and xlsx_path.stat().st_mtime >= path.stat().st_mtime:
            return xlsx_path

        try:
            subprocess.run(
                ["libreoffice", "--headless", "--convert-to", "xlsx",
                 str(path), "--outdir", str(path.parent)],
                capture_output=True, text=True, timeout=CONVERT_TIMEOUT,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            raise DocumentReadError(
                f"Cannot convert {path.name} to .xlsx ({e}). "
                f"Install LibreOffice: apt install libreoffice-calc"
            ) from e

        if not xlsx_path.exists():
            raise DocumentReadError(f"LibreOffice produced no .xlsx for {path.name}")

        logger.info(f"Converted {path.name} → {xlsx_path.name}")
        return xlsx_path
