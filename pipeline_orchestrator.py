"""
pipeline_orchestrator.py
========================
Drives the drift results pipeline, year by year and file by file.

Pipeline for one listed document:
  1. Link selection (link text mentions "rezultatai" / "results")
  2. Dedup by file name (RunContext, per run)
  3. Format check by extension (document_reader.document_kind)
  4. Download (result_downloader.Downloader)
  5. PDF: text → competition name → classify → PdfRowParser → CsvSink
     Spreadsheet: per sheet: classify sheet name → SheetRowParser → CsvSink

Principles:
  - Sequential: one document is downloaded, parsed and written before the next
  - Isolation: a failing document never stops the run; a failing row never
    stops the document
  - Idempotence within a run: a file name is handled at most once

Usage:
    with DriftResultsOrchestrator() as orch:
        summary = orch.run()
    print(summary.summary())

    # Local file, no network
    with DriftResultsOrchestrator() as orch:
        result = orch.process_local_file("downloads/2022_Finalas.pdf", year=2022)

CLI:
    drift-results                           # default years 2021–2023
    drift-results --start-year 2022 --end-year 2022 -v
    drift-results --file downloads/2022_Finalas.pdf --year 2022

Dependencies:
    pip install httpx tenacity beautifulsoup4 pypdf openpyxl
"""

import logging
import sys
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Union
from urllib.parse import urljoin

from csv_sink import CsvSink, SinkError
from document_reader import (
    DocumentKind,
    DocumentReadError,
    PdfTextExtractor,
    SpreadsheetReader,
    UnsupportedFormat,
    document_kind,
)
from name_extractor import extract_competition_name
from pdf_row_parser import PdfRowParser
from result_downloader import Downloader, FetchError, LinkLister, ResultLink, remote_file_name
from result_models import ParseContext, ParseOutcome, ResultType
from sheet_row_parser import SheetRowParser
from source_registry import DEFAULT_SOURCE, RunConfig, SourceConfig, get_source, load_run_config
from text_classifier import classify, classify_sheet

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Run state and results
# ---------------------------------------------------------------------------

class RunContext:
    """
    Per-run state threaded through file processing.

    Holds the processed file set: membership is checked (and the name
    claimed) before download. Not persisted; every run starts empty.
    Single-threaded use only.
    """

    def __init__(self):
        self.processed_files: set[str] = set()

    def claim(self, file_name: str) -> bool:
        """True the first time a file name is seen in this run."""
        if file_name in self.processed_files:
            return False
        self.processed_files.add(file_name)
        return True


class StepStatus(str, Enum):
    SUCCESS = "success"
    FAILED  = "failed"
    SKIPPED = "skipped"


@dataclass
class SheetOutput:
    """One CSV produced from a PDF or from one sheet."""
    context: ParseContext
    records: int = 0
    errors: int = 0
    csv_path: Optional[Path] = None
    sheet_name: Optional[str] = None


@dataclass
class FileResult:
    """Outcome of one listed/local document."""
    file_name: str
    year: int
    status: StepStatus = StepStatus.SUCCESS
    outputs: list[SheetOutput] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def records_written(self) -> int:
        return sum(o.records for o in self.outputs if o.csv_path)

    @property
    def row_errors(self) -> int:
        return sum(o.errors for o in self.outputs)


@dataclass
class RunSummary:
    years: list[int] = field(default_factory=list)
    files: list[FileResult] = field(default_factory=list)
    year_failures: dict[int, str] = field(default_factory=dict)
    duration_ms: int = 0

    def count(self, status: StepStatus) -> int:
        return sum(1 for f in self.files if f.status == status)

    @property
    def records_written(self) -> int:
        return sum(f.records_written for f in self.files)

    @property
    def row_errors(self) -> int:
        return sum(f.row_errors for f in self.files)

    @property
    def csv_files(self) -> list[Path]:
        return [o.csv_path for f in self.files for o in f.outputs if o.csv_path]

    def summary(self) -> str:
        years = f"{self.years[0]}–{self.years[-1]}" if self.years else "-"
        return (
            f"Years {years}: {self.count(StepStatus.SUCCESS)} files processed, "
            f"{self.count(StepStatus.SKIPPED)} skipped, {self.count(StepStatus.FAILED)} failed, "
            f"{len(self.csv_files)} CSV files, {self.records_written} records, "
            f"{self.row_errors} rows skipped, {self.duration_ms}ms"
        )


def select_result_links(links: Iterable[ResultLink], base_url: str,
                        keywords: tuple[str, ...] = ("rezultatai", "results")) -> list[str]:
    """Absolute URLs of links whose text mentions a results keyword."""
    urls = []
    for link in links:
        text = link.link_text.lower()
        if not any(k in text for k in keywords):
            continue
        try:
            urls.append(urljoin(base_url, link.href))
        except ValueError as e:
            logger.warning(f"Malformed link skipped: {link.href!r} ({e})")
    return urls


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class DriftResultsOrchestrator:
    """
    Links: LinkLister → Downloader → PdfTextExtractor / SpreadsheetReader →
           classify → PdfRowParser / SheetRowParser → CsvSink

    Every collaborator can be injected (tests, alternative sources).
    """

    def __init__(
        self,
        source: Optional[SourceConfig] = None,
        run_config: Optional[RunConfig] = None,
        lister: Optional[LinkLister] = None,
        downloader: Optional[Downloader] = None,
        pdf_extractor: Optional[PdfTextExtractor] = None,
        sheet_reader: Optional[SpreadsheetReader] = None,
        sink: Optional[CsvSink] = None,
    ):
        self.source = source or get_source(DEFAULT_SOURCE)
        self.run_config = run_config or load_run_config()

        self.lister = lister or LinkLister(config=self.source.download)
        self.downloader = downloader or Downloader(
            download_dir=self.run_config.download_dir,
            config=self.source.download,
        )
        self.pdf_extractor = pdf_extractor or PdfTextExtractor()
        self.sheet_reader = sheet_reader or SpreadsheetReader()
        self.sink = sink or CsvSink(self.run_config.output_dir)

        self.pdf_parser = PdfRowParser()
        self.sheet_parser = SheetRowParser()
        self._initialized = False

    def initialize(self):
        """Creates download/output directories. OSError here is fatal for the run."""
        Path(self.downloader.download_dir).mkdir(parents=True, exist_ok=True)
        Path(self.sink.output_dir).mkdir(parents=True, exist_ok=True)
        self._initialized = True

    def shutdown(self):
        self.lister.close()
        self.downloader.close()

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, *args):
        self.shutdown()

    # ------------------------------------------------------------------
    # Run over years
    # ------------------------------------------------------------------

    def run(self, context: Optional[RunContext] = None) -> RunSummary:
        self._ensure_initialized()
        context = context or RunContext()
        summary = RunSummary(years=list(self.run_config.years()))
        t0 = time.monotonic()

        for year in summary.years:
            try:
                summary.files.extend(self.process_year(year, context))
            except FetchError as e:
                logger.error(f"Year {year}: cannot list result links — {e}")
                summary.year_failures[year] = str(e)

        summary.duration_ms = int((time.monotonic() - t0) * 1000)
        logger.info(summary.summary())
        return summary

    def process_year(self, year: int, context: RunContext) -> list[FileResult]:
        """Raises FetchError only if the listing page itself cannot be fetched."""
        logger.info(f"Processing year: {year}")
        base_url = self.source.download.base_url
        links = self.lister.list_result_links(base_url, year)
        urls = select_result_links(links, base_url, self.source.detect.link_keywords)
        logger.info(f"Year {year}: {len(urls)} result links of {len(links)}")

        results = []
        for url in urls:
            try:
                result = self.process_link(url, year, context)
            except Exception as e:
                logger.error(f"{url}: unexpected error — {e}", exc_info=True)
                result = FileResult(file_name=url, year=year, status=StepStatus.FAILED,
                                    error=f"{type(e).__name__}: {e}")
            if result is not None:
                results.append(result)
        return results

    # ------------------------------------------------------------------
    # One document
    # ------------------------------------------------------------------

    def process_link(self, url: str, year: int, context: RunContext) -> Optional[FileResult]:
        """Downloads and processes one document. None if already handled in this run."""
        file_name = remote_file_name(url)
        if not file_name:
            logger.warning(f"No file name in link, skipped: {url}")
            return FileResult(file_name=url, year=year, status=StepStatus.SKIPPED,
                              error="no file name")

        if not context.claim(file_name):
            logger.debug(f"Already processed in this run: {file_name}")
            return None

        logger.info(f"Processing file: {file_name}")
        try:
            kind = document_kind(file_name)
        except UnsupportedFormat as e:
            logger.warning(str(e))
            return FileResult(file_name=file_name, year=year, status=StepStatus.SKIPPED,
                              error=str(e))

        try:
            path = self.downloader.fetch(url, file_name)
        except FetchError as e:
            logger.error(f"{file_name}: download failed — {e}")
            return FileResult(file_name=file_name, year=year, status=StepStatus.FAILED,
                              error=str(e))

        return self._process_document(path, file_name, kind, year)

    def process_local_file(
        self,
        path: Union[str, Path],
        year: int,
        context: Optional[RunContext] = None,
    ) -> Optional[FileResult]:
        """Processes an already downloaded document (no network)."""
        self._ensure_initialized()
        path = Path(path)
        context = context or RunContext()
        if not context.claim(path.name):
            logger.debug(f"Already processed in this run: {path.name}")
            return None

        logger.info(f"Processing file: {path.name}")
        try:
            kind = document_kind(path.name)
        except UnsupportedFormat as e:
            logger.warning(str(e))
            return FileResult(file_name=path.name, year=year, status=StepStatus.SKIPPED,
                              error=str(e))
        return self._process_document(path, path.name, kind, year)

    def _process_document(self, path: Path, file_name: str, kind: DocumentKind,
                          year: int) -> FileResult:
        result = FileResult(file_name=file_name, year=year)
        try:
            if kind is DocumentKind.PDF:
                self._process_pdf(path, file_name, year, result)
            else:
                self._process_spreadsheet(path, file_name, year, result)
        except (DocumentReadError, SinkError) as e:
            logger.error(f"{file_name}: {e}")
            result.status = StepStatus.FAILED
            result.error = str(e)
        except Exception as e:
            logger.error(f"{file_name}: unexpected error — {e}", exc_info=True)
            result.status = StepStatus.FAILED
            result.error = f"{type(e).__name__}: {e}"
        return result

    def _process_pdf(self, path: Path, file_name: str, year: int, result: FileResult):
        text = self.pdf_extractor.extract_text(path)
        context = ParseContext(
            year=year,
            competition_name=extract_competition_name(file_name, text),
            result_type=classify(text),
        )
        logger.info(
            f"Processing {context.result_type.value} results for "
            f"{context.competition_name} {year}"
        )
        outcome = self.pdf_parser.parse(text, context.result_type)
        result.outputs.append(self._write(outcome, context))

    def _process_spreadsheet(self, path: Path, file_name: str, year: int, result: FileResult):
        competition_name = extract_competition_name(file_name, "")
        for sheet in self.sheet_reader.open(path):
            result_type = classify_sheet(sheet.name)
            if result_type is None:
                logger.debug(f"{file_name}: sheet '{sheet.name}' skipped")
                continue
            context = ParseContext(year, competition_name, result_type)
            logger.info(
                f"Processing {result_type.value} sheet '{sheet.name}' for "
                f"{competition_name} {year}"
            )
            outcome = self.sheet_parser.parse(sheet, result_type)
            output = self._write(outcome, context)
            output.sheet_name = sheet.name
            result.outputs.append(output)

    def _write(self, outcome: ParseOutcome, context: ParseContext) -> SheetOutput:
        output = SheetOutput(
            context=context,
            records=len(outcome.records),
            errors=len(outcome.errors),
        )
        if not outcome.records:
            logger.warning(
                f"No {context.result_type.value} results extracted for "
                f"{context.competition_name} {context.year}"
            )
        output.csv_path = self.sink.write(
            outcome.records, context.year, context.competition_name, context.result_type,
        )
        return output

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    def _ensure_initialized(self):
        if not self._initialized:
            raise RuntimeError(
                "Orchestrator not initialized. Call initialize() "
                "or use `with DriftResultsOrchestrator(...) as orch:`"
            )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self.max_level


def configure_logging(verbose: bool = False):
    """Progress (INFO and below) → stdout, warnings and errors → stderr."""
    stdout = logging.StreamHandler(sys.stdout)
    stdout.addFilter(_MaxLevelFilter(logging.INFO))
    stderr = logging.StreamHandler(sys.stderr)
    stderr.setLevel(logging.WARNING)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        handlers=[stdout, stderr],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main(argv: Optional[list[str]] = None) -> int:
    import argparse

    parser = argparse.ArgumentParser(
        description="Harvest drift competition results into CSV files"
    )
    parser.add_argument("--source", default=DEFAULT_SOURCE, help="Source code")
    parser.add_argument("--start-year", type=int, default=None)
    parser.add_argument("--end-year", type=int, default=None)
    parser.add_argument("--download-dir", default=None, help="Download cache directory")
    parser.add_argument("--output-dir", default=None, help="CSV output directory")
    parser.add_argument("--file", default=None, help="Process a local PDF/XLSX/XLS instead")
    parser.add_argument("--year", type=int, default=None, help="Year of --file")
    parser.add_argument("-v", "--verbose", action="store_true")

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.file and args.year is None:
        parser.error("--file requires --year")

    try:
        run_config = load_run_config(
            start_year=args.start_year,
            end_year=args.end_year,
            download_dir=args.download_dir,
            output_dir=args.output_dir,
        )
        source = get_source(args.source)
    except (ValueError, KeyError) as e:
        logger.error(f"Configuration error: {e}")
        return 1

    orch = DriftResultsOrchestrator(source=source, run_config=run_config)
    try:
        orch.initialize()
    except OSError as e:
        logger.error(f"Cannot create working directories: {e}")
        orch.shutdown()
        return 1

    try:
        if args.file:
            result = orch.process_local_file(args.file, args.year)
            if result is not None:
                _print_file_result(result)
        else:
            summary = orch.run()
            print(summary.summary())
            print("Data processing completed!")
    finally:
        orch.shutdown()
    return 0


def _print_file_result(result: FileResult):
    print(f"{result.file_name} ({result.year}): {result.status.value}")
    for o in result.outputs:
        label = f"sheet '{o.sheet_name}'" if o.sheet_name else "document"
        print(f"  {label:24s} {o.context.result_type.value:13s} "
              f"{o.records:4d} records, {o.errors} skipped → {o.csv_path}")
    if result.error:
        print(f"  error: {result.error}")


if __name__ == "__main__":
    sys.exit(main())
