"""
source_registry.py
==================
Configuration of the results source and of a processing run.

Each source is one frozen SourceConfig grouping the parameters every module
needs:

    from source_registry import get_source, load_run_config
    cfg = get_source("lasf_drift")
    cfg.download.base_url      # "https://www.lasf.lt/lt/driftas/rezultatai/"
    cfg.detect.link_keywords   # ("rezultatai", "results")
    run = load_run_config()
    list(run.years())          # [2021, 2022, 2023]

Run parameters may be overridden through environment variables
(DRIFT_START_YEAR, DRIFT_END_YEAR, DRIFT_DOWNLOAD_DIR, DRIFT_OUTPUT_DIR);
explicit arguments win over the environment.

Dependencies: standard library only.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "lasf_drift"

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DownloadConfig:
    """Parameters for LinkLister / Downloader."""
    base_url: str = ""                      # listing page, also the urljoin base
    timeout: int = 60                       # seconds per request
    max_retries: int = 3
    user_agent: str = USER_AGENT
    reuse_downloads: bool = False           # use an existing local copy instead of fetching


# ---------------------------------------------------------------------------
# Link detection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DetectConfig:
    """Which anchors on the listing page are result documents."""
    link_keywords: tuple[str, ...] = ("rezultatai", "results")


@dataclass(frozen=True)
class SourceConfig:
    code: str
    name: str
    download: DownloadConfig = field(default_factory=DownloadConfig)
    detect: DetectConfig = field(default_factory=DetectConfig)


SOURCES: dict[str, SourceConfig] = {
    "lasf_drift": SourceConfig(
        code="lasf_drift",
        name="LASF drift results",
        download=DownloadConfig(base_url="https://www.lasf.lt/lt/driftas/rezultatai/"),
    ),
}


def get_source(code: str = DEFAULT_SOURCE) -> SourceConfig:
    """Returns the source by code. Raises KeyError for unknown codes."""
    if code not in SOURCES:
        raise KeyError(f"Unknown source '{code}'. Known: {', '.join(sorted(SOURCES))}")
    return SOURCES[code]


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RunConfig:
    """Year range and local directories of one run."""
    start_year: int = 2021
    end_year: int = 2023
    download_dir: str = "downloads"
    output_dir: str = "processed_data"

    def __post_init__(self):
        if self.start_year > self.end_year:
            raise ValueError(
                f"start_year ({self.start_year}) is after end_year ({self.end_year})"
            )

    def years(self) -> Iterator[int]:
        return iter(range(self.start_year, self.end_year + 1))


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def load_run_config(
    start_year: Optional[int] = None,
    end_year: Optional[int] = None,
    download_dir: Optional[str] = None,
    output_dir: Optional[str] = None,
) -> RunConfig:
    """Builds a RunConfig: explicit arguments → environment → defaults."""
    defaults = RunConfig()
    config = RunConfig(
        start_year=start_year if start_year is not None
            else _env_int("DRIFT_START_YEAR", defaults.start_year),
        end_year=end_year if end_year is not None
            else _env_int("DRIFT_END_YEAR", defaults.end_year),
        download_dir=download_dir or os.environ.get("DRIFT_DOWNLOAD_DIR") or defaults.download_dir,
        output_dir=output_dir or os.environ.get("DRIFT_OUTPUT_DIR") or defaults.output_dir,
    )
    logger.debug(f"Run config: {config}")
    return config
