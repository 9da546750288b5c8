"""
result_downloader.py
====================
Link discovery on the results listing page and download of result documents.

  - LinkLister: fetches the listing page and returns every anchor whose href
    mentions the requested year, together with its visible text
  - Downloader: saves a document into the download directory under its
    remote file name (last URL path segment), overwriting an older copy

Both retry transient HTTP failures (httpx + tenacity) and raise FetchError
once retries are exhausted.

Usage:
    with LinkLister() as lister:
        links = lister.list_result_links("https://www.lasf.lt/lt/driftas/rezultatai/", 2022)

    with Downloader(download_dir="./downloads") as dl:
        path = dl.fetch("https://www.lasf.lt/.../2022_Rezultatai_Etapas1.pdf")

Dependencies:
    pip install httpx tenacity beautifulsoup4
"""

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlsplit

import httpx
from bs4 import BeautifulSoup
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from source_registry import DownloadConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class FetchError(Exception):
    """Network or download failure."""
    pass


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResultLink:
    href: str
    link_text: str


def remote_file_name(url: str) -> str:
    """Last path segment of the URL, percent-decoded ("" for directory URLs)."""
    return unquote(posixpath.basename(urlsplit(url).path))


# ---------------------------------------------------------------------------
# HTTP base
# ---------------------------------------------------------------------------

class _HttpClient:
    """Shared httpx client with retry; closes the client only if it owns it."""

    def __init__(
        self,
        config: Optional[DownloadConfig] = None,
        client: Optional[httpx.Client] = None,
        retry_wait_max: float = 10,
    ):
        self.config = config or DownloadConfig()
        self.retry_wait_max = retry_wait_max
        self._owns_client = client is None
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=self.config.timeout,
            headers={"User-Agent": self.config.user_agent},
        )

    def _get(self, url: str) -> httpx.Response:
        retrying = Retrying(
            retry=retry_if_exception_type(httpx.HTTPError),
            stop=stop_after_attempt(max(1, self.config.max_retries)),
            wait=wait_exponential(multiplier=1, min=0, max=self.retry_wait_max),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    response = self._client.get(url)
                    response.raise_for_status()
                    return response
        except httpx.HTTPError as e:
            raise FetchError(f"GET {url} failed: {e}") from e

    def close(self):
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


# ---------------------------------------------------------------------------
# Link listing
# ---------------------------------------------------------------------------

class LinkLister(_HttpClient):

    def list_result_links(self, base_url: str, year: int) -> list[ResultLink]:
        """Anchors on the listing page whose href contains the year."""
        logger.info(f"Discovering {year} links on: {base_url}")
        response = self._get(base_url)

        soup = BeautifulSoup(response.text, "html.parser")
        links = []
        for a in soup.find_all("a", href=True):
            href = a["href"].strip()
            if str(year) in href:
                links.append(ResultLink(href=href, link_text=a.get_text(" ", strip=True)))

        logger.info(f"Found {len(links)} links for {year}")
        return links


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------

class Downloader(_HttpClient):

    def __init__(
        self,
        download_dir: Union[str, Path] = "downloads",
        config: Optional[DownloadConfig] = None,
        client: Optional[httpx.Client] = None,
        retry_wait_max: float = 10,
    ):
        super().__init__(config=config, client=client, retry_wait_max=retry_wait_max)
        self.download_dir = Path(download_dir)

    def local_path(self, file_name: str) -> Path:
        return self.download_dir / file_name

    def fetch(self, url: str, file_name: Optional[str] = None) -> Path:
        """Downloads url into the download directory and returns the local path."""
        file_name = file_name or remote_file_name(url)
        if not file_name:
            raise FetchError(f"No file name in URL: {url}")
        path = self.local_path(file_name)

        if self.config.reuse_downloads and path.exists():
            logger.debug(f"Using cached download: {path}")
            return path

        response = self._get(url)
        try:
            path.write_bytes(response.content)
        except OSError as e:
            raise FetchError(f"Cannot store {url} at {path}: {e}") from e

        logger.info(f"Downloaded: {path} ({len(response.content):,} bytes) <- {url}")
        return path
