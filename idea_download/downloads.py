"""
Archive download cache.

Archives are cached as ``<download_dir>/<code>-<version>.tar.gz``. A cached
file is reused without contacting the server again.
"""

from __future__ import annotations

import logging
import shutil
import urllib.request
from pathlib import Path
from typing import Callable

from .editions import Edition
from .errors import DownloadError
from .repository import USER_AGENT

logger = logging.getLogger(__name__)


def archive_name(edition: Edition, version: str) -> str:
    return f"{edition.code}-{version}.tar.gz"


def stream_download(url: str, destination: Path, timeout: int = 30) -> None:
    """
    Stream a URL into a file.

    The body is written to ``<destination>.part`` first and renamed when
    complete, so an interrupted transfer never leaves a truncated archive under
    the cache name.

    Raises:
        DownloadError: If the transfer fails
    """
    partial = destination.with_name(destination.name + ".part")
    try:
        req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        with urllib.request.urlopen(req, timeout=timeout) as response, open(partial, "wb") as f:
            shutil.copyfileobj(response, f, length=1024 * 1024)
        partial.replace(destination)
    except Exception as e:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"Failed to download {url}: {e}") from e


class DownloadCache:
    """
    Local cache of release archives.

    Args:
        download_dir: Cache directory
        download_url: Base URL archives are fetched from
        timeout: Transfer timeout in seconds
        dry_run: Report downloads without performing them
        fetch: Callable ``(url, destination, timeout)``; defaults to ``stream_download``
    """

    def __init__(
        self,
        download_dir: Path,
        download_url: str,
        timeout: int = 30,
        dry_run: bool = False,
        fetch: Callable[..., None] | None = None,
    ):
        self.download_dir = Path(download_dir)
        self.download_url = download_url.rstrip("/")
        self.timeout = timeout
        self.dry_run = dry_run
        self._fetch = fetch or stream_download

    def path_for(self, edition: Edition, version: str) -> Path:
        return self.download_dir / archive_name(edition, version)

    def url_for(self, edition: Edition, version: str) -> str:
        return f"{self.download_url}/{archive_name(edition, version)}"

    def is_cached(self, edition: Edition, version: str) -> bool:
        return self.path_for(edition, version).is_file()

    def fetch(self, edition: Edition, version: str) -> Path:
        """
        Return the cached archive, downloading it first if necessary.

        In dry-run mode the path is returned without downloading anything.

        Raises:
            DownloadError: If the archive cannot be downloaded
        """
        path = self.path_for(edition, version)
        if self.is_cached(edition, version):
            logger.info(f"Using cached download file: {path}")
            return path

        logger.info(f"Downloading IntelliJ Idea ({edition}, {version}).")
        if self.dry_run:
            return path

        try:
            self.download_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DownloadError(f"Cannot create download directory {self.download_dir}: {e}") from e
        self._fetch(self.url_for(edition, version), path, timeout=self.timeout)
        return path
