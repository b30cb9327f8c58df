"""
Release archive inspection and extraction.
"""

from __future__ import annotations

import tarfile
from pathlib import Path

from .errors import ExtractionError


def archive_root(archive_path: Path) -> str:
    """
    Top-level directory of a ``.tar.gz`` archive.

    The first path component of the first member is taken as the root, the
    same way ``tar tzf | head -1`` would.

    Raises:
        ExtractionError: If the archive cannot be read or is empty
    """
    try:
        with tarfile.open(archive_path, "r:gz") as tar:
            first = tar.next()
    except (OSError, tarfile.TarError) as e:
        raise ExtractionError(f"Cannot read archive {archive_path}: {e}") from e

    if first is None:
        raise ExtractionError(f"Archive {archive_path} is empty")

    name = first.name[2:] if first.name.startswith("./") else first.name
    root = name.lstrip("/").split("/", 1)[0]
    if not root:
        raise ExtractionError(f"Cannot determine root directory of {archive_path}")
    return root


def extract_archive(archive_path: Path, destination: Path) -> None:
    """
    Extract a ``.tar.gz`` archive into ``destination``.

    A failed extraction may leave partially extracted files behind.

    Raises:
        ExtractionError: If extraction fails
    """
    try:
        with tarfile.open(archive_path, "r:gz") as tar:
            tar.extractall(destination, filter="data")
    except (OSError, tarfile.TarError) as e:
        raise ExtractionError(f"Failed to extract {archive_path} to {destination}: {e}") from e
