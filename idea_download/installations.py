"""
Installed versions under the version root.

Each installation lives in ``<version_root>/<code>-<version>/`` and contains
the extracted archive root (e.g. ``idea-IC-163.123``). The record directory is
the unit of existence and removal.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from .archive import archive_root, extract_archive
from .editions import Edition
from .errors import ExtractionError, InstallationError
from .patterns import VersionPattern

logger = logging.getLogger(__name__)

# Reported tar root when it cannot be known without downloading
DRY_RUN_TAR_ROOT = "dry-run"


@dataclass(frozen=True)
class InstallationRecord:
    """
    Single installed version.

    Attributes:
        edition: Product edition
        version: Build identifier
        path: Record directory (``<version_root>/<code>-<version>``)
        tar_root: Extracted archive root inside ``path``, if known
    """
    edition: Edition
    version: str
    path: Path
    tar_root: str | None = None

    @property
    def name(self) -> str:
        return f"{self.edition.code}-{self.version}"

    @property
    def install_dir(self) -> Path:
        """Directory holding the extracted product (``bin/idea.sh`` lives below it)."""
        return self.path / self.tar_root if self.tar_root else self.path

    def contains(self, target: Path) -> bool:
        """True if ``target`` is this record's directory or lies beneath it."""
        target = Path(target)
        return target == self.path or self.path in target.parents

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "edition": str(self.edition),
            "version": self.version,
            "path": str(self.path),
            "tar_root": self.tar_root,
            "install_dir": str(self.install_dir),
        }


def parse_record_name(name: str) -> tuple[Edition, str] | None:
    """Split ``<code>-<version>`` into edition and version; None if not a record name."""
    code, sep, version = name.partition("-")
    if not sep or not version:
        return None
    for edition in Edition:
        if edition.code == code:
            return edition, version
    return None


class InstallationStore:
    """
    Filesystem registry of installed versions.

    Args:
        version_root: Directory holding one subdirectory per installation
        dry_run: Report mutations without performing them
    """

    def __init__(self, version_root: Path, dry_run: bool = False):
        self.version_root = Path(version_root)
        self.dry_run = dry_run

    def record_path(self, edition: Edition, version: str) -> Path:
        return self.version_root / f"{edition.code}-{version}"

    def _record(self, edition: Edition, version: str, tar_root: str | None = None) -> InstallationRecord:
        path = self.record_path(edition, version)
        if tar_root is None:
            tar_root = _single_subdirectory(path)
        return InstallationRecord(edition=edition, version=version, path=path, tar_root=tar_root)

    def list_installed(
        self,
        edition: Edition | None = None,
        pattern: VersionPattern | None = None,
    ) -> list[InstallationRecord]:
        """
        Installed records, sorted by directory name.

        Args:
            edition: Only this edition (None for all editions)
            pattern: Filter on the version portion of the directory name

        Returns:
            Matching records; empty if the version root does not exist
        """
        if not self.version_root.is_dir():
            return []

        records = []
        for entry in sorted(self.version_root.iterdir()):
            if not entry.is_dir() or entry.is_symlink():
                continue
            parsed = parse_record_name(entry.name)
            if parsed is None:
                continue
            record_edition, version = parsed
            if edition is not None and record_edition is not edition:
                continue
            if pattern is not None and not pattern.matches(version):
                continue
            records.append(self._record(record_edition, version))
        return records

    def is_installed(self, edition: Edition, version: str, tar_root: str | None = None) -> bool:
        """
        Whether the version is already extracted.

        The extracted archive root is checked, not just the record directory.
        In dry-run mode, or when the tar root is unknown, only the record
        directory is checked.
        """
        path = self.record_path(edition, version)
        if self.dry_run or not tar_root:
            return path.is_dir()
        return (path / tar_root).is_dir()

    def _tar_root(self, edition: Edition, version: str, archive_path: Path) -> str:
        if not self.dry_run:
            return archive_root(archive_path)
        # Reads are still allowed in dry-run mode
        if Path(archive_path).is_file():
            try:
                return archive_root(archive_path)
            except ExtractionError as e:
                logger.debug(f"Cannot inspect cached archive in dry-run: {e}")
        return _single_subdirectory(self.record_path(edition, version)) or DRY_RUN_TAR_ROOT

    def install(
        self,
        edition: Edition,
        version: str,
        archive_path: Path,
    ) -> tuple[InstallationRecord, bool]:
        """
        Extract an archive unless the version is already installed.

        Args:
            edition: Product edition
            version: Build identifier
            archive_path: Downloaded ``.tar.gz``

        Returns:
            Tuple of (record, extracted) where ``extracted`` tells whether an
            extraction was performed (or would be, in dry-run mode)

        Raises:
            ExtractionError: If the archive cannot be read or extracted; a
                partially extracted directory may remain
        """
        tar_root = self._tar_root(edition, version, archive_path)
        record = InstallationRecord(
            edition=edition,
            version=version,
            path=self.record_path(edition, version),
            tar_root=tar_root,
        )

        if self.dry_run:
            logger.info(
                f"Testing for existence of {record.path}. Check is less strict in dry-run mode."
            )

        if self.is_installed(edition, version, tar_root):
            logger.info(
                "Skipping installation as installation already seems to exist. "
                "Use 'repair' if the installation is corrupted."
            )
            return record, False

        logger.info(f"Extracting IntelliJ Idea to {record.path}.")
        if not self.dry_run:
            try:
                record.path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise InstallationError(f"Cannot create {record.path}: {e}") from e
            extract_archive(archive_path, record.path)
        return record, True

    def remove(self, record: InstallationRecord) -> None:
        """
        Delete the record directory recursively. Missing directories are ignored.

        Raises:
            InstallationError: If the directory exists but cannot be deleted
        """
        if self.dry_run:
            logger.debug(f"Dry run: would delete {record.path}")
            return
        if not record.path.exists():
            return
        try:
            shutil.rmtree(record.path)
        except OSError as e:
            raise InstallationError(f"Failed to remove {record.path}: {e}") from e


def _single_subdirectory(path: Path) -> str | None:
    """Name of the only subdirectory of ``path``, or None."""
    if not path.is_dir():
        return None
    subdirs = [entry.name for entry in path.iterdir() if entry.is_dir()]
    return subdirs[0] if len(subdirs) == 1 else None
