"""
Installation lifecycle operations.

The Reconciler composes the repository index, the download cache, the
installation store and the label store into the five user-facing commands:
install, remove, repair, clean and status. Each call is independent and
returns an ``OperationResult``; failures raise ``IdeaDownloadError``
subclasses and are terminal for the operation.

Dry-run mode is handled by the stores: every read still happens, every write
is skipped and only reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable

from .common import is_root, program_name
from .config import Config, Options
from .downloads import DownloadCache
from .errors import IdeaDownloadError, NetworkError, PrivilegeError, ResolutionError, StateError
from .installations import InstallationRecord, InstallationStore
from .labels import DesktopEntry, LabelBinding, LabelBindingStore
from .repository import RepositoryIndex, ScrapingRepositoryIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallationStatus:
    """
    Installed record classified by reference state.

    Attributes:
        record: The installation
        binding: Label binding pointing into it, if any
    """
    record: InstallationRecord
    binding: LabelBinding | None = None

    @property
    def referenced(self) -> bool:
        return self.binding is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "record": self.record.to_dict(),
            "label": self.binding.label if self.binding else None,
            "referenced": self.referenced,
        }


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of one operation.

    Attributes:
        action: Operation that ran
        dry_run: Whether writes were skipped
        version: Resolved remote version (install, repair, status)
        install_path: Directory of the installed product (install, repair)
        extracted: Whether an archive was (or would be) extracted
        binding: Label binding created by install
        removed: Records deleted (remove, repair, clean)
        unbound: Label bindings deleted along with their target
        installed: Local installations with reference state (status)
        dangling: Bindings whose target no longer exists (status)
        remote_candidates: Most recent matching remote versions (status)
        resolution_error: Why remote resolution failed (status only)
    """
    action: str
    dry_run: bool = False
    version: str | None = None
    install_path: Path | None = None
    extracted: bool = False
    binding: LabelBinding | None = None
    removed: tuple[InstallationRecord, ...] = ()
    unbound: tuple[LabelBinding, ...] = ()
    installed: tuple[InstallationStatus, ...] = ()
    dangling: tuple[LabelBinding, ...] = ()
    remote_candidates: tuple[str, ...] = ()
    resolution_error: str | None = None

    @property
    def removed_count(self) -> int:
        return len(self.removed)

    @property
    def quiet_output(self) -> str | None:
        """Single line printed in quiet mode: the install path, when there is one."""
        return str(self.install_path) if self.install_path is not None else None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "action": self.action,
            "dry_run": self.dry_run,
            "version": self.version,
            "install_path": str(self.install_path) if self.install_path else None,
            "extracted": self.extracted,
            "binding": self.binding.to_dict() if self.binding else None,
            "removed": [r.to_dict() for r in self.removed],
            "unbound": [b.to_dict() for b in self.unbound],
            "installed": [s.to_dict() for s in self.installed],
            "dangling": [b.to_dict() for b in self.dangling],
            "remote_candidates": list(self.remote_candidates),
            "resolution_error": self.resolution_error,
        }


class Reconciler:
    """
    Runs lifecycle operations for one edition and version pattern.

    Args:
        config: File configuration
        options: Runtime options (action, pattern, edition, label, modes)
        index: Repository index; defaults to scraping the configured listing
        installations: Installation store; defaults to the configured version root
        labels: Label store; defaults to the configured desktop root
        downloads: Download cache; defaults to the configured download directory
        privileged: Capability check for mutating commands; defaults to ``is_root``
    """

    def __init__(
        self,
        config: Config,
        options: Options,
        index: RepositoryIndex | None = None,
        installations: InstallationStore | None = None,
        labels: LabelBindingStore | None = None,
        downloads: DownloadCache | None = None,
        privileged: Callable[[], bool] | None = None,
    ):
        self.config = config
        self.options = options
        paths = config.paths
        repository = config.repository
        self.index = index or ScrapingRepositoryIndex.from_settings(repository)
        self.installations = installations or InstallationStore(paths.version_root, dry_run=options.dry_run)
        self.labels = labels or LabelBindingStore(
            paths.desktop_root, Path(paths.applications_dir), dry_run=options.dry_run
        )
        self.downloads = downloads or DownloadCache(
            paths.download_dir,
            repository.download_url,
            timeout=repository.timeout_seconds,
            dry_run=options.dry_run,
        )
        self.privileged = privileged or is_root

    def run(self) -> OperationResult:
        """
        Run the operation named by ``options.action``.

        Raises:
            StateError: If no (or an unknown) action is configured
        """
        action = self.options.action
        operations = {
            "install": self.install,
            "remove": self.remove,
            "repair": self.repair,
            "clean": self.clean,
            "status": self.status,
        }
        if action not in operations:
            raise StateError(f"Do not know how to handle action {action}.")

        if self.options.dry_run and action != "status":
            logger.info("Dry Run")
        return operations[action]()

    def require_privilege(self) -> None:
        """
        Ensure mutating commands run as root.

        Raises:
            PrivilegeError: If not privileged and not in dry-run mode
        """
        if self.privileged():
            return
        if self.options.dry_run:
            logger.warning("Must be run in sudo session. Ignored for dry run.")
            return
        raise PrivilegeError(
            "Must be run in sudo session.",
            remediation="Re-run with sudo, or add --dry-run to preview the changes.",
        )

    def install(self) -> OperationResult:
        """
        Install the most recent version matching the pattern.

        Extraction is skipped when the version is already installed. When a
        label is configured it is (re)bound to the installation.
        """
        self.require_privilege()
        return self._install()

    def _install(self) -> OperationResult:
        options = self.options
        pattern = options.pattern
        if pattern.is_unset:
            logger.warning(
                "No version pattern given: the most recent build will be installed, "
                "which may be an unstable pre-release. Use --stable or --version to restrict."
            )

        version = self.index.resolve_best(pattern)
        archive = self.downloads.fetch(options.edition, version)
        record, extracted = self.installations.install(options.edition, version, archive)

        binding = None
        if options.label:
            entry = DesktopEntry(
                version=version,
                edition=options.edition,
                label=options.label,
                program=program_name(),
            )
            binding = self.labels.bind(options.label, record.install_dir, entry)
        else:
            logger.info(f"Installed to: {record.install_dir}")

        logger.info("Installation Done.")
        return OperationResult(
            action="install",
            dry_run=options.dry_run,
            version=version,
            install_path=record.install_dir,
            extracted=extracted,
            binding=binding,
        )

    def remove(self) -> OperationResult:
        """
        Remove every installation matching the pattern, regardless of labels.

        Without a pattern all installations of the edition are removed. Label
        bindings pointing into a removed installation are removed as well.
        """
        self.require_privilege()
        return self._remove()

    def _remove(self) -> OperationResult:
        removed = []
        unbound = []
        for record in self.installations.list_installed(self.options.edition, self.options.pattern):
            bindings = self.labels.find_labels_for(record.path)
            self.installations.remove(record)
            logger.info(f"Removed {record.name} at {record.path}.")
            removed.append(record)
            for binding in bindings:
                self.labels.unbind(binding)
                unbound.append(binding)

        if removed:
            logger.info("Removal Done.")
        else:
            logger.info("Nothing to remove.")

        return OperationResult(
            action="remove",
            dry_run=self.options.dry_run,
            removed=tuple(removed),
            unbound=tuple(unbound),
        )

    def repair(self) -> OperationResult:
        """
        Remove matching installations, then install again.

        Not transactional: if the install step fails after removal, nothing
        matching the pattern remains installed.
        """
        self.require_privilege()
        removal = self._remove()
        installation = self._install()
        return replace(
            installation,
            action="repair",
            removed=removal.removed,
            unbound=removal.unbound,
        )

    def clean(self) -> OperationResult:
        """Remove installations matching the pattern that no label points into."""
        self.require_privilege()

        removed = []
        for record in self.installations.list_installed(self.options.edition, self.options.pattern):
            if self.labels.find_label_for(record.path) is not None:
                continue
            self.installations.remove(record)
            logger.info(f"Removed unreferenced {record.name} at {record.path}.")
            removed.append(record)

        if removed:
            logger.info(f"Cleanup Done. Removed {len(removed)} unreferenced installation(s).")
        else:
            logger.info("Nothing to clean up.")

        return OperationResult(
            action="clean",
            dry_run=self.options.dry_run,
            removed=tuple(removed),
        )

    def status(self) -> OperationResult:
        """
        Report the newest matching remote version, the local installations
        with their reference state, and recent matching remote versions.

        Read-only. A failed remote lookup is reported but does not prevent
        the local part of the report.
        """
        options = self.options
        pattern = options.pattern

        version = None
        resolution_error = None
        listing_unreachable = False
        try:
            version = self.index.resolve_best(pattern)
            logger.info(f"Most recent available version: {version}.")
        except (ResolutionError, NetworkError) as e:
            resolution_error = e.message
            listing_unreachable = isinstance(e, NetworkError)
            logger.warning(f"Cannot determine most recent available version: {e.message}")

        installed = []
        logger.info(f"Available installed versions at {self.installations.version_root}:")
        for record in self.installations.list_installed(options.edition, pattern):
            binding = self.labels.find_label_for(record.path)
            installed.append(InstallationStatus(record=record, binding=binding))
            logger.info(f"    * {record.name} ({binding.name if binding else 'unreferenced'})")

        dangling = tuple(
            b for b in self.labels.bindings() if b.edition is options.edition and b.dangling
        )
        for binding in dangling:
            logger.warning(f"Label {binding.name} points to missing installation {binding.target}.")

        candidates: list[str] = []
        if not listing_unreachable:
            candidates = self._recent_candidates(self.config.repository.status_count)

        logger.info("Status Done.")
        return OperationResult(
            action="status",
            dry_run=options.dry_run,
            version=version,
            installed=tuple(installed),
            dangling=dangling,
            remote_candidates=tuple(candidates),
            resolution_error=resolution_error,
        )

    def _recent_candidates(self, count: int) -> list[str]:
        try:
            candidates = self.index.list_candidates(count, self.options.pattern)
        except IdeaDownloadError as e:
            logger.warning(f"Cannot list remote versions: {e.message}")
            return []
        logger.info(f"Available {count} most recent versions at {self.config.repository.listing_url}:")
        for candidate in candidates:
            logger.info(f"    * {candidate}")
        return candidates
