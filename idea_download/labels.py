"""
Label bindings: named links to installations, surfaced as desktop entries.

A label ``current`` for the community edition is represented by

- ``<desktop_root>/ideaIC-current``          symlink to the installation directory
- ``<desktop_root>/ideaIC-current.desktop``  desktop entry describing it
- ``<applications_dir>/ideaIC-current.desktop``  symlink to the entry, if the
  shared applications directory exists

A binding does not keep its target alive; removing the installation leaves a
dangling binding, which is reported by ``status``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .editions import Edition
from .errors import InstallationError

logger = logging.getLogger(__name__)

DESKTOP_SUFFIX = ".desktop"


@dataclass(frozen=True)
class DesktopEntry:
    """
    Metadata rendered into a ``.desktop`` file.

    Attributes:
        version: Build identifier of the bound installation
        edition: Product edition
        label: Label name
        program: Name of the program that created the entry
    """
    version: str
    edition: Edition
    label: str
    program: str = "idea-download"

    @property
    def title(self) -> str:
        return f"IntelliJ IDEA {self.version} ({self.edition.title})"

    def render(self, link_path: Path) -> str:
        """Render the entry; Exec and Icon point into the label link."""
        lines = [
            "[Desktop Entry]",
            f"Version={self.version}",
            "Encoding=UTF-8",
            f"Name={self.title}",
            f"Comment=IntelliJ IDEA {self.edition.title} Edition - {self.label}; installed via {self.program}.",
            f"Exec={link_path}/bin/idea.sh",
            f"Icon={link_path}/bin/idea.png",
            "Terminal=false",
            "StartupNotify=true",
            "Type=Application",
            "Categories=Development;IDE;",
            "StartupWMClass=jetbrains-ide",
        ]
        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class LabelBinding:
    """
    Link from a label to an installation directory.

    Attributes:
        edition: Product edition
        label: Label name
        link_path: The label symlink
        target: Where the symlink points
        desktop_file: Generated desktop entry, if present
        applications_link: Link in the shared applications directory, if present
    """
    edition: Edition
    label: str
    link_path: Path
    target: Path
    desktop_file: Path | None = None
    applications_link: Path | None = None

    @property
    def name(self) -> str:
        return f"{self.edition.code}-{self.label}"

    @property
    def dangling(self) -> bool:
        return not self.target.exists()

    def points_into(self, path: Path) -> bool:
        """True if the binding targets ``path`` or something beneath it."""
        path = Path(path)
        return self.target == path or path in self.target.parents

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "edition": str(self.edition),
            "label": self.label,
            "link_path": str(self.link_path),
            "target": str(self.target),
            "desktop_file": str(self.desktop_file) if self.desktop_file else None,
            "applications_link": str(self.applications_link) if self.applications_link else None,
            "dangling": self.dangling,
        }


def _replace_symlink(target: Path, link: Path) -> None:
    """Point ``link`` at ``target``, replacing any existing link in one rename."""
    temp_link = link.with_name(f".{link.name}.tmp")
    if temp_link.is_symlink() or temp_link.exists():
        temp_link.unlink()
    os.symlink(target, temp_link)
    os.replace(temp_link, link)


def _write_atomic(path: Path, content: str) -> None:
    temp_path = path.with_name(f".{path.name}.tmp")
    with open(temp_path, "w", encoding="utf-8") as f:
        f.write(content)
    temp_path.replace(path)


class LabelBindingStore:
    """
    Filesystem registry of label bindings.

    Args:
        desktop_root: Directory holding label links and desktop entries
        applications_dir: Shared OS-level applications directory
        dry_run: Report mutations without performing them
    """

    def __init__(self, desktop_root: Path, applications_dir: Path, dry_run: bool = False):
        self.desktop_root = Path(desktop_root)
        self.applications_dir = Path(applications_dir)
        self.dry_run = dry_run

    def link_path(self, edition: Edition, label: str) -> Path:
        return self.desktop_root / f"{edition.code}-{label}"

    def desktop_path(self, edition: Edition, label: str) -> Path:
        return self.desktop_root / f"{edition.code}-{label}{DESKTOP_SUFFIX}"

    def applications_path(self, edition: Edition, label: str) -> Path:
        return self.applications_dir / f"{edition.code}-{label}{DESKTOP_SUFFIX}"

    def bind(
        self,
        label: str,
        target: Path,
        entry: DesktopEntry,
    ) -> LabelBinding:
        """
        Create or replace the binding for ``label``.

        The label link is swapped in a single rename, the desktop entry is
        rewritten, and the entry is linked into the shared applications
        directory when that directory exists. A missing applications
        directory only produces a warning.

        Raises:
            InstallationError: If the link or desktop entry cannot be written
        """
        edition = entry.edition
        link = self.link_path(edition, label)
        desktop_file = self.desktop_path(edition, label)

        if not self.dry_run:
            try:
                self.desktop_root.mkdir(parents=True, exist_ok=True)
                _replace_symlink(Path(target), link)
            except OSError as e:
                raise InstallationError(f"Cannot create link {link}: {e}") from e
        logger.info(f"Created soft-link {link}.")

        if not self.dry_run:
            try:
                _write_atomic(desktop_file, entry.render(link))
            except OSError as e:
                raise InstallationError(f"Cannot write desktop file {desktop_file}: {e}") from e
        logger.info(f"Created desktop file {desktop_file}.")

        applications_link = None
        if self.applications_dir.is_dir():
            applications_link = self.applications_path(edition, label)
            if not self.dry_run:
                try:
                    _replace_symlink(desktop_file, applications_link)
                except OSError as e:
                    raise InstallationError(
                        f"Cannot create application entry {applications_link}: {e}"
                    ) from e
            logger.info(f"Created/updated application entry at {self.applications_dir}.")
            logger.info(f"Available as: {entry.title}.")
        else:
            logger.warning(
                f"Shared application directory {self.applications_dir} unavailable: "
                "Cannot create shared application entry."
            )
            logger.warning(
                f"To add a personal desktop entry copy or link {desktop_file} "
                "to e. g. ~/.local/share/applications/."
            )

        return LabelBinding(
            edition=edition,
            label=label,
            link_path=link,
            target=Path(target),
            desktop_file=desktop_file,
            applications_link=applications_link,
        )

    def bindings(self) -> list[LabelBinding]:
        """All label links under the desktop root, sorted by name."""
        if not self.desktop_root.is_dir():
            return []

        result = []
        for entry in sorted(self.desktop_root.iterdir()):
            if not entry.is_symlink() or entry.name.endswith(DESKTOP_SUFFIX) or entry.name.startswith("."):
                continue
            code, sep, label = entry.name.partition("-")
            edition = next((e for e in Edition if e.code == code), None)
            if edition is None or not sep or not label:
                continue
            target = Path(os.readlink(entry))
            if not target.is_absolute():
                target = Path(os.path.normpath(self.desktop_root / target))
            desktop_file = self.desktop_path(edition, label)
            applications_link = self.applications_path(edition, label)
            result.append(LabelBinding(
                edition=edition,
                label=label,
                link_path=entry,
                target=target,
                desktop_file=desktop_file if desktop_file.exists() else None,
                applications_link=applications_link if applications_link.is_symlink() else None,
            ))
        return result

    def get(self, edition: Edition, label: str) -> LabelBinding | None:
        """Binding for ``label``, if it exists."""
        return next(
            (b for b in self.bindings() if b.edition is edition and b.label == label),
            None,
        )

    def find_labels_for(self, path: Path) -> list[LabelBinding]:
        """All bindings whose target is ``path`` or lies beneath it."""
        return [b for b in self.bindings() if b.points_into(path)]

    def find_label_for(self, path: Path) -> LabelBinding | None:
        """First binding whose target is ``path`` or lies beneath it."""
        bindings = self.find_labels_for(path)
        return bindings[0] if bindings else None

    def unbind(self, binding: LabelBinding) -> None:
        """
        Remove the desktop entry, the shared application link and the label link.

        Missing artifacts are tolerated.

        Raises:
            InstallationError: If an existing artifact cannot be deleted
        """
        desktop_file = self.desktop_path(binding.edition, binding.label)
        applications_link = self.applications_path(binding.edition, binding.label)

        if desktop_file.is_file():
            self._unlink(desktop_file)
            logger.info(f"Removed {desktop_file}.")
        if applications_link.is_symlink():
            self._unlink(applications_link)
            logger.info(f"Removed {applications_link}.")
        if binding.link_path.is_symlink():
            self._unlink(binding.link_path)
            logger.info(f"Removed {binding.link_path}.")

    def _unlink(self, path: Path) -> None:
        if self.dry_run:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise InstallationError(f"Failed to remove {path}: {e}") from e
