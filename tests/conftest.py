"""
Shared fixtures: temporary install trees, fixture archives, reconcilers.
"""

from __future__ import annotations

import io
import logging
import tarfile
from pathlib import Path

import pytest

from idea_download.config import Config, Options, PathSettings, RepositorySettings
from idea_download.editions import Edition
from idea_download.logging_config import LOGGER_NAME
from idea_download.patterns import VersionPattern
from idea_download.reconciler import Reconciler
from idea_download.repository import StaticRepositoryIndex


def make_archive(path: Path, root: str = "idea-IC-163.123") -> Path:
    """Write a minimal release archive with ``<root>/bin/idea.sh``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        for name, content in (
            (f"{root}/bin/idea.sh", b"#!/bin/sh\necho idea\n"),
            (f"{root}/build.txt", b"IC-163.123\n"),
        ):
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(content))
    return path


def make_installation(config: Config, name: str, root: str = "idea-IC") -> Path:
    """Create an extracted installation ``<version_root>/<name>/<root>/bin``."""
    install_dir = config.paths.version_root / name / root
    (install_dir / "bin").mkdir(parents=True)
    return install_dir


def snapshot_tree(root: Path) -> set[tuple[str, bool]]:
    """Every path under root with whether it is a symlink."""
    if not root.exists():
        return set()
    return {(str(p.relative_to(root)), p.is_symlink()) for p in root.rglob("*")}


@pytest.fixture(autouse=True)
def reset_logging():
    """Detach handlers so each test starts with a propagating package logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    yield
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def config(tmp_path) -> Config:
    applications = tmp_path / "applications"
    applications.mkdir()
    return Config(
        paths=PathSettings(
            install_root=str(tmp_path / "opt" / "idea"),
            applications_dir=str(applications),
        ),
        repository=RepositorySettings(
            listing_url="https://repo.example.com/releases",
            download_url="https://download.example.com/idea",
        ),
    )


@pytest.fixture
def make_reconciler(config):
    """Factory for reconcilers over a fixed remote listing, running as root."""

    def factory(
        action: str,
        pattern: VersionPattern | None = None,
        label: str | None = None,
        dry_run: bool = False,
        identifiers=("163.123", "162.456", "145.789"),
        edition: Edition = Edition.COMMUNITY,
        privileged: bool = True,
    ) -> Reconciler:
        options = Options(
            action=action,
            pattern=pattern or VersionPattern.unset(),
            edition=edition,
            label=label,
            dry_run=dry_run,
        )
        return Reconciler(
            config,
            options,
            index=StaticRepositoryIndex(identifiers),
            privileged=lambda: privileged,
        )

    return factory


@pytest.fixture
def cached_archive(config):
    """Place the archive for ideaIC-163.123 in the download cache."""
    return make_archive(config.paths.download_dir / "ideaIC-163.123.tar.gz")
