"""
Configuration file parsing and runtime options.

Supports YAML configuration files (JSON for ``.json`` paths).
Merges configurations from multiple sources (explicit → project → user → system → defaults).
Command-line choices are captured once in an immutable ``Options`` value.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .common import vlog
from .editions import Edition
from .errors import ConfigError
from .patterns import VersionPattern


DEFAULT_INSTALL_ROOT = "/opt/idea"
DEFAULT_APPLICATIONS_DIR = "/usr/local/share/applications"
DEFAULT_LISTING_URL = "https://www.jetbrains.com/intellij-repository/releases"
DEFAULT_DOWNLOAD_URL = "https://download.jetbrains.com/idea"
BUILD_URL_SUFFIX = "/com/jetbrains/intellij/idea/BUILD"

ACTIONS = ("install", "remove", "repair", "clean", "status")

# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".idea-download.yml",                                     # Project root (highest priority)
    ".idea-download.yaml",
    os.path.expanduser("~/.config/idea-download/config.yml"),  # User global
    os.path.expanduser("~/.config/idea-download/config.yaml"),
    "/etc/idea-download/config.yml",                          # System global
    "/etc/idea-download/config.yaml",
]


@dataclass(frozen=True)
class PathSettings:
    """
    Filesystem roots.

    Attributes:
        install_root: Directory holding versions, labels and the download cache
        applications_dir: Shared OS-level directory receiving desktop entry links
    """
    install_root: str = DEFAULT_INSTALL_ROOT
    applications_dir: str = DEFAULT_APPLICATIONS_DIR

    def __post_init__(self):
        if not self.install_root:
            raise ValueError("install_root must not be empty")

    @property
    def root(self) -> Path:
        return Path(self.install_root).expanduser().absolute()

    @property
    def version_root(self) -> Path:
        return self.root / "version"

    @property
    def desktop_root(self) -> Path:
        return self.root / "desktop"

    @property
    def download_dir(self) -> Path:
        return self.root / "download"

    @staticmethod
    def from_dict(data: dict[str, Any]) -> PathSettings:
        return PathSettings(
            install_root=data.get("install_root", DEFAULT_INSTALL_ROOT),
            applications_dir=data.get("applications_dir", DEFAULT_APPLICATIONS_DIR),
        )


@dataclass(frozen=True)
class RepositorySettings:
    """
    Remote repository locations and fetch behavior.

    Attributes:
        listing_url: Page listing all published builds
        build_url: URL prefix preceding each build identifier in the listing
        download_url: Base URL for ``<code>-<version>.tar.gz`` archives
        timeout_seconds: Timeout for network operations
        status_count: Number of remote candidates shown by ``status``
        sort_candidates: Sort the listing most-recent-first instead of trusting server order
    """
    listing_url: str = DEFAULT_LISTING_URL
    build_url: str = ""
    download_url: str = DEFAULT_DOWNLOAD_URL
    timeout_seconds: int = 30
    status_count: int = 20
    sort_candidates: bool = False

    def __post_init__(self):
        if not self.build_url:
            object.__setattr__(self, "build_url", self.listing_url.rstrip("/") + BUILD_URL_SUFFIX)

        if self.timeout_seconds < 1 or self.timeout_seconds > 300:
            raise ValueError(
                f"Invalid timeout_seconds: {self.timeout_seconds}. "
                "Must be between 1 and 300"
            )

        if self.status_count < 1:
            raise ValueError(f"Invalid status_count: {self.status_count}. Must be at least 1")

    @staticmethod
    def from_dict(data: dict[str, Any]) -> RepositorySettings:
        return RepositorySettings(
            listing_url=data.get("listing_url", DEFAULT_LISTING_URL),
            build_url=data.get("build_url", ""),
            download_url=data.get("download_url", DEFAULT_DOWNLOAD_URL),
            timeout_seconds=data.get("timeout_seconds", 30),
            status_count=data.get("status_count", 20),
            sort_candidates=data.get("sort_candidates", False),
        )


@dataclass(frozen=True)
class Config:
    """
    File based configuration.

    Attributes:
        version: Config schema version
        paths: Filesystem roots
        repository: Remote repository settings
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    paths: PathSettings = field(default_factory=PathSettings)
    repository: RepositorySettings = field(default_factory=RepositorySettings)
    source: str = ""

    def __post_init__(self):
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        return Config(
            version=data.get("version", 1),
            paths=PathSettings.from_dict(data.get("paths") or {}),
            repository=RepositorySettings.from_dict(data.get("repository") or {}),
            source=source,
        )

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring non-default values from this config.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        return Config(
            version=self.version,
            paths=_merge_defaults(self.paths, other.paths, PathSettings()),
            repository=_merge_defaults(self.repository, other.repository, RepositorySettings()),
            source=self.source or other.source,
        )

    def with_install_root(self, install_root: str) -> Config:
        return Config(
            version=self.version,
            paths=PathSettings(install_root=install_root, applications_dir=self.paths.applications_dir),
            repository=self.repository,
            source=self.source,
        )


def _merge_defaults(primary, secondary, defaults):
    """Field-wise merge: a primary value wins unless it equals the default."""
    values = {}
    for name in primary.__dataclass_fields__:
        value = getattr(primary, name)
        values[name] = value if value != getattr(defaults, name) else getattr(secondary, name)
    return type(primary)(**values)


@dataclass(frozen=True)
class Options:
    """
    Runtime choices for one invocation, fixed at startup.

    Attributes:
        action: One of ``ACTIONS`` (None when only help was requested)
        pattern: Version constraint
        edition: Product edition to operate on
        label: Label to bind the installation to (install/repair only)
        dry_run: Perform reads only, report planned writes
        quiet: Suppress everything but errors and the final result
        verbose: Enable debug output
    """
    action: str | None = None
    pattern: VersionPattern = field(default_factory=VersionPattern.unset)
    edition: Edition = Edition.COMMUNITY
    label: str | None = None
    dry_run: bool = False
    quiet: bool = False
    verbose: bool = False

    def __post_init__(self):
        if self.action is not None and self.action not in ACTIONS:
            raise ValueError(
                f"Unknown command: {self.action}. Must be one of: {', '.join(ACTIONS)}"
            )
        if self.label is not None and (not self.label or "/" in self.label):
            raise ValueError(f"Invalid label: {self.label!r}")


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Args:
        file_path: Path to YAML file

    Returns:
        Parsed configuration dictionary, or None if file invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def _load_json(file_path: str) -> dict[str, Any] | None:
    """
    Load JSON configuration file.

    Args:
        file_path: Path to JSON file

    Returns:
        Parsed configuration dictionary, or None if file invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    Args:
        file_path: Path to configuration file
        verbose: Enable verbose logging

    Returns:
        Config object, or None if file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    if file_path.endswith(".json"):
        data = _load_json(file_path)
    else:
        data = _load_yaml(file_path)

    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
        vlog(f"Loaded config successfully: {file_path}", verbose)
        return config
    except (ValueError, TypeError, AttributeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Custom path (argument, else ``$IDEA_DOWNLOAD_CONFIG``)
    2. Project .idea-download.yml
    3. User ~/.config/idea-download/config.yml
    4. System /etc/idea-download/config.yml
    5. Default configuration

    ``$IDEA_DOWNLOAD_INSTALL_ROOT`` overrides the merged install root.

    Args:
        custom_path: Optional path to custom configuration file
        verbose: Enable verbose logging

    Returns:
        Merged Config object (never None, returns defaults if no config found)

    Raises:
        ConfigError: If a custom path is given but the file cannot be loaded
    """
    configs: list[Config] = []

    custom_path = custom_path or os.environ.get("IDEA_DOWNLOAD_CONFIG")
    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ConfigError(f"Could not load config from specified path: {custom_path}")
        configs.append(config)
        vlog(f"Using custom config: {custom_path}", verbose)

    for location in CONFIG_LOCATIONS:
        config = load_config_file(location, verbose)
        if config is not None:
            configs.append(config)
            vlog(f"Found config at: {location}", verbose)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        merged = Config()
    else:
        # First config has highest priority
        merged = configs[0]
        for config in configs[1:]:
            merged = merged.merge_with(config)
        vlog(f"Merged {len(configs)} config files", verbose)

    install_root = os.environ.get("IDEA_DOWNLOAD_INSTALL_ROOT")
    if install_root:
        vlog(f"Install root overridden by environment: {install_root}", verbose)
        merged = merged.with_install_root(install_root)

    return merged
