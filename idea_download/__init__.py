"""
idea-download - IntelliJ IDEA installation management.

Core Modules:
- Resolution: version patterns and the remote repository index
- Installation: download cache, archive extraction, installed versions
- Labels: named links and desktop entries for installations
- Reconciliation: install, remove, repair, clean and status operations
"""

__version__ = "1.0.0"

VERSION = __version__

from .config import Config, Options, PathSettings, RepositorySettings, load_config
from .editions import Edition
from .errors import (
    ExitCode,
    IdeaDownloadError,
    ResolutionError,
    NoMatchFound,
    NetworkError,
    PrivilegeError,
    StateError,
    OptionError,
    ConfigError,
    InstallationError,
    DownloadError,
    ExtractionError,
)
from .patterns import PatternMode, VersionPattern
from .repository import RepositoryIndex, ScrapingRepositoryIndex, StaticRepositoryIndex
from .downloads import DownloadCache
from .installations import InstallationRecord, InstallationStore
from .labels import DesktopEntry, LabelBinding, LabelBindingStore
from .reconciler import InstallationStatus, OperationResult, Reconciler
from .logging_config import setup_logging, get_logger

__all__ = [
    "__version__",
    "VERSION",
    # Configuration
    "Config",
    "Options",
    "PathSettings",
    "RepositorySettings",
    "load_config",
    "Edition",
    # Errors
    "ExitCode",
    "IdeaDownloadError",
    "ResolutionError",
    "NoMatchFound",
    "NetworkError",
    "PrivilegeError",
    "StateError",
    "OptionError",
    "ConfigError",
    "InstallationError",
    "DownloadError",
    "ExtractionError",
    # Resolution
    "PatternMode",
    "VersionPattern",
    "RepositoryIndex",
    "ScrapingRepositoryIndex",
    "StaticRepositoryIndex",
    # Installation
    "DownloadCache",
    "InstallationRecord",
    "InstallationStore",
    # Labels
    "DesktopEntry",
    "LabelBinding",
    "LabelBindingStore",
    # Reconciliation
    "InstallationStatus",
    "OperationResult",
    "Reconciler",
    # Logging
    "setup_logging",
    "get_logger",
]
