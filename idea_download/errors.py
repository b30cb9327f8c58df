"""
Exit codes and exception hierarchy.

Every failure is terminal for the current operation. The command-line front
end maps each exception to its exit code and prints the message with an
``[ERROR]`` prefix.
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit states."""
    OK = 0
    GENERAL_FAILURE = 10
    ILLEGAL_OPTION = 11
    ILLEGAL_COMMAND = 12
    ILLEGAL_STATE = 13


class IdeaDownloadError(Exception):
    """
    Base exception for all idea-download failures.

    Attributes:
        message: Human-readable error message
        remediation: Suggested fix for the error
        exit_code: Process exit code for this kind of failure
    """
    exit_code: ExitCode = ExitCode.GENERAL_FAILURE

    def __init__(self, message: str, remediation: str | None = None):
        self.message = message
        self.remediation = remediation
        super().__init__(message)


class ResolutionError(IdeaDownloadError):
    """Raised when a version pattern cannot be resolved against the repository."""


class NoMatchFound(ResolutionError):
    """Raised when no repository candidate satisfies the version pattern."""

    def __init__(self, pattern_description: str):
        super().__init__(
            f"No version matching {pattern_description} available.",
            remediation="Run 'status' to list the versions published in the repository.",
        )
        self.pattern_description = pattern_description


class NetworkError(IdeaDownloadError):
    """Raised when fetching the repository listing fails."""


class PrivilegeError(IdeaDownloadError):
    """Raised when a mutating command runs without root privileges."""
    exit_code = ExitCode.ILLEGAL_STATE


class StateError(IdeaDownloadError):
    """Raised for illegal command combinations, before any I/O happens."""
    exit_code = ExitCode.ILLEGAL_COMMAND


class OptionError(IdeaDownloadError):
    """Raised for options that cannot be parsed."""
    exit_code = ExitCode.ILLEGAL_OPTION


class ConfigError(IdeaDownloadError):
    """Raised when an explicitly requested configuration file cannot be loaded."""
    exit_code = ExitCode.ILLEGAL_OPTION


class InstallationError(IdeaDownloadError):
    """Raised when the filesystem side of an installation fails."""


class DownloadError(InstallationError):
    """Raised when an archive cannot be downloaded."""


class ExtractionError(InstallationError):
    """Raised when an archive cannot be read or extracted."""
