"""
Common utilities shared across idea_download modules.
"""

from __future__ import annotations

import os
import sys


def is_root() -> bool:
    """
    Check whether the process runs with root privileges.

    Returns:
        True if the effective user id is 0, False otherwise (or on platforms
        without ``geteuid``).
    """
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None:
        return False
    return geteuid() == 0


def program_name() -> str:
    """Name the user invoked us by, for help texts and desktop entries."""
    return os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "idea-download"


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log verbose message using structured logging.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or os.environ.get("IDEA_DOWNLOAD_DEBUG", "0") == "1":
        from .logging_config import get_logger
        get_logger().debug(msg)
