"""Subprocess helpers for external tools (git) invoked by libgraph.

Wraps subprocess.run so that child processes never inherit the console
input handle and never flash a console window on Windows.
"""

import subprocess
import sys
from typing import Any


def get_subprocess_creation_flags() -> int:
    """Platform-specific creation flags (CREATE_NO_WINDOW on Windows, else 0)."""
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def safe_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """Execute subprocess.run with platform-specific flags.

    Explicit creationflags are OR'd with the platform defaults. stdin is
    redirected to DEVNULL unless the caller passes one.

    Args:
        cmd: Command and arguments
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run
    """
    default_flags = get_subprocess_creation_flags()

    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    return subprocess.run(cmd, **kwargs)
