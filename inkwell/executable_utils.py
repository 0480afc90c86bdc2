"""Executable discovery utilities for Inkwell.

External tools (git, ImageMagick, cjpeg) are looked up on the system PATH
first and then in an optional list of project-local directories.

Functions:
    find_executable: Locate an executable in PATH or extra directories.
    require_executable: Same, but raise when the executable is missing.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from pathlib import Path


class ExecutableNotFoundError(FileNotFoundError):
    """Raised when a required external tool cannot be located."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Required executable not found on PATH: {name}")


def find_executable(name: str, extra_dirs: Iterable[Path] = ()) -> str | None:
    """Find an executable in PATH or in one of ``extra_dirs``.

    Args:
        name: Name of the executable to find (e.g., 'git', 'magick').
        extra_dirs: Additional directories searched after PATH, in order.

    Returns:
        Full path to the executable if found, None otherwise.

    Examples:
        >>> find_executable('git')
        '/usr/bin/git'
    """
    found = shutil.which(name)
    if found:
        return found

    for directory in extra_dirs:
        candidate = Path(directory) / name
        if candidate.is_file():
            return str(candidate)

    return None


def require_executable(name: str, extra_dirs: Iterable[Path] = ()) -> str:
    """Find an executable or raise ExecutableNotFoundError."""
    found = find_executable(name, extra_dirs)
    if found is None:
        raise ExecutableNotFoundError(name)
    return found
