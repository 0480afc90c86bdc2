"""Release chores for Inkwell.

Thin wrappers around external commands. Each task runs its commands one
after the other and stops at the first failure, raising TaskError with the
tool's exit status so the CLI can exit with the same status.

Functions:
    run_command: Run one external command in the project root.
    revert_output: Restore the tracked output directory from git.
    upgrade_packages: Upgrade the site's Python packages with pip.
"""

from __future__ import annotations

import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path

import click

from .executable_utils import require_executable


class TaskError(RuntimeError):
    """An external command exited with a non-zero status.

    Attributes:
        command: The command that failed.
        returncode: Its exit status.
    """

    def __init__(self, command: Sequence[str], returncode: int):
        self.command = list(command)
        self.returncode = returncode
        super().__init__(f"{' '.join(self.command)} exited with status {returncode}")


def run_command(command: Sequence[str], cwd: Path) -> None:
    """Run a command, echoing it first.

    Output goes straight to the terminal.

    Raises:
        TaskError: If the command exits with a non-zero status.
    """
    click.echo(" ".join(command))
    result = subprocess.run(list(command), cwd=cwd)
    if result.returncode != 0:
        raise TaskError(command, result.returncode)


def revert_output(project_root: Path, output_dir: str) -> None:
    """Discard local changes to the output directory.

    Runs ``git checkout -- <dir>`` and then ``git clean -fd -- <dir>``.
    """
    git = require_executable("git")
    run_command([git, "checkout", "--", output_dir], project_root)
    run_command([git, "clean", "-fd", "--", output_dir], project_root)


def upgrade_packages(project_root: Path, packages: Sequence[str]) -> None:
    """Upgrade the given packages in the running interpreter's environment."""
    if not packages:
        click.echo("No packages configured in upgrade_packages; nothing to do.")
        return
    click.echo(f"Upgrading {', '.join(packages)}...")
    run_command(
        [sys.executable, "-m", "pip", "install", "--upgrade", *packages],
        project_root,
    )
