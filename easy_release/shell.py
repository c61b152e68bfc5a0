"""Shell and cargo utilities.

Provides simple wrappers around subprocess calls for running cargo, plus
output formatting helpers.
"""

from __future__ import annotations

import subprocess
import sys

from .errors import EasyReleaseError


def cargo(*args: str) -> str:
    """Run a cargo command and return stdout.

    Args:
        *args: Arguments to pass to cargo (e.g., "metadata", "--no-deps").

    Returns:
        Stdout from the cargo command.

    Raises:
        FileNotFoundError: If cargo is not installed.
        subprocess.CalledProcessError: On non-zero exit; stderr is captured
            on the exception.
    """
    result = subprocess.run(
        ["cargo", *args], capture_output=True, text=True, check=True
    )
    return result.stdout


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of a command in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def fatal(msg: str | EasyReleaseError) -> None:
    """Print an error message and exit with code 1.

    Use for unrecoverable errors that should halt the command.
    """
    print(f"ERROR: {msg}", file=sys.stderr)
    sys.exit(1)
