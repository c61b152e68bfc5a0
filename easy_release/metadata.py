"""Workspace metadata loading.

Runs ``cargo metadata`` once per session and validates its JSON output into
a MetadataSnapshot. ``--no-deps`` restricts the package list to workspace
members, which is all the dependency graph needs.
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path

from pydantic import ValidationError

from .errors import MetadataError
from .models import MetadataSnapshot
from .shell import cargo


def parse_metadata(raw: str) -> MetadataSnapshot:
    """Validate ``cargo metadata --format-version 1`` JSON into a snapshot.

    Raises:
        MetadataError: If the output is not JSON or lacks required fields.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MetadataError(f"cargo metadata returned invalid JSON: {exc}") from exc
    try:
        return MetadataSnapshot.model_validate(data)
    except ValidationError as exc:
        raise MetadataError(f"Unexpected cargo metadata output:\n{exc}") from exc


def load_metadata(manifest_path: Path | None = None) -> MetadataSnapshot:
    """Collect workspace metadata by running ``cargo metadata``.

    Args:
        manifest_path: Cargo.toml of the workspace, or None to let cargo
            search upwards from the current directory.

    Raises:
        MetadataError: If cargo is missing, fails, or returns bad output.
    """
    args = ["metadata", "--format-version", "1", "--no-deps"]
    if manifest_path is not None:
        args.extend(["--manifest-path", str(manifest_path)])

    try:
        raw = cargo(*args)
    except FileNotFoundError as exc:
        raise MetadataError(
            "cargo executable not found",
            hint="Install Rust via https://rustup.rs or add cargo to PATH.",
        ) from exc
    except subprocess.CalledProcessError as exc:
        raise MetadataError(
            f"cargo metadata failed with exit code {exc.returncode}:\n"
            f"{(exc.stderr or '').strip()}"
        ) from exc

    return parse_metadata(raw)
