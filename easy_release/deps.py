"""Version bump propagation.

Bumps one crate's version and rewrites the requirement every direct
dependent declares on it to a caret requirement on the new version.

All edits are resolved before anything touches the disk:

1. Read and parse every affected manifest, compute every edit in memory.
   Any missing file, bad TOML or missing dependency entry aborts here.
2. Write each new text to a temporary file beside its target, then rename
   them all into place. If a rename fails, files already replaced are
   restored from their original text.

The in-memory graph is not updated; rebuild it to observe the new versions.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Any

import tomlkit

from .errors import ManifestParseError, ManifestWriteError
from .graph import WorkspaceGraph
from .models import BumpResult, PackageId, VersionBump
from .toml import (
    dump_manifest,
    find_dependency_keys,
    get_package_version,
    iter_dependency_tables,
    parse_manifest,
    read_manifest_text,
)
from .versions import BumpStrategy, bump, caret_req

_locks_guard = threading.Lock()
_manifest_locks: dict[Path, threading.Lock] = {}


def _manifest_lock(path: Path) -> threading.Lock:
    with _locks_guard:
        return _manifest_locks.setdefault(path, threading.Lock())


@contextmanager
def lock_manifests(paths: list[Path]) -> Iterator[None]:
    """Hold the process-wide lock of every manifest in paths.

    Locks are acquired in sorted order so concurrent propagations touching
    overlapping files cannot deadlock.
    """
    with ExitStack() as stack:
        for path in sorted({p.resolve() for p in paths}):
            lock = _manifest_lock(path)
            lock.acquire()
            stack.callback(lock.release)
        yield


class _StagedManifest:
    """A manifest loaded for editing, with its original text kept for rollback."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.original = read_manifest_text(path)
        self.doc = parse_manifest(self.original, path)

    def render(self) -> str:
        return dump_manifest(self.doc)


def set_dependency_requirement(
    doc: tomlkit.TOMLDocument, dep_name: str, req: str
) -> list[str]:
    """Set the version requirement of a dependency in every normal table.

    String entries are replaced outright; table entries get their
    ``version`` key set and keep their other keys.

    Returns:
        Dotted names of the entries that were changed, and of any entries
        declared as ``{ workspace = true }`` which were left alone.
    """
    touched: list[str] = []
    for label, table in iter_dependency_tables(doc):
        for key in find_dependency_keys(table, dep_name):
            entry = table[key]
            if isinstance(entry, dict):
                if entry.get("workspace") is True:
                    touched.append(f"{label}.{key}:workspace")
                    continue
                entry["version"] = req
            else:
                table[key] = req
            touched.append(f"{label}.{key}")
    return touched


def set_workspace_dependency_requirement(
    doc: tomlkit.TOMLDocument, dep_name: str, req: str
) -> bool:
    """Set the requirement of a crate in the root [workspace.dependencies].

    Returns:
        False if the root manifest declares no such workspace dependency.
    """
    table: Any = doc.get("workspace", {}).get("dependencies")
    if not isinstance(table, dict):
        return False
    keys = find_dependency_keys(table, dep_name)
    for key in keys:
        entry = table[key]
        if isinstance(entry, dict):
            entry["version"] = req
        else:
            table[key] = req
    return bool(keys)


def _stage(staged: dict[Path, _StagedManifest], path: Path) -> _StagedManifest:
    if path not in staged:
        staged[path] = _StagedManifest(path)
    return staged[path]


def _commit(staged: list[_StagedManifest]) -> list[Path]:
    """Write all staged manifests, restoring originals if any write fails."""
    pending: list[tuple[_StagedManifest, str]] = []
    try:
        for manifest in staged:
            fd, tmp = tempfile.mkstemp(
                dir=manifest.path.parent, prefix=".Cargo.toml.", suffix=".tmp"
            )
            pending.append((manifest, tmp))
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                fh.write(manifest.render())
            # mkstemp creates 0600 files; keep the manifest's own mode
            shutil.copymode(manifest.path, tmp)
    except OSError as exc:
        for _, tmp in pending:
            Path(tmp).unlink(missing_ok=True)
        raise ManifestWriteError(
            manifest.path,
            f"Failed to stage {manifest.path}: {exc}",
            hint=f"Check file permissions for {manifest.path.parent}.",
        ) from exc

    replaced: list[_StagedManifest] = []
    try:
        for manifest, tmp in pending:
            os.replace(tmp, manifest.path)
            replaced.append(manifest)
    except OSError as exc:
        for _, tmp in pending:
            Path(tmp).unlink(missing_ok=True)
        for done in replaced:
            done.path.write_text(done.original, encoding="utf-8", newline="")
        raise ManifestWriteError(
            manifest.path,
            f"Failed to write {manifest.path}: {exc}; "
            f"restored {len(replaced)} already written manifest(s)",
        ) from exc

    return [m.path for m in staged]


def propagate_bump(
    graph: WorkspaceGraph,
    pkg_id: PackageId,
    strategy: BumpStrategy = BumpStrategy.MINOR,
) -> BumpResult:
    """Bump a crate's version and re-pin every direct dependent to it.

    The version is read from the crate's manifest on disk, not from the
    snapshot, so repeated bumps within one session keep advancing.

    Args:
        graph: Graph of the workspace the crate belongs to.
        pkg_id: Crate to bump.
        strategy: How to increment the version.

    Returns:
        The old and new version and every manifest written, primary first.

    Raises:
        UnknownPackage: If pkg_id is not a workspace member.
        ManifestReadError: If a manifest is missing or unreadable.
        ManifestParseError: If a manifest is invalid or lacks the version or
            dependency entry being rewritten. Nothing has been written.
        ManifestWriteError: If writing failed. Files already replaced have
            been restored.
    """
    package = graph.package(pkg_id)
    primary_path = Path(package.manifest_path)
    dependents = [graph.package(d) for d in graph.dependents(pkg_id)]
    root_path = (
        Path(graph.snapshot.workspace_root) / "Cargo.toml"
        if graph.snapshot.workspace_root
        else None
    )

    paths = [primary_path] + [Path(d.manifest_path) for d in dependents]
    if root_path is not None:
        paths.append(root_path)

    with lock_manifests(paths):
        staged: dict[Path, _StagedManifest] = {}

        primary = _stage(staged, primary_path)
        old = get_package_version(primary.doc, primary_path)
        try:
            new = bump(old, strategy)
        except ValueError as exc:
            raise ManifestParseError(
                primary_path, f"Invalid version {old!r} in {primary_path}: {exc}"
            ) from exc
        primary.doc["package"]["version"] = new
        req = caret_req(new)

        for dependent in dependents:
            dep_path = Path(dependent.manifest_path)
            manifest = _stage(staged, dep_path)
            touched = set_dependency_requirement(manifest.doc, package.name, req)
            if not touched:
                raise ManifestParseError(
                    dep_path,
                    f"{dep_path} declares no dependency on {package.name}",
                    hint="The workspace changed since it was loaded; reload it.",
                )
            if any(t.endswith(":workspace") for t in touched):
                if root_path is None:
                    raise ManifestParseError(
                        dep_path,
                        f"{dependent.name} inherits {package.name} from the "
                        "workspace but the workspace root is unknown",
                    )
                root = _stage(staged, root_path)
                if not set_workspace_dependency_requirement(
                    root.doc, package.name, req
                ):
                    raise ManifestParseError(
                        root_path,
                        f"No [workspace.dependencies] entry for {package.name} "
                        f"in {root_path}",
                    )

        # Only manifests whose text actually changed are written
        changed = [m for m in staged.values() if m.render() != m.original]
        written = _commit(changed)

    print(f"  {package.name}: {old} → {new}")
    for path in written[1:]:
        print(f"    updated {path}")

    return BumpResult(
        package=package.name,
        bump=VersionBump(old=old, new=new),
        written=[str(p) for p in written],
    )
