"""Release pipeline: load → plan → check → bump → publish.

This module orchestrates the cargo-easy-release commands:
1. Load workspace metadata and the release settings
2. Build the dependency graph and derive the publish order
3. Report release readiness per crate
4. Bump a crate and re-pin its dependents
5. Publish pending crates in dependency order

Every command starts from a freshly built graph, so manifest edits from an
earlier bump are always visible.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .checklist import DepState, check_package, dependency_status, has_local_deps
from .config import ReleaseConfig, load_config
from .errors import PublishInvocationError, UnknownPackage
from .graph import WorkspaceGraph, build_graph
from .metadata import load_metadata
from .publish import Publisher
from .session import BumpMinor, Outcome, Release, ReleaseSession
from .shell import step
from .versions import BumpStrategy


def load_workspace(
    manifest_path: Path | None = None, **overrides: Any
) -> tuple[WorkspaceGraph, ReleaseConfig]:
    """Load metadata and settings, then build the graph.

    Args:
        manifest_path: Workspace Cargo.toml, or None to search from cwd.
        **overrides: ReleaseConfig fields given on the command line; None
            values are ignored.

    Returns:
        The graph and the effective configuration.
    """
    step("Loading workspace")

    snapshot = load_metadata(manifest_path)
    if snapshot.workspace_root:
        root_manifest = Path(snapshot.workspace_root) / "Cargo.toml"
    else:
        root_manifest = manifest_path or Path.cwd() / "Cargo.toml"

    config = load_config(root_manifest) if root_manifest.exists() else ReleaseConfig()
    config = config.with_overrides(**overrides)

    graph = build_graph(snapshot, config.ranking)

    # Print discovered crates for user feedback
    for pkg_id in graph.order():
        pkg = graph.package(pkg_id)
        deps = sorted(graph.package(d).name for d in graph.dependencies(pkg_id))
        dep_str = f" → [{', '.join(deps)}]" if deps else ""
        print(f"  {pkg.name} {pkg.version}{dep_str}")

    return graph, config


def show_plan(graph: WorkspaceGraph, session: ReleaseSession) -> None:
    """Print the publish order, marking ignored crates."""
    step(f"Publish order ({graph.ranking.value})")

    for position, (pkg_id, weight) in enumerate(graph.sorted, start=1):
        pkg = graph.package(pkg_id)
        note = "  [ignored]" if pkg_id in session.ignored else ""
        print(f"  {position:>3}. {pkg.name} {pkg.version} (weight {weight}){note}")


def show_checks(graph: WorkspaceGraph) -> int:
    """Print the readiness checklist of every crate.

    Returns:
        Number of crates with at least one failing check.
    """
    step("Checking release readiness")

    failing = 0
    for pkg_id in graph.order():
        pkg = graph.package(pkg_id)
        if pkg.publish_restricted:
            continue

        items = check_package(pkg)
        statuses = dependency_status(graph, pkg_id)
        local = has_local_deps(pkg)
        bad = (
            any(not item.ok for item in items)
            or local
            or any(s.state is not DepState.OK for s in statuses)
        )
        if bad:
            failing += 1

        print(f"\n  {pkg.name} {pkg.version}")
        for item in items:
            print(f"    {'✓' if item.ok else '✗'} {item.label}: {item.detail}")
        if local:
            print("    ✗ depends on path-only or git crates")
        for s in statuses:
            print(f"    {s.state.value:>8}  {s.name} {s.version} (requires {s.req})")

    return failing


def bump_package(
    graph: WorkspaceGraph,
    name: str,
    strategy: BumpStrategy = BumpStrategy.MINOR,
) -> Outcome:
    """Bump one crate through a session and report what was written."""
    step(f"Bumping {name} ({strategy.value})")
    session = ReleaseSession(graph)
    return session.apply(BumpMinor(package=graph.find(name), strategy=strategy))


async def publish_workspace(
    graph: WorkspaceGraph,
    config: ReleaseConfig,
    only: list[str] | None = None,
    session: ReleaseSession | None = None,
) -> ReleaseSession:
    """Publish pending crates one at a time in publish order.

    A crate is marked released only after its publish succeeded. The first
    failure stops the run.

    Args:
        graph: Workspace graph.
        config: Effective configuration (flags, ignored crates).
        only: Names of the crates to publish; all pending crates if empty.
        session: Session to record releases in; a new one seeded from
            config.ignore if None. A failed crate stays unreleased in it.

    Raises:
        UnknownPackage: If a name in only is not a workspace crate.
        PublishInvocationError: If a publish fails; its output is attached.
    """
    if session is None:
        session = ReleaseSession(graph, ignore=config.ignore)
    publisher = Publisher(config.publish_config())

    targets = session.pending()
    if only:
        wanted = {graph.find(name) for name in only}
        skipped = sorted(wanted - set(targets))
        if skipped:
            names = ", ".join(graph.package(s).name for s in skipped)
            raise UnknownPackage(f"Not pending for release: {names}")
        targets = [t for t in targets if t in wanted]

    flags = [
        "dry run" if config.dry_run else "for real",
        "allow dirty" if config.allow_dirty else "clean tree",
    ]
    step(f"Publishing {len(targets)} crates ({', '.join(flags)})")

    for pkg_id in targets:
        pkg = graph.package(pkg_id)
        print(f"\n  {pkg.name} {pkg.version}")
        try:
            await publisher.publish(pkg)
        except PublishInvocationError as exc:
            for line in (exc.stderr or exc.stdout).splitlines():
                print(f"    {line}")
            raise
        session.apply(Release(package=pkg_id))
        print(f"  ✓ {pkg.name}")

    return session


def summarize(session: ReleaseSession) -> None:
    counts = session.summary()
    print(
        f"\n{'=' * 60}\n"
        + ", ".join(f"{n} {status.value}" for status, n in counts.items())
        + f"\n{'=' * 60}"
    )
