"""Workspace dependency graph.

Builds the in-workspace dependency graph from a metadata snapshot and
derives a publish order from it. Crates must be published in dependency
order so that when crate A depends on crate B, B reaches the registry first.

Two rankings are available:

- ``Ranking.TOPOLOGICAL`` (default) is exact. Each crate's weight is its
  dependency depth, and sorting by (depth, id) is a valid topological order.
- ``Ranking.WEIGHTED`` sums direct dependency counts unrolled three levels
  deep. It is deterministic but only approximate for deeply nested graphs.

Cycles are rejected at construction whichever ranking is used.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum

from .errors import MalformedWorkspace, UnknownPackage
from .models import DependencyKind, MetadataSnapshot, Package, PackageId

# Levels of indirect dependencies counted below the direct ones by the
# weighted ranking.
WEIGHT_DEPTH = 3


class Ranking(str, Enum):
    """How the publish order is derived."""

    TOPOLOGICAL = "topological"
    WEIGHTED = "weighted"


def topo_sort(deps: Mapping[PackageId, frozenset[PackageId]]) -> list[PackageId]:
    """Topologically sort packages by their internal dependencies.

    Uses Kahn's algorithm to produce an order where dependencies come before
    dependents. Ready packages are taken in id order for deterministic
    output.

    Args:
        deps: Map of package id → ids of its direct dependencies.

    Returns:
        List of package ids in publish order (dependencies first).

    Raises:
        MalformedWorkspace: If a dependency cycle is detected.
    """
    # Count incoming edges (dependencies) for each package
    in_degree = {n: 0 for n in deps}
    # Track reverse dependencies (who depends on each package)
    reverse_deps: dict[PackageId, list[PackageId]] = {n: [] for n in deps}

    for pkg_id, pkg_deps in deps.items():
        for dep in pkg_deps:
            if dep in deps:
                in_degree[pkg_id] += 1
                reverse_deps[dep].append(pkg_id)

    queue = sorted(n for n, d in in_degree.items() if d == 0)
    order: list[PackageId] = []

    while queue:
        node = queue.pop(0)
        order.append(node)
        for dependent in sorted(reverse_deps[node]):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)
        queue.sort()

    # If we didn't process all packages, there must be a cycle
    if len(order) != len(deps):
        remaining = sorted(set(deps) - set(order))
        raise MalformedWorkspace(
            f"Dependency cycle detected involving: {', '.join(remaining)}",
            hint="Break the cycle, e.g. by turning one edge into a dev-dependency.",
        )

    return order


def dependency_depths(
    deps: Mapping[PackageId, frozenset[PackageId]],
) -> dict[PackageId, int]:
    """Compute each package's dependency depth.

    Leaves have depth 0; any other package is one deeper than its deepest
    dependency.

    Raises:
        MalformedWorkspace: If a dependency cycle is detected.
    """
    depths: dict[PackageId, int] = {}
    for pkg_id in topo_sort(deps):
        depths[pkg_id] = 1 + max(
            (depths[d] for d in deps[pkg_id] if d in depths), default=-1
        )
    return depths


def unrolled_weight(
    deps: Mapping[PackageId, frozenset[PackageId]],
    pkg_id: PackageId,
    depth: int = WEIGHT_DEPTH,
) -> int:
    """Count direct dependencies plus those of dependencies, `depth` levels down.

    Counts are taken along every path, so a dependency reachable twice
    contributes twice.

    Example:
        C → {B, A}, B → {A}, A → {} gives 2 + 1 + 0 = 3
    """
    total = len(deps[pkg_id])
    if depth > 0:
        for dep in deps[pkg_id]:
            total += unrolled_weight(deps, dep, depth - 1)
    return total


def rank(
    deps: Mapping[PackageId, frozenset[PackageId]],
    ranking: Ranking = Ranking.TOPOLOGICAL,
) -> list[tuple[PackageId, int]]:
    """Produce the publish order as (id, weight) pairs, lightest first.

    Ties are broken by the id string so the result is deterministic.

    Raises:
        MalformedWorkspace: If a dependency cycle is detected.
    """
    if Ranking(ranking) is Ranking.WEIGHTED:
        # Validate acyclicity; the heuristic alone would not notice
        topo_sort(deps)
        weights = {pkg_id: unrolled_weight(deps, pkg_id) for pkg_id in deps}
    else:
        weights = dependency_depths(deps)
    return sorted(weights.items(), key=lambda item: (item[1], item[0]))


class WorkspaceGraph:
    """Read-only dependency graph over the members of one workspace.

    Attributes:
        crates: Ids of the workspace members.
        ws_deps: Map of member id → ids of its direct, in-workspace,
            normal dependencies.
        sorted: Derived publish order as (id, weight) pairs.
        ranking: Ranking used to derive ``sorted``.
    """

    def __init__(
        self,
        snapshot: MetadataSnapshot,
        crates: frozenset[PackageId],
        ws_deps: Mapping[PackageId, frozenset[PackageId]],
        ranking: Ranking = Ranking.TOPOLOGICAL,
    ) -> None:
        self.snapshot = snapshot
        self.crates = crates
        self.ws_deps = dict(ws_deps)
        self.ranking = Ranking(ranking)
        self.sorted = tuple(rank(self.ws_deps, self.ranking))
        self._packages = {p.id: p for p in snapshot.packages if p.id in crates}
        self._by_name = {p.name: p.id for p in self._packages.values()}

    @classmethod
    def from_snapshot(
        cls, snapshot: MetadataSnapshot, ranking: Ranking = Ranking.TOPOLOGICAL
    ) -> WorkspaceGraph:
        """Build a graph from a metadata snapshot. See build_graph()."""
        return build_graph(snapshot, ranking)

    def package(self, pkg_id: PackageId) -> Package:
        """Return the metadata of a workspace member."""
        try:
            return self._packages[pkg_id]
        except KeyError:
            raise UnknownPackage(f"Not a workspace member: {pkg_id}") from None

    def find(self, name: str) -> PackageId:
        """Resolve a member name to its id."""
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownPackage(
                f"No workspace crate named {name!r}",
                hint="Run 'cargo-easy-release plan' to list workspace crates.",
            ) from None

    def dependencies(self, pkg_id: PackageId) -> frozenset[PackageId]:
        self.package(pkg_id)
        return self.ws_deps[pkg_id]

    def dependents(self, pkg_id: PackageId) -> list[PackageId]:
        """Ids of members that directly depend on pkg_id, in id order."""
        self.package(pkg_id)
        return sorted(d for d, deps in self.ws_deps.items() if pkg_id in deps)

    def order(self) -> list[PackageId]:
        """Publish order without weights."""
        return [pkg_id for pkg_id, _ in self.sorted]

    def __len__(self) -> int:
        return len(self.crates)

    def __contains__(self, pkg_id: object) -> bool:
        return pkg_id in self.crates


def build_graph(
    snapshot: MetadataSnapshot, ranking: Ranking = Ranking.TOPOLOGICAL
) -> WorkspaceGraph:
    """Build the workspace graph from a metadata snapshot.

    Only normal dependencies on other workspace members become edges; dev
    and build dependencies and anything outside the workspace are dropped.

    Raises:
        MalformedWorkspace: If a member is missing from the package list, two
            members share a name, or the members form a dependency cycle.
    """
    crates = frozenset(snapshot.workspace_members)
    by_id = {p.id: p for p in snapshot.packages}

    missing = sorted(c for c in crates if c not in by_id)
    if missing:
        raise MalformedWorkspace(
            f"Workspace members missing from package list: {', '.join(missing)}"
        )

    # Name → id index over members; names must be unique to resolve deps
    by_name: dict[str, PackageId] = {}
    for pkg_id in sorted(crates):
        name = by_id[pkg_id].name
        if name in by_name:
            raise MalformedWorkspace(
                f"Workspace crate name {name!r} is ambiguous: "
                f"{by_name[name]} and {pkg_id}",
                hint="Workspace crate names must be unique.",
            )
        by_name[name] = pkg_id

    ws_deps: dict[PackageId, frozenset[PackageId]] = {}
    for pkg_id in crates:
        this_deps: set[PackageId] = set()
        for dep in by_id[pkg_id].dependencies:
            if dep.kind is not DependencyKind.NORMAL:
                continue
            if dep.name in by_name:
                this_deps.add(by_name[dep.name])
        ws_deps[pkg_id] = frozenset(this_deps)

    return WorkspaceGraph(snapshot, crates, ws_deps, ranking)
