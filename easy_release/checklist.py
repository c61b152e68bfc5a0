"""Release readiness checks for workspace crates.

crates.io rejects or flags crates that lack basic metadata, and a crate
whose workspace dependencies are declared by path or git only cannot be
published at all. These helpers report both per crate.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from .graph import WorkspaceGraph
from .models import DependencyKind, Package, PackageId
from .versions import req_matches


class CheckItem(BaseModel):
    """One line of a crate's readiness checklist."""

    label: str
    ok: bool
    detail: str = ""


def check_package(package: Package) -> list[CheckItem]:
    """Check the metadata crates.io expects on a published crate.

    Covers keywords, authors, edition, license and description.
    """
    return [
        CheckItem(
            label="keywords",
            ok=bool(package.keywords),
            detail=", ".join(package.keywords) or "Missing keywords",
        ),
        CheckItem(
            label="authors",
            ok=bool(package.authors),
            detail=", ".join(package.authors) or "Missing authors",
        ),
        CheckItem(label="edition", ok=True, detail=f"Edition {package.edition}"),
        CheckItem(
            label="license",
            ok=package.license is not None,
            detail=package.license or "Missing license",
        ),
        CheckItem(
            label="description",
            ok=package.description is not None,
            detail=package.description or "Missing description",
        ),
    ]


def has_local_deps(package: Package) -> bool:
    """True if the crate depends on something only available locally.

    That is a git dependency, or a normal path dependency without a version
    requirement.
    """
    for dep in package.dependencies:
        if dep.source is not None and dep.source.startswith("git+"):
            return True
        if (
            dep.path is not None
            and dep.kind is DependencyKind.NORMAL
            and dep.req.strip() in ("", "*")
        ):
            return True
    return False


class DepState(str, Enum):
    OK = "ok"
    OUTDATED = "outdated"
    LOCAL = "local"


class DepStatus(BaseModel):
    """How a crate's requirement on a workspace dependency compares to it.

    Attributes:
        name: Dependency name.
        version: The dependency's current version.
        req: Requirement the crate declares on it.
        state: LOCAL for "*", OK if the version satisfies req, else OUTDATED.
    """

    name: str
    version: str
    req: str
    state: DepState


def dependency_status(graph: WorkspaceGraph, pkg_id: PackageId) -> list[DepStatus]:
    """Compare a crate's requirements against its workspace dependencies.

    Returns:
        One entry per in-workspace dependency, sorted by requirement.
    """
    package = graph.package(pkg_id)
    out: list[DepStatus] = []
    for dep_id in graph.dependencies(pkg_id):
        dep = graph.package(dep_id)
        req = next(
            (
                d.req
                for d in package.dependencies
                if d.name == dep.name and d.kind is DependencyKind.NORMAL
            ),
            "*",
        )
        if req.strip() in ("", "*"):
            state = DepState.LOCAL
        elif req_matches(req, dep.version):
            state = DepState.OK
        else:
            state = DepState.OUTDATED
        out.append(DepStatus(name=dep.name, version=dep.version, req=req, state=state))

    out.sort(key=lambda s: (s.req, s.name))
    return out
