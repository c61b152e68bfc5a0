"""Release session state.

Tracks which workspace crates are released, ignored or still pending during
one interactive session. The state changes only through explicit commands
fed to ``ReleaseSession.apply``; nothing is derived automatically and
nothing is persisted.

Commands:
    Ignore(package)     the crate will not be released this session
    Release(package)    the crate has been published
    BumpMinor(package)  bump the crate and re-pin its dependents on disk
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict

from .deps import propagate_bump
from .errors import ManifestError
from .graph import WorkspaceGraph
from .models import BumpResult, PackageId
from .versions import BumpStrategy


class PackageStatus(str, Enum):
    UNRELEASED = "unreleased"
    IGNORED = "ignored"
    RELEASED = "released"


class Ignore(BaseModel):
    model_config = ConfigDict(frozen=True)

    package: PackageId


class Release(BaseModel):
    model_config = ConfigDict(frozen=True)

    package: PackageId


class BumpMinor(BaseModel):
    model_config = ConfigDict(frozen=True)

    package: PackageId
    strategy: BumpStrategy = BumpStrategy.MINOR


Command = Union[Ignore, Release, BumpMinor]


class Outcome(BaseModel):
    """Result of applying one command.

    Attributes:
        status: The crate's status after the command.
        bump: The propagation result of a successful bump.
        error: Message of a failed bump; the crate's state is unchanged.
    """

    package: PackageId
    status: PackageStatus
    bump: BumpResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ReleaseSession:
    """Per-session release bookkeeping over the members of one graph.

    Crates marked ``publish = false`` start out ignored; every other crate
    starts unreleased. Each crate is in exactly one of the three sets.
    """

    def __init__(self, graph: WorkspaceGraph, ignore: list[str] | None = None) -> None:
        self.graph = graph
        self._lock = threading.Lock()
        self.released: set[PackageId] = set()
        self.ignored: set[PackageId] = {
            pkg_id
            for pkg_id in graph.crates
            if graph.package(pkg_id).publish_restricted
        }
        for name in ignore or []:
            self.ignored.add(graph.find(name))
        self.unreleased: set[PackageId] = set(graph.crates) - self.ignored

    def status(self, pkg_id: PackageId) -> PackageStatus:
        self.graph.package(pkg_id)
        if pkg_id in self.released:
            return PackageStatus.RELEASED
        if pkg_id in self.ignored:
            return PackageStatus.IGNORED
        return PackageStatus.UNRELEASED

    def pending(self) -> list[PackageId]:
        """Unreleased crates in publish order."""
        return [pkg_id for pkg_id in self.graph.order() if pkg_id in self.unreleased]

    def summary(self) -> dict[PackageStatus, int]:
        return {
            PackageStatus.RELEASED: len(self.released),
            PackageStatus.IGNORED: len(self.ignored),
            PackageStatus.UNRELEASED: len(self.unreleased),
        }

    def _move(self, pkg_id: PackageId, target: set[PackageId]) -> None:
        for bucket in (self.released, self.ignored, self.unreleased):
            if bucket is not target:
                bucket.discard(pkg_id)
        target.add(pkg_id)

    def apply(self, command: Command) -> Outcome:
        """Apply one command and report the result.

        Manifest errors from a bump are returned in the outcome instead of
        raised, and leave the session untouched.

        Raises:
            UnknownPackage: If the command names a crate outside the graph.
        """
        pkg_id = command.package
        self.graph.package(pkg_id)

        with self._lock:
            if isinstance(command, Ignore):
                self._move(pkg_id, self.ignored)
                return Outcome(package=pkg_id, status=PackageStatus.IGNORED)

            if isinstance(command, Release):
                self._move(pkg_id, self.released)
                return Outcome(package=pkg_id, status=PackageStatus.RELEASED)

            if isinstance(command, BumpMinor):
                try:
                    result = propagate_bump(self.graph, pkg_id, command.strategy)
                except ManifestError as exc:
                    return Outcome(
                        package=pkg_id, status=self.status(pkg_id), error=str(exc)
                    )
                return Outcome(package=pkg_id, status=self.status(pkg_id), bump=result)

        raise TypeError(f"Unknown command: {command!r}")
