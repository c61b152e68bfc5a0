"""Data models for cargo-easy-release.

These Pydantic models mirror the subset of ``cargo metadata`` output the
release tool needs. A ``MetadataSnapshot`` is loaded once per session and
treated as read-only.
"""

from __future__ import annotations

from enum import Enum
from typing import NewType

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Cargo's package id string, e.g. "path+file:///ws/core#my-core@0.1.0".
PackageId = NewType("PackageId", str)


class DependencyKind(str, Enum):
    """Which dependency table a dependency was declared in."""

    NORMAL = "normal"
    DEV = "dev"
    BUILD = "build"


class Dependency(BaseModel):
    """A dependency as declared in a package's Cargo.toml.

    Attributes:
        name: Name of the depended-on package (not the rename).
        req: Version requirement string, "*" when none was given.
        kind: Dependency table the entry came from.
        source: Registry or git source, None for path dependencies.
        path: Local path for path dependencies.
        rename: Manifest key when declared as ``alias = { package = "name" }``.
        target: Platform cfg for ``[target.<cfg>.dependencies]`` entries.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    req: str = "*"
    kind: DependencyKind = DependencyKind.NORMAL
    source: str | None = None
    path: str | None = None
    rename: str | None = None
    target: str | None = None
    optional: bool = False

    @field_validator("kind", mode="before")
    @classmethod
    def _null_kind_is_normal(cls, value: object) -> object:
        # cargo metadata reports normal dependencies with "kind": null
        return DependencyKind.NORMAL if value is None else value

    @property
    def manifest_key(self) -> str:
        """The key this dependency uses in its dependency table."""
        return self.rename or self.name


class Package(BaseModel):
    """Metadata for a single package in the workspace.

    Attributes:
        id: Globally unique Cargo package id.
        manifest_path: Absolute path to the package's Cargo.toml.
        publish: None if unrestricted, [] if the package must never be
            published, otherwise the registries it may be published to.
    """

    model_config = ConfigDict(frozen=True)

    id: PackageId
    name: str
    version: str
    manifest_path: str
    dependencies: list[Dependency] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)
    license: str | None = None
    description: str | None = None
    edition: str = "2015"
    publish: list[str] | None = None

    @property
    def publish_restricted(self) -> bool:
        """True when the manifest says ``publish = false``."""
        return self.publish == []


class MetadataSnapshot(BaseModel):
    """Frozen description of a workspace as reported by ``cargo metadata``."""

    model_config = ConfigDict(frozen=True)

    workspace_members: list[PackageId]
    packages: list[Package]
    workspace_root: str | None = None
    target_directory: str | None = None


class VersionBump(BaseModel):
    """Records a version change for a package.

    Attributes:
        old: The version before bumping.
        new: The version after bumping.
    """

    old: str
    new: str


class BumpResult(BaseModel):
    """Outcome of a successful bump propagation.

    Attributes:
        package: Name of the bumped package.
        bump: Old and new version of the bumped package.
        written: Every manifest that was rewritten, primary first.
    """

    package: str
    bump: VersionBump
    written: list[str] = Field(default_factory=list)
