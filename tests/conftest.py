"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from easy_release.models import (
    Dependency,
    DependencyKind,
    MetadataSnapshot,
    Package,
    PackageId,
)


def make_id(name: str, version: str = "0.1.0") -> PackageId:
    return PackageId(f"path+file:///ws/{name}#{name}@{version}")


@pytest.fixture
def make_package() -> Callable[..., Package]:
    """Factory for Package models with path dependencies on siblings."""

    def _make(
        name: str,
        deps: list[str | Dependency] | None = None,
        *,
        version: str = "0.1.0",
        manifest_path: str | None = None,
        **fields: object,
    ) -> Package:
        dependencies = [
            d
            if isinstance(d, Dependency)
            else Dependency(name=d, req="^0.1.0", path=f"/ws/{d}")
            for d in deps or []
        ]
        return Package(
            id=make_id(name, version),
            name=name,
            version=version,
            manifest_path=manifest_path or f"/ws/{name}/Cargo.toml",
            dependencies=dependencies,
            **fields,
        )

    return _make


@pytest.fixture
def make_snapshot() -> Callable[..., MetadataSnapshot]:
    """Factory for a snapshot whose members are exactly the given packages."""

    def _make(
        *packages: Package, workspace_root: str | None = None
    ) -> MetadataSnapshot:
        return MetadataSnapshot(
            workspace_members=[p.id for p in packages],
            packages=list(packages),
            workspace_root=workspace_root,
        )

    return _make


A_MANIFEST = """\
[package]
name = "a"
version = "1.2.3"
edition = "2021"
license = "MIT"

[dependencies]
serde = { version = "1.0", features = ["derive"] }
"""

B_MANIFEST = """\
[package]
name = "b"
version = "0.4.1"
edition = "2021"

# Runtime dependencies
[dependencies]
a = "^1.2.0"  # keep in sync with a
anyhow = "1"

[dev-dependencies]
pretty_assertions = "1"
"""

C_MANIFEST = """\
[package]
name = "c"
version = "0.2.0"
edition = "2021"
publish = false

[dependencies]
a = { version = "^1.2.0", path = "../a" }
b = { path = "../b", version = "0.4" }
"""


@pytest.fixture
def abc_workspace(
    tmp_path: Path,
) -> tuple[MetadataSnapshot, Path]:
    """A workspace on disk: a (1.2.3), b → a, c → a, b.

    Returns the matching snapshot and the workspace root.
    """
    (tmp_path / "Cargo.toml").write_text(
        '[workspace]\nmembers = ["a", "b", "c"]\nresolver = "2"\n'
    )
    manifests = {"a": A_MANIFEST, "b": B_MANIFEST, "c": C_MANIFEST}
    for name, text in manifests.items():
        (tmp_path / name).mkdir()
        (tmp_path / name / "Cargo.toml").write_text(text)

    def dep(name: str, req: str, kind: DependencyKind = DependencyKind.NORMAL):
        return Dependency(name=name, req=req, kind=kind, path=str(tmp_path / name))

    registry = "registry+https://github.com/rust-lang/crates.io-index"
    packages = [
        Package(
            id=make_id("a", "1.2.3"),
            name="a",
            version="1.2.3",
            manifest_path=str(tmp_path / "a" / "Cargo.toml"),
            dependencies=[Dependency(name="serde", req="^1.0", source=registry)],
            license="MIT",
            edition="2021",
        ),
        Package(
            id=make_id("b", "0.4.1"),
            name="b",
            version="0.4.1",
            manifest_path=str(tmp_path / "b" / "Cargo.toml"),
            dependencies=[
                dep("a", "^1.2.0"),
                Dependency(name="anyhow", req="^1", source=registry),
                Dependency(
                    name="pretty_assertions",
                    req="^1",
                    kind=DependencyKind.DEV,
                    source=registry,
                ),
            ],
            edition="2021",
        ),
        Package(
            id=make_id("c", "0.2.0"),
            name="c",
            version="0.2.0",
            manifest_path=str(tmp_path / "c" / "Cargo.toml"),
            dependencies=[dep("a", "^1.2.0"), dep("b", "^0.4")],
            edition="2021",
            publish=[],
        ),
    ]
    snapshot = MetadataSnapshot(
        workspace_members=[p.id for p in packages],
        packages=packages,
        workspace_root=str(tmp_path),
    )
    return snapshot, tmp_path
