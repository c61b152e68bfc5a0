"""Session configuration.

Defaults can be set per workspace in the root Cargo.toml::

    [workspace.metadata.easy-release]
    dry-run = true
    allow-dirty = false
    ranking = "topological"   # or "weighted"
    bump = "minor"            # "major", "minor-keep-patch", "patch"
    ignore = ["xtask"]

Command-line flags override whatever the file says.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import EasyReleaseError
from .graph import Ranking
from .publish import PublishConfig
from .toml import get_release_settings, load_manifest
from .versions import BumpStrategy


class ReleaseConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    dry_run: bool = Field(default=True, alias="dry-run")
    allow_dirty: bool = Field(default=False, alias="allow-dirty")
    ranking: Ranking = Ranking.TOPOLOGICAL
    bump: BumpStrategy = BumpStrategy.MINOR
    ignore: list[str] = Field(default_factory=list)

    def publish_config(self) -> PublishConfig:
        return PublishConfig(allow_dirty=self.allow_dirty, dry_run=self.dry_run)

    def with_overrides(self, **overrides: Any) -> ReleaseConfig:
        """Return a copy with every non-None override applied."""
        update = {k: v for k, v in overrides.items() if v is not None}
        if not update:
            return self
        return ReleaseConfig.model_validate({**self.model_dump(), **update})


def parse_config(settings: dict[str, Any], source: str = "config") -> ReleaseConfig:
    """Validate a settings table into a ReleaseConfig.

    Raises:
        EasyReleaseError: On unknown keys or invalid values.
    """
    try:
        return ReleaseConfig.model_validate(settings)
    except ValidationError as exc:
        raise EasyReleaseError(
            f"Invalid [workspace.metadata.easy-release] in {source}:\n{exc}",
            hint="Valid keys: dry-run, allow-dirty, ranking, bump, ignore.",
        ) from exc


def load_config(root_manifest: Path) -> ReleaseConfig:
    """Load the release settings from a workspace root Cargo.toml.

    A manifest without a [workspace.metadata.easy-release] table yields the
    defaults.
    """
    doc = load_manifest(root_manifest)
    return parse_config(get_release_settings(doc), source=str(root_manifest))
