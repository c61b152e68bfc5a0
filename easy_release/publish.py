"""Asynchronous ``cargo publish`` invocation.

Each publish runs as its own asyncio task so a slow upload never blocks the
rest of the session. Publishes of different crates may overlap, but a crate
can have at most one publish in flight.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .errors import PublishInProgress, PublishInvocationError
from .models import Package, PackageId


class PublishConfig(BaseModel):
    """Flags applied to every publish in a session.

    Defaults are fail-safe: a dry run that refuses a dirty working tree.
    """

    model_config = ConfigDict(frozen=True)

    allow_dirty: bool = False
    dry_run: bool = True


class PublishResult(BaseModel):
    """Exit status and captured output of a finished publish."""

    package: str
    command: list[str] = Field(default_factory=list)
    returncode: int
    stdout: str = ""
    stderr: str = ""


def publish_command(
    manifest_path: str | Path, config: PublishConfig, cargo: str = "cargo"
) -> list[str]:
    """Assemble the ``cargo publish`` argument list for one manifest.

    Example:
        publish_command("core/Cargo.toml", PublishConfig())
        → ["cargo", "publish", "--manifest-path", "core/Cargo.toml", "--dry-run"]
    """
    cmd = [cargo, "publish", "--manifest-path", str(manifest_path)]
    if config.allow_dirty:
        cmd.append("--allow-dirty")
    if config.dry_run:
        cmd.append("--dry-run")
    return cmd


class Publisher:
    """Runs ``cargo publish`` for workspace crates.

    Args:
        config: Session flags passed to every invocation.
        cargo: Cargo executable to run.
    """

    def __init__(self, config: PublishConfig, cargo: str = "cargo") -> None:
        self.config = config
        self.cargo = cargo
        self._in_flight: dict[PackageId, asyncio.Task[PublishResult]] = {}
        self._finished: dict[PackageId, PublishResult] = {}

    def in_flight(self, pkg_id: PackageId) -> bool:
        task = self._in_flight.get(pkg_id)
        return task is not None and not task.done()

    def start(self, package: Package) -> asyncio.Task[PublishResult]:
        """Schedule a publish and return its task without waiting for it.

        Must be called from within a running event loop.

        Raises:
            PublishInProgress: If this crate is already being published.
        """
        if self.in_flight(package.id):
            raise PublishInProgress(
                f"{package.name} is already being published",
                hint="Wait for the running publish to finish.",
            )
        task = asyncio.create_task(self._run(package), name=f"publish:{package.name}")
        self._in_flight[package.id] = task

        def _forget(done: asyncio.Task[PublishResult]) -> None:
            if self._in_flight.get(package.id) is not done:
                return
            del self._in_flight[package.id]
            if done.cancelled() or done.exception() is not None:
                self._finished.pop(package.id, None)
            else:
                self._finished[package.id] = done.result()

        task.add_done_callback(_forget)
        return task

    async def wait(self, pkg_id: PackageId) -> PublishResult | None:
        """Wait for the in-flight publish of a crate.

        With nothing in flight, returns the result of the crate's last
        publish if that one succeeded, else None. Errors of a failed publish
        are raised only to whoever awaits its task.
        """
        task = self._in_flight.get(pkg_id)
        if task is None:
            return self._finished.get(pkg_id)
        return await task

    async def publish(self, package: Package) -> PublishResult:
        """Publish a crate and wait for the result.

        Raises:
            PublishInProgress: If this crate is already being published.
            PublishInvocationError: If cargo could not be started or exited
                non-zero.
        """
        return await self.start(package)

    async def _run(self, package: Package) -> PublishResult:
        cmd = publish_command(package.manifest_path, self.config, self.cargo)
        print(f"  $ {' '.join(cmd)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise PublishInvocationError(
                f"Failed to start {cmd[0]} for {package.name}: {exc}",
                hint="Check that cargo is installed and on PATH.",
            ) from exc

        out, err = await proc.communicate()
        stdout = out.decode(errors="replace")
        stderr = err.decode(errors="replace")
        if proc.returncode != 0:
            raise PublishInvocationError(
                f"cargo publish failed for {package.name} "
                f"(exit code {proc.returncode})",
                returncode=proc.returncode,
                stdout=stdout,
                stderr=stderr,
            )

        return PublishResult(
            package=package.name,
            command=cmd,
            returncode=proc.returncode,
            stdout=stdout,
            stderr=stderr,
        )
