"""CLI entry point for cargo-easy-release."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from easy_release.errors import EasyReleaseError
from easy_release.graph import Ranking
from easy_release.pipeline import (
    bump_package,
    load_workspace,
    publish_workspace,
    show_checks,
    show_plan,
    summarize,
)
from easy_release.session import ReleaseSession
from easy_release.shell import fatal
from easy_release.versions import BumpStrategy


@click.group()
@click.version_option(package_name="cargo-easy-release")
@click.option(
    "--manifest-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the workspace Cargo.toml (default: search from cwd).",
)
@click.pass_context
def cli(ctx: click.Context, manifest_path: Path | None) -> None:
    """Publish the crates of a Cargo workspace in dependency order."""
    ctx.obj = manifest_path


@cli.command()
@click.option(
    "--ranking",
    type=click.Choice([r.value for r in Ranking]),
    default=None,
    help="Exact topological order, or the bounded dependency-count heuristic.",
)
@click.pass_obj
def plan(manifest_path: Path | None, ranking: str | None) -> None:
    """Show the order crates should be published in."""
    try:
        graph, config = load_workspace(manifest_path, ranking=ranking)
        show_plan(graph, ReleaseSession(graph, ignore=config.ignore))
    except EasyReleaseError as exc:
        fatal(exc)


@cli.command()
@click.pass_obj
def check(manifest_path: Path | None) -> None:
    """Check each crate's metadata and workspace dependency requirements."""
    try:
        graph, _ = load_workspace(manifest_path)
        failing = show_checks(graph)
    except EasyReleaseError as exc:
        fatal(exc)
        return
    if failing:
        raise click.ClickException(f"{failing} crate(s) are not ready for release.")
    click.echo("\n✓ All crates are ready for release")


@cli.command()
@click.argument("name")
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in BumpStrategy]),
    default=None,
    help="Version component to increment (default: from config, else minor).",
)
@click.pass_obj
def bump(manifest_path: Path | None, name: str, strategy: str | None) -> None:
    """Bump NAME's version and re-pin every crate that depends on it."""
    try:
        graph, config = load_workspace(manifest_path, bump=strategy)
        outcome = bump_package(graph, name, config.bump)
    except EasyReleaseError as exc:
        fatal(exc)
        return
    result = outcome.bump
    if result is None:
        fatal(outcome.error or "bump failed")
        return
    click.echo(
        f"\n✓ {result.package} {result.bump.old} → {result.bump.new}"
        f" ({len(result.written)} manifest(s) written)"
    )


@cli.command()
@click.argument("names", nargs=-1)
@click.option(
    "--dry-run/--no-dry-run",
    default=None,
    help="Pass --dry-run to cargo publish (default: on).",
)
@click.option(
    "--allow-dirty/--no-allow-dirty",
    default=None,
    help="Pass --allow-dirty to cargo publish (default: off).",
)
@click.option(
    "--ignore",
    "ignored",
    multiple=True,
    help="Crate to skip this session (repeatable).",
)
@click.pass_obj
def publish(
    manifest_path: Path | None,
    names: tuple[str, ...],
    dry_run: bool | None,
    allow_dirty: bool | None,
    ignored: tuple[str, ...],
) -> None:
    """Publish pending crates (or only NAMES) in dependency order."""
    try:
        graph, config = load_workspace(
            manifest_path, dry_run=dry_run, allow_dirty=allow_dirty
        )
        if ignored:
            config = config.with_overrides(ignore=[*config.ignore, *ignored])
        session = asyncio.run(publish_workspace(graph, config, only=list(names)))
    except EasyReleaseError as exc:
        fatal(exc)
        return
    summarize(session)
