"""Tests for easy_release.cli."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from click.testing import CliRunner

from easy_release.cli import cli
from easy_release.config import ReleaseConfig
from easy_release.errors import MetadataError
from easy_release.graph import build_graph
from easy_release.session import ReleaseSession


class TestPlan:
    @patch("easy_release.cli.show_plan")
    @patch("easy_release.cli.load_workspace")
    def test_ranking_override(
        self, mock_load: MagicMock, mock_show: MagicMock, abc_workspace
    ) -> None:
        snapshot, _ = abc_workspace
        mock_load.return_value = (build_graph(snapshot), ReleaseConfig())

        result = CliRunner().invoke(cli, ["plan", "--ranking", "weighted"])

        assert result.exit_code == 0, result.output
        mock_load.assert_called_once_with(None, ranking="weighted")
        mock_show.assert_called_once()

    @patch("easy_release.cli.load_workspace")
    def test_manifest_path_is_forwarded(self, mock_load: MagicMock) -> None:
        mock_load.side_effect = MetadataError("cargo executable not found")

        result = CliRunner().invoke(cli, ["--manifest-path", "ws/Cargo.toml", "plan"])

        assert result.exit_code == 1
        assert "ERROR: cargo executable not found" in result.output
        mock_load.assert_called_once_with(Path("ws/Cargo.toml"), ranking=None)


class TestCheck:
    @patch("easy_release.cli.show_checks", return_value=0)
    @patch("easy_release.cli.load_workspace")
    def test_all_ready(self, mock_load: MagicMock, mock_checks: MagicMock) -> None:
        mock_load.return_value = (MagicMock(), ReleaseConfig())

        result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 0
        assert "All crates are ready for release" in result.output

    @patch("easy_release.cli.show_checks", return_value=2)
    @patch("easy_release.cli.load_workspace")
    def test_failing_crates(self, mock_load: MagicMock, mock_checks: MagicMock) -> None:
        mock_load.return_value = (MagicMock(), ReleaseConfig())

        result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "2 crate(s) are not ready for release" in result.output


class TestBump:
    @patch("easy_release.cli.load_workspace")
    def test_bumps_and_reports(self, mock_load: MagicMock, abc_workspace) -> None:
        snapshot, root = abc_workspace
        mock_load.return_value = (build_graph(snapshot), ReleaseConfig())

        result = CliRunner().invoke(cli, ["bump", "a"])

        assert result.exit_code == 0, result.output
        assert "✓ a 1.2.3 → 1.3.0 (3 manifest(s) written)" in result.output
        assert 'version = "1.3.0"' in (root / "a" / "Cargo.toml").read_text()
        mock_load.assert_called_once_with(None, bump=None)

    @patch("easy_release.cli.load_workspace")
    def test_strategy_option(self, mock_load: MagicMock, abc_workspace) -> None:
        snapshot, _ = abc_workspace
        mock_load.return_value = (
            build_graph(snapshot),
            ReleaseConfig(bump="patch"),
        )

        result = CliRunner().invoke(cli, ["bump", "a", "--strategy", "patch"])

        assert result.exit_code == 0, result.output
        assert "1.2.3 → 1.2.4" in result.output
        mock_load.assert_called_once_with(None, bump="patch")

    @patch("easy_release.cli.load_workspace")
    def test_manifest_error_exits(self, mock_load: MagicMock, abc_workspace) -> None:
        snapshot, root = abc_workspace
        (root / "b" / "Cargo.toml").unlink()
        mock_load.return_value = (build_graph(snapshot), ReleaseConfig())

        result = CliRunner().invoke(cli, ["bump", "a"])

        assert result.exit_code == 1
        assert "ERROR: Failed to read" in result.output
        assert 'version = "1.2.3"' in (root / "a" / "Cargo.toml").read_text()

    @patch("easy_release.cli.load_workspace")
    def test_unknown_crate(self, mock_load: MagicMock, abc_workspace) -> None:
        snapshot, _ = abc_workspace
        mock_load.return_value = (build_graph(snapshot), ReleaseConfig())

        result = CliRunner().invoke(cli, ["bump", "ghost"])

        assert result.exit_code == 1
        assert "ghost" in result.output


class TestPublish:
    @patch("easy_release.cli.publish_workspace", new_callable=AsyncMock)
    @patch("easy_release.cli.load_workspace")
    def test_flags_and_ignores(
        self, mock_load: MagicMock, mock_publish: MagicMock, abc_workspace
    ) -> None:
        snapshot, _ = abc_workspace
        graph = build_graph(snapshot)
        mock_load.return_value = (graph, ReleaseConfig(ignore=["b"]))
        mock_publish.return_value = ReleaseSession(graph)

        args = ["publish", "a", "--no-dry-run", "--ignore", "c"]
        result = CliRunner().invoke(cli, args)

        assert result.exit_code == 0, result.output
        mock_load.assert_called_once_with(None, dry_run=False, allow_dirty=None)
        (_, config), kwargs = mock_publish.call_args
        assert config.ignore == ["b", "c"]
        assert kwargs == {"only": ["a"]}
        assert "0 released, 1 ignored, 2 unreleased" in result.output
