"""Tests for CLI commands - sync, show, completions, config-path."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from pager import __version__
from pager.cli import cli
from pager.sync.types import FetchError, SyncError


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point pager at a config file inside the test directory."""
    path = tmp_path / "config" / "config.toml"
    monkeypatch.setenv("PAGER_CONFIG", str(path))
    return path


def write_config(path: Path, repos: list[str] | None = None, extra: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    entries = ", ".join(f'"{url}"' for url in repos or [])
    path.write_text(
        f"""
[page_db]
git_repos = [{entries}]
git_download_dir = "./online_pages"
local_dirs = ["./local"]
{extra}
""",
        encoding="utf-8",
    )


class TestConfigPathCommand:
    """Tests for 'pager config-path' command."""

    def test_creates_default_config(self, runner: CliRunner, config_file: Path) -> None:
        """A missing config file should be created with defaults."""
        result = runner.invoke(cli, ["config-path"])
        assert result.exit_code == 0
        assert result.output.strip() == str(config_file.resolve())
        assert "[page_db]" in config_file.read_text()

    def test_keeps_existing_config(self, runner: CliRunner, config_file: Path) -> None:
        """An existing config file should not be overwritten."""
        write_config(config_file, ["https://example.com/alpha.git"])
        runner.invoke(cli, ["config-path"])
        assert "alpha" in config_file.read_text()


class TestSyncCommand:
    """Tests for 'pager sync' command."""

    def test_sync_all(self, runner: CliRunner, config_file: Path, make_factory) -> None:
        """Every repository should be cloned and reported."""
        write_config(
            config_file, ["https://example.com/alpha.git", "https://example.com/beta"]
        )
        with patch("pager.sync.source_factory", return_value=make_factory()):
            result = runner.invoke(cli, ["sync"])

        assert result.exit_code == 0
        assert "Cloning online page repos from git" in result.output
        assert "Beginning cloning for alpha" in result.output
        assert "✅ Finished cloning alpha" in result.output
        assert "✅ Finished cloning beta" in result.output
        assert "Synced 2 of 2 repositories" in result.output
        download_root = config_file.parent / "online_pages"
        assert (download_root / "alpha" / "README.md").exists()

    def test_sync_failure_still_exits_zero(
        self, runner: CliRunner, config_file: Path, make_factory
    ) -> None:
        """A failing repository should be reported without failing the command."""
        write_config(
            config_file, ["https://example.com/alpha.git", "https://example.com/beta.git"]
        )
        factory = make_factory(beta={"error": FetchError("git exited with status 128")})
        with patch("pager.sync.source_factory", return_value=factory):
            result = runner.invoke(cli, ["sync"])

        assert result.exit_code == 0
        assert "❌ Failed cloning beta: git exited with status 128" in result.output
        assert "Synced 1 of 2 repositories (1 failed)" in result.output

    def test_sync_passes_settings(
        self, runner: CliRunner, config_file: Path, make_factory
    ) -> None:
        """Transport and timeout should come from the [sync] table."""
        write_config(
            config_file,
            ["https://example.com/alpha.git"],
            extra='[sync]\ntransport = "libgit2"\njob_timeout = 45\n',
        )
        with patch("pager.sync.source_factory", return_value=make_factory()) as factory:
            runner.invoke(cli, ["sync", "--no-progress"])
        factory.assert_called_once_with("libgit2", timeout=45.0)

    def test_sync_nothing_configured(self, runner: CliRunner, config_file: Path) -> None:
        """An empty repository list should be a friendly no-op."""
        write_config(config_file, [])
        result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 0
        assert "nothing to sync" in result.output

    def test_sync_duplicate_names(self, runner: CliRunner, config_file: Path) -> None:
        """Repositories colliding on a directory name should be rejected."""
        write_config(
            config_file, ["https://a.example.com/pages.git", "https://b.example.com/pages"]
        )
        result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 1
        assert "all sync into 'pages'" in result.output

    def test_sync_dot_segment_url(self, runner: CliRunner, config_file: Path) -> None:
        """A repository URL without a usable directory name should be rejected."""
        write_config(config_file, ["https://example.com/pages/.."])
        result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 1
        assert "usable directory name" in result.output

    def test_sync_transport_unavailable(
        self, runner: CliRunner, config_file: Path
    ) -> None:
        """A transport that cannot be used should fail the command."""
        write_config(config_file, ["https://example.com/alpha.git"])
        with patch("pager.sync.source_factory", side_effect=SyncError("needs pygit2")):
            result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 1
        assert "needs pygit2" in result.output

    def test_sync_download_root_error(
        self, runner: CliRunner, config_file: Path, make_factory
    ) -> None:
        """An uncreatable download directory should fail the command."""
        write_config(config_file, ["https://example.com/alpha.git"])
        (config_file.parent / "online_pages").write_text("in the way")
        with patch("pager.sync.source_factory", return_value=make_factory()):
            result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestShowCommand:
    """Tests for 'pager show' command."""

    @pytest.fixture
    def pages(self, config_file: Path) -> Path:
        write_config(config_file, ["https://example.com/cheats.git"])
        synced = config_file.parent / "online_pages" / "cheats"
        local = config_file.parent / "local"
        synced.mkdir(parents=True)
        local.mkdir()
        (synced / "tar.md").write_text("# tar\n\nArchive files from the synced repo.\n")
        (local / "tar.md").write_text("# tar\n\nMy own tar notes.\n")
        return config_file.parent

    def test_show_first_match(self, runner: CliRunner, pages: Path) -> None:
        """The synced page should win over the local one."""
        result = runner.invoke(cli, ["show", "tar"])
        assert result.exit_code == 0
        assert "Archive files from the synced repo." in result.output
        assert "My own tar notes." not in result.output

    def test_show_combine(self, runner: CliRunner, pages: Path) -> None:
        """--combine should show every page with that name."""
        result = runner.invoke(cli, ["show", "--combine", "tar"])
        assert result.exit_code == 0
        assert "Archive files from the synced repo." in result.output
        assert "My own tar notes." in result.output

    def test_show_missing(self, runner: CliRunner, pages: Path) -> None:
        """An unknown page should print the no-result message."""
        result = runner.invoke(cli, ["show", "nope"])
        assert result.exit_code == 0
        assert "No result found for: nope" in result.output

    def test_show_invalid_config(self, runner: CliRunner, config_file: Path) -> None:
        """A malformed config file should fail the command."""
        config_file.parent.mkdir(parents=True)
        config_file.write_text("[page_db\n")
        result = runner.invoke(cli, ["show", "tar"])
        assert result.exit_code == 1
        assert "Invalid config file" in result.output


class TestMiscCommands:
    """Tests for completions and global options."""

    def test_completions(self, runner: CliRunner) -> None:
        """The zsh completion script should be printed."""
        result = runner.invoke(cli, ["completions", "zsh"], prog_name="pager")
        assert result.exit_code == 0
        assert "_PAGER_COMPLETE" in result.output

    def test_completions_unknown_shell(self, runner: CliRunner) -> None:
        """Unsupported shells should be rejected."""
        result = runner.invoke(cli, ["completions", "tcsh"])
        assert result.exit_code == 2

    def test_version(self, runner: CliRunner) -> None:
        """--version should print the package version."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
