"""Tests for the git transports."""

from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from pager.core.types import RepositoryDescriptor
from pager.sync.git import (
    git_clone_command,
    git_environment,
    git_source_factory,
    libgit2_source_factory,
    pygit2_clone,
    source_factory,
)
from pager.sync.sources.structured import StructuredSource
from pager.sync.sources.text_stream import TextStreamSource
from pager.sync.types import FetchCancelledError, SyncError


def transfer_stats(received: int, total: int, indexed: int = 0, deltas: int = 0) -> SimpleNamespace:
    return SimpleNamespace(
        received_objects=received,
        total_objects=total,
        indexed_deltas=indexed,
        total_deltas=deltas,
    )


def fake_pygit2(*stats: SimpleNamespace) -> SimpleNamespace:
    """Stand-in pygit2 module replaying transfer statistics."""

    class RemoteCallbacks:
        def __init__(self) -> None:
            pass

    def clone_repository(url: str, path: str, callbacks: RemoteCallbacks) -> None:
        for s in stats:
            callbacks.transfer_progress(s)
        Path(path).mkdir(parents=True)

    return SimpleNamespace(RemoteCallbacks=RemoteCallbacks, clone_repository=clone_repository)


class TestGitCommand:
    """Tests for git command construction."""

    def test_clone_command(self, tmp_path: Path) -> None:
        """Clones should force progress output and target the fetch dir."""
        command = git_clone_command("https://example.com/pages.git", tmp_path / "pages")
        assert command == [
            "git",
            "clone",
            "--progress",
            "https://example.com/pages.git",
            str(tmp_path / "pages"),
        ]

    def test_environment(self) -> None:
        """git should run untranslated and without credential prompts."""
        env = git_environment({"PATH": "/usr/bin", "LANG": "de_DE.UTF-8"})
        assert env["PATH"] == "/usr/bin"
        assert env["LC_ALL"] == "C"
        assert env["LANGUAGE"] == "C"
        assert env["GIT_TERMINAL_PROMPT"] == "0"

    def test_environment_does_not_mutate_base(self) -> None:
        """The base mapping should be copied."""
        base = {"PATH": "/usr/bin"}
        git_environment(base)
        assert base == {"PATH": "/usr/bin"}


class TestSourceFactory:
    """Tests for transport selection."""

    def test_git_factory(self, tmp_path: Path) -> None:
        """The git transport should create text-stream sources."""
        factory = git_source_factory(timeout=30, git="/opt/git/bin/git")
        descriptor = RepositoryDescriptor("https://example.com/pages.git")
        source = factory(descriptor, tmp_path / "pages")
        assert isinstance(source, TextStreamSource)
        assert source.command[0] == "/opt/git/bin/git"
        assert source.command[-1] == str(tmp_path / "pages")

    def test_select_git(self) -> None:
        """source_factory('git') should build git sources."""
        source = source_factory("git")(RepositoryDescriptor("https://example.com/a"), Path("a"))
        assert isinstance(source, TextStreamSource)

    def test_unknown_transport(self) -> None:
        """An unknown transport should raise SyncError."""
        with pytest.raises(SyncError, match="Unknown transport"):
            source_factory("svn")

    def test_libgit2_missing(self) -> None:
        """Selecting libgit2 without pygit2 installed should raise SyncError."""
        with patch("pager.sync.git.importlib.util.find_spec", return_value=None):
            with pytest.raises(SyncError, match="pygit2"):
                libgit2_source_factory()

    def test_libgit2_factory(self, tmp_path: Path) -> None:
        """With pygit2 available, libgit2 should build structured sources."""
        with patch("pager.sync.git.importlib.util.find_spec", return_value=object()):
            factory = source_factory("libgit2", timeout=10)
        source = factory(RepositoryDescriptor("https://example.com/a"), tmp_path / "a")
        assert isinstance(source, StructuredSource)


class TestPygit2Clone:
    """Tests for the pygit2 structured fetch."""

    def test_forwards_objects_then_deltas(self, tmp_path: Path) -> None:
        """Object counts should be reported until complete, then delta counts."""
        module = fake_pygit2(
            transfer_stats(5, 10),
            transfer_stats(10, 10, 0, 4),
            transfer_stats(10, 10, 2, 4),
            transfer_stats(10, 10, 4, 4),
        )
        reported: list[tuple[int, int]] = []
        with patch.dict(sys.modules, {"pygit2": module}):
            pygit2_clone("https://example.com/a", tmp_path / "a")(
                lambda r, t: reported.append((r, t)), lambda: False
            )
        assert reported == [(5, 10), (10, 10), (2, 4), (4, 4)]
        assert (tmp_path / "a").is_dir()

    def test_no_deltas(self, tmp_path: Path) -> None:
        """A repository without deltas should only report objects."""
        module = fake_pygit2(transfer_stats(3, 3), transfer_stats(3, 3))
        reported: list[tuple[int, int]] = []
        with patch.dict(sys.modules, {"pygit2": module}):
            pygit2_clone("https://example.com/a", tmp_path / "a")(
                lambda r, t: reported.append((r, t)), lambda: False
            )
        assert reported == [(3, 3)]

    def test_cancel_aborts_transfer(self, tmp_path: Path) -> None:
        """A cancelled fetch should abort from the progress callback."""
        module = fake_pygit2(transfer_stats(1, 10))
        with patch.dict(sys.modules, {"pygit2": module}):
            with pytest.raises(FetchCancelledError):
                pygit2_clone("https://example.com/a", tmp_path / "a")(
                    lambda r, t: None, lambda: True
                )

    def test_structured_source_end_to_end(self, tmp_path: Path) -> None:
        """The pygit2 fetch should drive a StructuredSource through the phases."""
        module = fake_pygit2(transfer_stats(10, 10, 0, 2), transfer_stats(10, 10, 2, 2))
        with patch.dict(sys.modules, {"pygit2": module}):
            source = StructuredSource(pygit2_clone("https://example.com/a", tmp_path / "a"))
            observations = list(source.subscribe())
        assert [(o.received, o.total) for o in observations] == [(10, 10), (2, 2)]
