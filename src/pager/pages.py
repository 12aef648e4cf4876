"""Page database lookup.

The page database is every directory a page may live in:
- one directory per synced repository under the download root, narrowed
  by the repository's subpath when it has one
- the configured local directories

A page named ``tar`` is the file ``tar.md`` in any of those directories.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path

from pager.core.types import WILDCARD, RepositoryDescriptor

logger = logging.getLogger(__name__)

PAGE_SUFFIX = ".md"


def expand_subpath(repo_dir: Path, tokens: Sequence[str]) -> list[Path]:
    """Resolve a subpath inside a cloned repository.

    Literal tokens are joined in order. A ``*`` token stops the walk and
    yields every immediate subdirectory of the path built so far; tokens
    after the wildcard are not used.

    Args:
        repo_dir: Root of the cloned repository.
        tokens: Subpath tokens, e.g. ``("pages", "*")``.

    Returns:
        Directories to search, sorted by name under a wildcard.
    """
    path = repo_dir
    for token in tokens:
        if token == WILDCARD:
            if not path.is_dir():
                return []
            return sorted(p for p in path.iterdir() if p.is_dir())
        path = path / token
    return [path]


def page_dirs(
    download_root: Path,
    repositories: Iterable[RepositoryDescriptor],
    local_dirs: Iterable[Path] = (),
) -> list[Path]:
    """List every directory of the page database.

    Args:
        download_root: Directory repositories were synced into.
        repositories: Configured repositories (for their subpaths).
        local_dirs: Unsynced page directories, searched last.

    Returns:
        Directories in search order.
    """
    subpaths = {repo.name: repo.subpath for repo in repositories if repo.subpath}

    dirs: list[Path] = []
    if download_root.is_dir():
        for entry in sorted(download_root.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            tokens = subpaths.get(entry.name)
            dirs.extend(expand_subpath(entry, tokens) if tokens else [entry])
    else:
        logger.debug(f"Download directory {download_root} does not exist")

    dirs.extend(local_dirs)
    return dirs


def find_pages(name: str, dirs: Iterable[Path]) -> Iterator[str]:
    """Yield the contents of every ``<name>.md`` found, in directory order."""
    for directory in dirs:
        page_path = directory / f"{name}{PAGE_SUFFIX}"
        if not page_path.is_file():
            continue
        try:
            yield page_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not read {page_path}: {e}")


def get_page(name: str, dirs: Iterable[Path], combine: bool = False) -> str:
    """Look up a page.

    Args:
        name: Page name without the ``.md`` suffix.
        dirs: Directories to search, in order.
        combine: Join every match instead of returning the first.

    Returns:
        Page markdown, or a "No result found" message.
    """
    pages = find_pages(name, dirs)
    if combine:
        found = list(pages)
        if found:
            return "\n".join(found)
    else:
        first = next(pages, None)
        if first is not None:
            return first
    return f"No result found for: {name}"
