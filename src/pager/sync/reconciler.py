"""Target directory reconciliation.

Every sync fully replaces a repository's directory; an existing clone is
never updated in place.

Two modes:
- Direct (default): the old directory is removed before the fetch starts.
  If the fetch then fails, the old contents are gone.
- Atomic: the fetch writes into a hidden staging sibling, and the old
  directory is replaced only after the fetch succeeded.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from pager.sync.types import ReconcileError

logger = logging.getLogger(__name__)


def remove_tree(path: Path) -> None:
    """Recursively remove a directory (or file) if it exists.

    Raises:
        ReconcileError: If the path exists but could not be removed.
    """
    if not path.exists() and not path.is_symlink():
        return
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as e:
        raise ReconcileError(f"Could not remove {path}: {e}") from e
    logger.debug(f"Removed {path}")


class TargetReconciler:
    """Prepares clean destinations for fetches.

    Usage:
        reconciler = TargetReconciler(atomic=True)
        fetch_dir = reconciler.prepare(target_dir)
        try:
            fetch(fetch_dir)
        except FetchError:
            reconciler.discard(fetch_dir)
            raise
        reconciler.commit(fetch_dir, target_dir)
    """

    def __init__(self, atomic: bool = False) -> None:
        """Initialize the reconciler.

        Args:
            atomic: Fetch into a staging directory and swap it in on success.
        """
        self.atomic = atomic

    @staticmethod
    def staging_dir(target_dir: Path) -> Path:
        """Hidden sibling used as the fetch destination in atomic mode."""
        return target_dir.parent / f".{target_dir.name}.partial"

    def prepare(self, target_dir: Path) -> Path:
        """Clear the way for a fetch into ``target_dir``.

        Args:
            target_dir: Final location of the repository.

        Returns:
            Directory the fetch must write into. It does not exist.

        Raises:
            ReconcileError: If an existing directory could not be removed.
        """
        if self.atomic:
            fetch_dir = self.staging_dir(target_dir)
            remove_tree(fetch_dir)
            return fetch_dir

        if target_dir.exists():
            logger.info(f"Replacing existing {target_dir}")
        remove_tree(target_dir)
        return target_dir

    def commit(self, fetch_dir: Path, target_dir: Path) -> None:
        """Move a successful fetch into place.

        Raises:
            ReconcileError: If the old directory could not be replaced.
        """
        if fetch_dir == target_dir:
            return
        remove_tree(target_dir)
        try:
            os.replace(fetch_dir, target_dir)
        except OSError as e:
            raise ReconcileError(f"Could not move {fetch_dir} to {target_dir}: {e}") from e

    def discard(self, fetch_dir: Path) -> None:
        """Remove the leftovers of a failed fetch.

        In atomic mode the previous target directory is left untouched.
        A failure to clean up is logged, not raised; the next sync clears
        it again.
        """
        try:
            remove_tree(fetch_dir)
        except ReconcileError as e:
            logger.warning(str(e))
