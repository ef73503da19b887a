"""Detection of git operations rewriting a watched working tree.

A checkout, stash, pull or rebase touches many files at once. If those writes were
mirrored to the remote theme they would overwrite it wholesale, so the watcher asks
the guard, before sending any syncable event, whether the repository moved under
it. Events for paths that are never synced (including `.git/` internals) are not
checked, so git's own bookkeeping cannot trip the guard.

This is a best-effort heuristic, not a guarantee: an operation that touches a
single file without moving the branch or the stash (e.g. `git checkout -- file`)
is indistinguishable from a manual edit.
"""

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

from .constants import APP_NAME, GIT_INDEX_LOCK, GIT_LOCK_FILES
from .git_wrapper import GitRepo, find_git_root

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class GitSnapshot:
    """Repository state captured when watching starts.

    Attributes:
        branch (str): The checked-out branch.
        stash_hash (str): SHA-1 of the `git stash list` output.
        markers (frozenset[str]): Operation marker files present (MERGE_HEAD, ...).
    """

    branch: str
    stash_hash: str
    markers: frozenset[str]


class GitGuard:
    """Compares the live repository state against a pinned snapshot.

    Attributes:
        repo (GitRepo): The observed working tree.
        snapshot (GitSnapshot | None): The state captured by `pin()`.
    """

    def __init__(self, root: Path):
        self.repo = GitRepo(root)
        self.snapshot: GitSnapshot | None = None

    @property
    def root(self) -> Path:
        return self.repo.path

    @staticmethod
    def find_root(start: Path) -> Path | None:
        """Returns the closest ancestor of `start` holding a `.git` entry."""
        return find_git_root(start)

    def is_index_locked(self) -> bool:
        return (self.repo.git_dir / GIT_INDEX_LOCK).exists()

    def _read_stash_hash(self) -> str:
        # The stash list can be long; only equality matters.
        state = self.repo.stash_list()
        return hashlib.sha1(state.encode("utf-8")).hexdigest()

    def _read_markers(self) -> frozenset[str]:
        git_dir = self.repo.git_dir
        return frozenset(f for f in GIT_LOCK_FILES if (git_dir / f).exists())

    def read_snapshot(self) -> GitSnapshot:
        """Queries git for the current branch, stash and operation markers."""
        return GitSnapshot(
            branch=self.repo.current_branch(),
            stash_hash=self._read_stash_hash(),
            markers=self._read_markers(),
        )

    def pin(self) -> GitSnapshot:
        """Captures the reference snapshot later calls to `check()` compare against."""
        self.snapshot = self.read_snapshot()
        logger.debug(f"Pinned git state at {self.root}: branch={self.snapshot.branch}")
        return self.snapshot

    def check(self) -> bool:
        """Reports whether a git operation appears to be running or to have run.

        Returns:
            bool: True if the index is locked, or the branch, stash list or set of
                  operation markers changed since `pin()`.

        Raises:
            RuntimeError: If called before `pin()`, or if git fails.
        """
        if self.snapshot is None:
            raise RuntimeError("GitGuard.check() called before pin()")

        if self.is_index_locked():
            logger.debug("git index is locked")
            return True

        current = self.read_snapshot()
        if current.branch != self.snapshot.branch:
            logger.debug(f"branch moved {self.snapshot.branch} -> {current.branch}")
            return True
        if current.stash_hash != self.snapshot.stash_hash:
            logger.debug("stash list changed")
            return True
        if current.markers - self.snapshot.markers:
            logger.debug(f"new git markers: {sorted(current.markers)}")
            return True
        return False
