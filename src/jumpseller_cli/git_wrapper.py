import logging
import subprocess
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


def find_git_root(start: Path) -> Path | None:
    """Walks upward from a directory until a `.git` entry is found.

    Args:
        start (Path): The directory to start from.

    Returns:
        Path | None: The working tree root, or None if the filesystem root is
                     reached without finding one.
    """
    start = start.resolve()
    for folder in (start, *start.parents):
        if (folder / ".git").exists():
            return folder
    return None


class GitRepo:
    """A read-only wrapper around the Git command-line interface for a working tree.

    Only the queries the theme watcher needs are exposed: the checked-out branch,
    the stash list, and the location of git's internal state files.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            ValueError: If the specified path does not contain a .git entry.
        """
        self.path = path
        if not (self.path / ".git").exists():
            raise ValueError(f"Not a git repository: {self.path}")

    @property
    def git_dir(self) -> Path:
        """Path: The directory holding git's internal state.

        Resolves `gitdir:` pointer files used by worktrees and submodules.
        """
        dot_git = self.path / ".git"
        if dot_git.is_file():
            content = dot_git.read_text().strip()
            if content.startswith("gitdir:"):
                target = Path(content[len("gitdir:") :].strip())
                return target if target.is_absolute() else self.path / target
        return dot_git

    def _run(self, args: list[str]) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.

        Returns:
            str: The stripped stdout of the command.

        Raises:
            RuntimeError: If the git command returns a non-zero exit code.
        """
        try:
            res = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                check=True,
            )
            return res.stdout.strip()
        except subprocess.CalledProcessError as e:
            raise RuntimeError(f"Git error: {e.stderr or e}") from e

    def current_branch(self) -> str:
        """Retrieves the name of the currently checked-out branch.

        Returns:
            str: The name of the current branch (empty on a detached HEAD).
        """
        return self._run(["branch", "--show-current"])

    def stash_list(self) -> str:
        """Returns the raw output of `git stash list`."""
        return self._run(["stash", "list"])
