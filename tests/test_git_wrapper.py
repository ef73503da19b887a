import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from jumpseller_cli.git_wrapper import GitRepo, find_git_root


def test_init_requires_git_entry(tmp_path: Path) -> None:
    """Verifies that a folder without .git is rejected."""
    with pytest.raises(ValueError, match="Not a git repository"):
        GitRepo(tmp_path)


def test_run_raises_runtime_error_on_failure(
    mocker: MagicMock, tmp_path: Path
) -> None:
    """Verifies that git failures surface as RuntimeError with git's stderr."""
    mocker.patch(
        "subprocess.run",
        side_effect=subprocess.CalledProcessError(
            128, ["git", "stash", "list"], stderr="fatal: bad revision"
        ),
    )
    (tmp_path / ".git").mkdir()
    repo = GitRepo(tmp_path)

    with pytest.raises(RuntimeError, match="Git error: fatal: bad revision"):
        repo.stash_list()


def test_queries_strip_output(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies the git arguments and output handling of the queries."""
    (tmp_path / ".git").mkdir()
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value.stdout = "main\n"

    repo = GitRepo(tmp_path)
    assert repo.current_branch() == "main"
    mock_run.assert_called_with(
        ["git", "branch", "--show-current"],
        cwd=tmp_path,
        capture_output=True,
        text=True,
        check=True,
    )

    mock_run.return_value.stdout = ""
    assert repo.stash_list() == ""


def test_git_dir_follows_gitdir_pointer(tmp_path: Path) -> None:
    """Verifies that worktree-style .git files resolve to the real git dir."""
    real_git_dir = tmp_path / "elsewhere" / "worktrees" / "theme"
    real_git_dir.mkdir(parents=True)
    work = tmp_path / "theme"
    work.mkdir()
    (work / ".git").write_text(f"gitdir: {real_git_dir}\n")

    assert GitRepo(work).git_dir == real_git_dir

    plain = tmp_path / "plain"
    (plain / ".git").mkdir(parents=True)
    assert GitRepo(plain).git_dir == plain / ".git"


def test_find_git_root(tmp_path: Path) -> None:
    """Verifies the upward search for a working tree root."""
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "templates" / "deep"
    nested.mkdir(parents=True)

    assert find_git_root(nested) == tmp_path.resolve()
