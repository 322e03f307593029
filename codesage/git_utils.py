"""Helpers over the git command line."""

from __future__ import annotations

import subprocess
from pathlib import Path


class GitError(Exception):
    """Raised when a git command cannot be run or fails."""


def _run_git(repo_path: str | Path, *args: str) -> str:
    try:
        result = subprocess.run(
            ["git", "-C", str(repo_path), *args], capture_output=True, text=True
        )
    except OSError as exc:
        raise GitError(f"could not run git: {exc}") from exc
    if result.returncode != 0:
        raise GitError(f"git {args[0]} exited with status {result.returncode}")
    return result.stdout


def get_git_diff(repo_path: str | Path, commit_hash: str) -> str:
    """Return the zero-context diff introduced by one commit."""
    return _run_git(repo_path, "diff", commit_hash + "^!", "--unified=0")


def get_commit_list(repo_path: str | Path) -> list[str]:
    """Return the hashes of the 20 most recent commits, newest first."""
    return _run_git(repo_path, "log", "--pretty=format:%H", "-n", "20").split("\n")