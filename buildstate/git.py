"""
git.py

Responsibility: The narrow set of git queries the CLI needs.

Every call shells out to `git` in the current working directory. Failures
raise `GitError`, except for a missing config key in `default_config`,
which yields an empty string.
"""

from __future__ import annotations

import subprocess

from buildstate.models import CommitID, LogEntry

# `git config <key>` exits 1 when the key is not set.
CONFIG_KEY_MISSING = 1


class GitError(RuntimeError):
    def __init__(self, cmd: list[str], returncode: int, stderr: str) -> None:
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"Command failed: {' '.join(cmd)}\n\n{detail}")


def _git(*args: str) -> str:
    """
    Run a git command and return its stdout, raising a GitError on failure.
    """
    cmd = ["git", *args]
    try:
        result = subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
    except subprocess.CalledProcessError as e:
        raise GitError(cmd, e.returncode, e.stderr or "") from e
    except FileNotFoundError as e:
        raise GitError(cmd, 127, "git executable not found") from e
    return result.stdout


def current_branch() -> str:
    return _git("rev-parse", "--abbrev-ref", "HEAD").strip()


def log_short(branch: str = "") -> list[LogEntry]:
    """
    Return `git log --pretty=oneline` for `branch` (default: the current branch).

    Order and duplicates are kept as git prints them.
    """
    if not branch:
        branch = current_branch()

    entries: list[LogEntry] = []
    for line in _git("log", "--pretty=oneline", branch).splitlines():
        parts = line.split(" ", 1)
        if len(parts) != 2:
            continue
        entries.append(LogEntry(id=parts[0], message=parts[1]))
    return entries


def commit_id_from_ref(ref: str = "") -> CommitID:
    return _git("show", "-q", "--pretty=format:%H", ref or "HEAD").strip()


def first_remote_url() -> str:
    lines = _git("remote", "-v").splitlines()
    if not lines:
        raise GitError(["git", "remote", "-v"], 0, "No output when trying to fetch git remote")
    parts = lines[0].split()
    if len(parts) < 2:
        raise GitError(["git", "remote", "-v"], 0, f"Unable to parse remote: {lines[0]!r}")
    return parts[1]


def get_config(key: str) -> str:
    return _git("config", key).strip()


def default_config(key: str) -> str:
    """Like `get_config`, but an unset key returns an empty string."""
    try:
        return get_config(key)
    except GitError as e:
        if e.returncode == CONFIG_KEY_MISSING:
            return ""
        raise


def set_global_config(key: str, value: str) -> None:
    _git("config", "--global", key, value)
