# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""
Thin wrappers around the git command line.

Functions take an optional ``cwd`` so callers never need to change the
working directory. Failures raise :class:`~gerritcmd.errors.GitError`;
nothing here exits the process.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Final

from gerritcmd.errors import GitError

log = logging.getLogger("gerritcmd.git")

# git config exits 1 when the requested key is not set
_CONFIG_KEY_MISSING: Final[int] = 1


def git_executable() -> str:
    """Return the git executable, honouring the GIT environment variable."""
    return os.environ.get("GIT", "git")


def run_git(
    *args: str,
    cwd: Path | str | None = None,
    check: bool = True,
    capture: bool = True,
) -> subprocess.CompletedProcess[str]:
    """
    Run ``git *args`` and return the completed process.

    Args:
        args: Arguments passed to git.
        cwd: Directory to run in (defaults to the process working directory).
        check: Raise GitError on a non-zero exit status.
        capture: Capture stdout/stderr. Interactive operations such as
                 push and clone pass False so progress reaches the terminal.

    Raises:
        GitError: If ``check`` is set and git fails.
    """
    argv = [git_executable(), *args]
    log.debug("Running: %s", " ".join(argv))
    result = subprocess.run(
        argv,
        cwd=str(cwd) if cwd is not None else None,
        capture_output=capture,
        text=True,
    )
    if check and result.returncode != 0:
        stderr = (result.stderr or "").strip()
        stdout = (result.stdout or "").strip()
        raise GitError(
            f"git {' '.join(args)} failed with exit code {result.returncode}",
            returncode=result.returncode,
            stderr=stderr or stdout,
            argv=argv,
        )
    return result


# ---------------------------------------------------------------------------
# Repository queries
# ---------------------------------------------------------------------------


def is_repository(cwd: Path | str | None = None) -> bool:
    """Return True when ``cwd`` is inside a git work tree."""
    result = run_git("rev-parse", "--is-inside-work-tree", cwd=cwd, check=False)
    return result.returncode == 0 and result.stdout.strip() == "true"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _config_scope_args(scope: str | None) -> list[str]:
    if scope is None:
        return []
    if scope not in ("global", "local", "system"):
        raise ValueError(f"Unknown git config scope: {scope}")
    return [f"--{scope}"]


def config_get(
    key: str, *, scope: str | None = None, cwd: Path | str | None = None
) -> str | None:
    """Return the value of ``key``, or None when it is not set."""
    result = run_git(
        "config", *_config_scope_args(scope), "--get", key, cwd=cwd, check=False
    )
    if result.returncode == _CONFIG_KEY_MISSING:
        return None
    if result.returncode != 0:
        raise GitError(
            f"git config --get {key} failed",
            returncode=result.returncode,
            stderr=result.stderr,
        )
    return result.stdout.rstrip("\n")


def config_get_all(
    key: str, *, scope: str | None = None, cwd: Path | str | None = None
) -> list[str]:
    """Return every value of a multi-valued key (empty when unset)."""
    result = run_git(
        "config", *_config_scope_args(scope), "--get-all", key, cwd=cwd, check=False
    )
    if result.returncode == _CONFIG_KEY_MISSING:
        return []
    if result.returncode != 0:
        raise GitError(
            f"git config --get-all {key} failed",
            returncode=result.returncode,
            stderr=result.stderr,
        )
    return [line for line in result.stdout.splitlines() if line]


def config_get_regexp(
    pattern: str, *, scope: str | None = None, cwd: Path | str | None = None
) -> list[tuple[str, str]]:
    """Return (key, value) pairs whose key matches ``pattern``."""
    result = run_git(
        "config",
        *_config_scope_args(scope),
        "--get-regexp",
        pattern,
        cwd=cwd,
        check=False,
    )
    if result.returncode == _CONFIG_KEY_MISSING:
        return []
    if result.returncode != 0:
        raise GitError(
            f"git config --get-regexp {pattern} failed",
            returncode=result.returncode,
            stderr=result.stderr,
        )
    pairs: list[tuple[str, str]] = []
    for line in result.stdout.splitlines():
        key, _, value = line.partition(" ")
        pairs.append((key, value))
    return pairs


def config_set(
    key: str, value: str, *, scope: str | None = None, cwd: Path | str | None = None
) -> None:
    """Set ``key`` to ``value``, replacing any existing value."""
    run_git("config", *_config_scope_args(scope), key, value, cwd=cwd)


def config_add(
    key: str, value: str, *, scope: str | None = None, cwd: Path | str | None = None
) -> None:
    """Append a value to a multi-valued key."""
    run_git("config", *_config_scope_args(scope), "--add", key, value, cwd=cwd)


# ---------------------------------------------------------------------------
# Remotes and refs
# ---------------------------------------------------------------------------


def fetch(remote: str, refspec: str, cwd: Path | str | None = None) -> None:
    """Fetch ``refspec`` from ``remote`` into FETCH_HEAD."""
    run_git("fetch", remote, refspec, cwd=cwd)


def checkout_new_branch(
    branch: str, start_point: str = "FETCH_HEAD", cwd: Path | str | None = None
) -> None:
    """Create (or reset) ``branch`` at ``start_point`` and check it out."""
    run_git("checkout", "-B", branch, start_point, cwd=cwd)


def push(remote: str, refspec: str, cwd: Path | str | None = None) -> None:
    """Push ``refspec`` to ``remote``, streaming git's output to the terminal."""
    run_git("push", remote, refspec, cwd=cwd, capture=False)


def clone(url: str, directory: str | Path, cwd: Path | str | None = None) -> None:
    """Clone ``url`` into ``directory``."""
    run_git("clone", url, str(directory), cwd=cwd, capture=False)
