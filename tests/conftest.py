# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Shared pytest fixtures for gerritcmd tests."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

import pytest

from gerritcmd.config_store import ConfigStore
from gerritcmd.endpoints import EndpointResolver


class MemoryConfigStore(ConfigStore):
    """In-memory ConfigStore recording every write."""

    def __init__(self, values: dict[str, list[str]] | None = None) -> None:
        self.values: dict[str, list[str]] = {k: list(v) for k, v in (values or {}).items()}
        self.writes: list[tuple[str, str]] = []

    def get(self, key: str) -> str | None:
        found = self.values.get(key)
        return found[-1] if found else None

    def get_all(self, key: str) -> list[str]:
        return list(self.values.get(key, []))

    def set(self, key: str, value: str) -> None:
        self.writes.append((key, value))
        self.values[key] = [value]

    def add(self, key: str, value: str) -> None:
        self.writes.append((key, value))
        self.values.setdefault(key, []).append(value)

    def items(self, prefix: str) -> list[tuple[str, str]]:
        return [
            (key, value)
            for key, values in self.values.items()
            if key.startswith(prefix)
            for value in values
        ]


def make_store(**flat: str) -> MemoryConfigStore:
    """Build a store from ``key=value`` pairs (dots written as '__')."""
    return MemoryConfigStore({k.replace("__", "."): [v] for k, v in flat.items()})


@pytest.fixture()
def global_store() -> MemoryConfigStore:
    return MemoryConfigStore()


@pytest.fixture()
def local_store() -> MemoryConfigStore:
    """A repository whose master branch tracks origin at myhost."""
    return MemoryConfigStore(
        {
            "branch.master.remote": ["origin"],
            "remote.origin.url": ["user1@myhost:29418/teamA/proj.git"],
        }
    )


@pytest.fixture()
def resolver(global_store, local_store) -> EndpointResolver:
    return EndpointResolver(global_store, local_store=local_store)


# ---------------------------------------------------------------------------
# Real git repositories
# ---------------------------------------------------------------------------

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test",
    "GIT_AUTHOR_EMAIL": "test@gerritcmd.test",
    "GIT_COMMITTER_NAME": "Test",
    "GIT_COMMITTER_EMAIL": "test@gerritcmd.test",
}


@pytest.fixture()
def isolated_git(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point git's global config at a throwaway file; returns its path."""
    global_config = tmp_path / "gitconfig"
    global_config.write_text("")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GIT", raising=False)
    for key, value in GIT_ENV.items():
        monkeypatch.setenv(key, value)
    return global_config


def run_git(cwd: Path, *args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        check=True,
        capture_output=True,
        env={**os.environ, **GIT_ENV},
        text=True,
    )


@pytest.fixture()
def git_repo(tmp_path: Path, isolated_git: Path) -> Path:
    """A git repository with one commit and an ssh-style origin remote."""
    repo = tmp_path / "repo"
    repo.mkdir()
    run_git(repo, "init", "-b", "master")
    (repo / "README.md").write_text("init")
    run_git(repo, "add", ".")
    run_git(repo, "commit", "-m", "init")
    run_git(repo, "remote", "add", "origin", "ssh://alice@review.example.org:29418/tools/cli.git")
    run_git(repo, "config", "branch.master.remote", "origin")
    run_git(repo, "config", "branch.master.merge", "refs/heads/master")
    return repo
