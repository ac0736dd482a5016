# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""
Gerrit SSH command channel.

Gerrit exposes its command-line interface as ``ssh -p PORT user@host gerrit
<subcommand>``. This module sends one command string, returns the raw text
on success, and raises :class:`~gerritcmd.errors.SSHCommandError` on a
non-zero exit. It does not interpret the output except for splitting
JSON-lines results.

Usage:
    from gerritcmd.gerrit.ssh import GerritSSHClient

    client = GerritSSHClient(descriptor)
    text = client.run("ls-projects")
    rows = client.query_json("status:open project:tools/cli")
"""

from __future__ import annotations

import json
import logging
import os
import shlex
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Final

from gerritcmd.endpoints import ConnectionDescriptor
from gerritcmd.errors import CommandFailed, SSHCommandError

log = logging.getLogger("gerritcmd.gerrit.ssh")

ENV_SSH: Final[str] = "GERRITCMD_SSH"
ENV_SCP: Final[str] = "GERRITCMD_SCP"

COMMIT_MSG_HOOK: Final[str] = "hooks/commit-msg"


def ssh_executable() -> str:
    """Return the ssh client, honouring GERRITCMD_SSH."""
    return os.environ.get(ENV_SSH, "ssh")


def scp_executable() -> str:
    """Return the scp client, honouring GERRITCMD_SCP."""
    return os.environ.get(ENV_SCP, "scp")


def _json_lines(text: str) -> list[dict[str, Any]]:
    """Parse ``--format=JSON`` output, dropping the trailing stats row."""
    rows: list[dict[str, Any]] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            row = json.loads(line)
        except json.JSONDecodeError as exc:
            raise SSHCommandError(f"Failed to parse query output: {exc}") from exc
        if not isinstance(row, dict):
            continue
        if row.get("type") in ("stats", "error"):
            if row.get("type") == "error":
                raise SSHCommandError(f"Query failed: {row.get('message', row)}")
            continue
        rows.append(row)
    return rows


class GerritSSHClient:
    """
    Runs ``gerrit`` commands on a review server over ssh.

    Args:
        descriptor: Connection details of the server.
    """

    def __init__(self, descriptor: ConnectionDescriptor) -> None:
        self.descriptor = descriptor

    def __repr__(self) -> str:
        return (
            f"GerritSSHClient({self.descriptor.destination}:"
            f"{self.descriptor.port})"
        )

    def _argv(self, remote_command: str) -> list[str]:
        return [
            ssh_executable(),
            "-p",
            str(self.descriptor.port),
            self.descriptor.destination,
            remote_command,
        ]

    def run(self, command: str | Sequence[str], *, capture: bool = True) -> str:
        """
        Run ``gerrit <command>`` and return its standard output.

        Args:
            command: Either a preformatted command string or a sequence of
                     arguments, which is shell-quoted for the remote side.
            capture: When False the output goes straight to the terminal
                     and "" is returned.

        Raises:
            SSHCommandError: If ssh or the remote command fails.
        """
        if not isinstance(command, str):
            command = shlex.join(command)
        remote_command = f"gerrit {command}"
        argv = self._argv(remote_command)
        log.debug("Running: %s", " ".join(argv))
        result = subprocess.run(argv, capture_output=capture, text=True)
        if result.returncode != 0:
            raise SSHCommandError(
                f"'{remote_command}' failed on {self.descriptor.host} "
                f"with exit code {result.returncode}",
                returncode=result.returncode,
                stderr=(result.stderr or "").strip(),
                argv=argv,
            )
        return result.stdout or ""

    def query_json(
        self, query: str, options: Sequence[str] = ()
    ) -> list[dict[str, Any]]:
        """Run ``gerrit query --format=JSON`` and return one dict per change."""
        args = ["query", "--format=JSON", *options, *shlex.split(query)]
        return _json_lines(self.run(args))

    def query_text(self, query: str, options: Sequence[str] = ()) -> str:
        """Run ``gerrit query`` in its default text format."""
        return self.run(["query", *options, *shlex.split(query)])


def fetch_commit_msg_hook(descriptor: ConnectionDescriptor, repo_dir: Path) -> Path:
    """
    Copy the server's ``commit-msg`` hook into ``repo_dir``.

    Returns:
        Path of the installed hook.

    Raises:
        CommandFailed: If scp fails.
    """
    hooks_dir = repo_dir / ".git" / "hooks"
    hooks_dir.mkdir(parents=True, exist_ok=True)
    target = hooks_dir / "commit-msg"
    argv = [
        scp_executable(),
        "-p",
        "-P",
        str(descriptor.port),
        f"{descriptor.destination}:{COMMIT_MSG_HOOK}",
        str(target),
    ]
    log.debug("Running: %s", " ".join(argv))
    result = subprocess.run(argv, capture_output=True, text=True)
    if result.returncode != 0:
        raise CommandFailed(
            "Failed to install the commit-msg hook",
            returncode=result.returncode,
            stderr=result.stderr.strip(),
            argv=argv,
        )
    target.chmod(0o755)
    return target
