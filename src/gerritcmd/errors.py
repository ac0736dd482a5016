# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""
Exception hierarchy for gerritcmd.

Every anticipated failure derives from :class:`GerritCmdError`, so the CLI
can catch them all at the command boundary and turn them into an error
banner plus an exit code. :class:`OperationDeclined` is the one exception
that is not an error: the operator answered "no" to a confirmation.
"""

from __future__ import annotations


class GerritCmdError(Exception):
    """Base exception for all gerritcmd errors."""

    exit_code: int = 1


class NotARepository(GerritCmdError):
    """A command needing repository context was run outside one."""

    exit_code = 2

    def __init__(self, path: str = "") -> None:
        where = f" ({path})" if path else ""
        super().__init__(f"Not inside a git repository{where}")
        self.path = path


class NoBoundEndpoint(GerritCmdError):
    """The repository has no recorded Gerrit endpoint name."""

    exit_code = 3

    def __init__(self, remote: str) -> None:
        super().__init__(
            f"Remote '{remote}' is not bound to a Gerrit endpoint; "
            "run 'gerrit bind NAME' or pass an endpoint name"
        )
        self.remote = remote


class MissingConfig(GerritCmdError):
    """A named endpoint has no host configured."""

    exit_code = 4

    def __init__(self, name: str) -> None:
        super().__init__(f"No Gerrit endpoint named '{name}' is configured")
        self.name = name


class MissingProject(GerritCmdError):
    """A project path was needed but could not be derived."""

    exit_code = 5

    def __init__(self) -> None:
        super().__init__(
            "Could not determine the Gerrit project from the remote URL"
        )


class GitConfigMissing(GerritCmdError):
    """A required git configuration key is not set."""

    exit_code = 6

    def __init__(self, key: str) -> None:
        super().__init__(f"Git configuration '{key}' is not set")
        self.key = key


class InvalidChangeSpec(GerritCmdError):
    """A CHANGE[,PATCHSET] argument could not be parsed."""


class ChangeNotFound(GerritCmdError):
    """The review server returned no change for a query."""

    def __init__(self, change: int | str) -> None:
        super().__init__(f"Change {change} not found")
        self.change = change


class CommandFailed(GerritCmdError):
    """An external command exited with a non-zero status.

    Attributes:
        returncode: Exit code returned by the process.
        stderr: Standard error output captured from the process.
        argv: The command line that was run.
    """

    def __init__(
        self,
        message: str,
        returncode: int = 1,
        stderr: str = "",
        argv: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
        self.argv = list(argv or [])
        self.exit_code = max(int(returncode), 1)

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr:
            return f"{base}\n{self.stderr.strip()}"
        return base


class GitError(CommandFailed):
    """A git command failed."""


class SSHCommandError(CommandFailed):
    """A command sent to the review server over ssh failed."""


class OperationDeclined(GerritCmdError):
    """The operator declined an interactive confirmation."""

    exit_code = 0

    def __init__(self, question: str = "") -> None:
        super().__init__(question or "Operation declined")
        self.question = question
