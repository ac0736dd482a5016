# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""
Gerrit service layer for gerritcmd.

This module provides a high-level service class for querying and operating
on Gerrit changes through the SSH command channel. It provides methods for:

- Listing projects
- Listing open changes of a project
- Fetching a single change and its patch sets
- Voting, submitting, abandoning and restoring patch sets
- Adding reviewers
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Final

from gerritcmd.endpoints import ConnectionDescriptor
from gerritcmd.errors import ChangeNotFound, SSHCommandError
from gerritcmd.gerrit.models import ChangeInfo, parse_text_blocks
from gerritcmd.gerrit.ssh import GerritSSHClient

log = logging.getLogger("gerritcmd.gerrit.service")


# Default options for fetching a single change
DEFAULT_CHANGE_OPTIONS: Final[list[str]] = [
    "--current-patch-set",
    "--patch-sets",
]

# Default options for listing changes
DEFAULT_LIST_OPTIONS: Final[list[str]] = [
    "--current-patch-set",
]


class GerritServiceError(SSHCommandError):
    """Raised for service-level errors."""


class GerritService:
    """
    High-level Gerrit operations over ssh.

    Args:
        descriptor: Connection details; its ``project`` is the default
                    project for queries and reviews.
        client: Optional preconfigured SSH client (mainly for tests).
    """

    def __init__(
        self,
        descriptor: ConnectionDescriptor,
        client: GerritSSHClient | None = None,
    ) -> None:
        self.descriptor = descriptor
        self._client = client or GerritSSHClient(descriptor)

    @property
    def project(self) -> str:
        return self.descriptor.project

    @property
    def client(self) -> GerritSSHClient:
        return self._client

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_projects(self) -> list[str]:
        """Return the project names visible to the user."""
        log.debug("Listing projects on %s", self.descriptor.host)
        output = self._client.run(["ls-projects"])
        return [line.strip() for line in output.splitlines() if line.strip()]

    def get_open_changes(
        self,
        project: str | None = None,
        include_closed: bool = False,
        owner: str | None = None,
        options: list[str] | None = None,
    ) -> list[ChangeInfo]:
        """
        Get changes of a project, open ones only unless ``include_closed``.

        Args:
            project: Project to filter by (defaults to the descriptor's).
            include_closed: Also return merged and abandoned changes.
            owner: Optional owner username to filter by.
            options: Optional list of query options.

        Returns:
            List of ChangeInfo for matching changes.
        """
        if options is None:
            options = DEFAULT_LIST_OPTIONS
        query = self._changes_query(project, include_closed, owner)
        return self._query_changes(query, options)

    def get_change_blocks(
        self,
        project: str | None = None,
        include_closed: bool = False,
        owner: str | None = None,
    ) -> list[dict[str, str]]:
        """Same selection as get_open_changes, in the server's text format."""
        query = self._changes_query(project, include_closed, owner)
        log.debug("Querying change blocks: %s", query)
        return parse_text_blocks(self._client.query_text(query))

    def _changes_query(
        self, project: str | None, include_closed: bool, owner: str | None
    ) -> str:
        query_parts = [] if include_closed else ["status:open"]
        project = project if project is not None else self.project
        if project:
            query_parts.append(f"project:{project}")
        if owner:
            query_parts.append(f"owner:{owner}")
        return " ".join(query_parts) or "status:open"

    def get_change_info(
        self, change_number: int, options: list[str] | None = None
    ) -> ChangeInfo:
        """
        Fetch information about a specific change.

        Raises:
            ChangeNotFound: If the change does not exist.
        """
        if options is None:
            options = DEFAULT_CHANGE_OPTIONS
        query = f"change:{change_number}"
        if self.project:
            query += f" project:{self.project}"
        changes = self._query_changes(query, options)
        if not changes:
            raise ChangeNotFound(change_number)
        return changes[0]

    def get_current_patchset(self, change_number: int) -> int:
        """Return the current patch set number of a change."""
        change = self.get_change_info(change_number, options=DEFAULT_LIST_OPTIONS)
        number = change.current_patchset_number
        if number is None:
            raise GerritServiceError(
                f"Change {change_number} has no current patch set"
            )
        return number

    def _query_changes(self, query: str, options: Sequence[str]) -> list[ChangeInfo]:
        log.debug("Querying changes: %s", query)
        rows = self._client.query_json(query, options)
        return [ChangeInfo.from_query_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def review(
        self,
        change_number: int,
        patchset: int,
        *,
        code_review: int | None = None,
        verified: int | None = None,
        message: str | None = None,
        submit: bool = False,
        abandon: bool = False,
        restore: bool = False,
    ) -> None:
        """
        Vote on, comment on, or change the state of a patch set.

        Raises:
            ValueError: If no action was requested, or mutually exclusive
                        actions were combined.
            SSHCommandError: If the server rejects the review.
        """
        if sum((submit, abandon, restore)) > 1:
            raise ValueError("--submit, --abandon and --restore are exclusive")

        args = ["review"]
        if self.project:
            args += ["--project", self.project]
        if code_review is not None:
            args += ["--code-review", str(code_review)]
        if verified is not None:
            args += ["--verified", str(verified)]
        if message:
            args += ["--message", message]
        if submit:
            args.append("--submit")
        if abandon:
            args.append("--abandon")
        if restore:
            args.append("--restore")
        if len(args) == (3 if self.project else 1):
            raise ValueError("Nothing to do: give a vote, a message or an action")

        args.append(f"{change_number},{patchset}")
        log.debug("Reviewing %d,%d", change_number, patchset)
        self._client.run(args)

    def add_reviewers(self, change_number: int, reviewers: Sequence[str]) -> None:
        """Add reviewers to a change."""
        if not reviewers:
            return
        args = ["set-reviewers"]
        if self.project:
            args += ["--project", self.project]
        for reviewer in reviewers:
            args += ["--add", reviewer]
        args.append(str(change_number))
        log.debug("Adding reviewers %s to %d", ", ".join(reviewers), change_number)
        self._client.run(args)

    def run_raw(self, args: Sequence[str]) -> None:
        """Pass ``args`` straight to the server's gerrit command."""
        self._client.run(list(args), capture=False)


def create_gerrit_service(descriptor: ConnectionDescriptor) -> GerritService:
    """
    Factory function to create a GerritService instance.

    Args:
        descriptor: Connection details of the server.

    Returns:
        Configured GerritService instance.
    """
    return GerritService(descriptor)


__all__ = [
    "DEFAULT_CHANGE_OPTIONS",
    "DEFAULT_LIST_OPTIONS",
    "GerritService",
    "GerritServiceError",
    "create_gerrit_service",
]
