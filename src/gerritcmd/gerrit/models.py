# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""
Gerrit query result models for gerritcmd.

This module defines Pydantic models for the rows returned by
``gerrit query --format=JSON`` over ssh, plus a parser for the default
plain-text query format.

These models provide:
- Type-safe representations of query rows
- Factory methods for parsing raw rows
- Convenience properties used by the CLI tables
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ChangeStatus(str, Enum):
    """Gerrit change status values."""

    NEW = "NEW"
    MERGED = "MERGED"
    ABANDONED = "ABANDONED"
    DRAFT = "DRAFT"


def _int(value: Any, default: int = 0) -> int:
    # Older servers send numbers as strings
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class AccountInfo(BaseModel):
    """A Gerrit account as it appears in query rows."""

    name: str = ""
    email: str = ""
    username: str = ""

    @classmethod
    def from_query_row(cls, data: dict[str, Any] | None) -> AccountInfo:
        data = data or {}
        return cls(
            name=data.get("name", ""),
            email=data.get("email", ""),
            username=data.get("username", ""),
        )

    @property
    def display_name(self) -> str:
        """Username, falling back to the full name, then the email."""
        return self.username or self.name or self.email or "unknown"


class ApprovalInfo(BaseModel):
    """A single vote on a patch set (e.g. Code-Review +2)."""

    label: str
    value: int = 0
    by: AccountInfo = Field(default_factory=AccountInfo)

    @classmethod
    def from_query_row(cls, data: dict[str, Any]) -> ApprovalInfo:
        """
        Create an ApprovalInfo from an ``approvals`` entry.

        Args:
            data: One element of a patch set's ``approvals`` list.

        Returns:
            An ApprovalInfo instance.
        """
        return cls(
            label=data.get("type") or data.get("description", ""),
            value=_int(data.get("value")),
            by=AccountInfo.from_query_row(data.get("by")),
        )

    @property
    def short(self) -> str:
        """Compact form such as ``Code-Review+2``."""
        sign = "+" if self.value > 0 else ""
        return f"{self.label}{sign}{self.value}"


class PatchSetInfo(BaseModel):
    """A patch set of a change."""

    number: int
    revision: str = ""
    ref: str = ""
    uploader: AccountInfo = Field(default_factory=AccountInfo)
    approvals: list[ApprovalInfo] = Field(default_factory=list)

    @classmethod
    def from_query_row(cls, data: dict[str, Any]) -> PatchSetInfo:
        return cls(
            number=_int(data.get("number")),
            revision=data.get("revision", ""),
            ref=data.get("ref", ""),
            uploader=AccountInfo.from_query_row(data.get("uploader")),
            approvals=[
                ApprovalInfo.from_query_row(approval)
                for approval in data.get("approvals", [])
            ],
        )


class ChangeInfo(BaseModel):
    """
    Represents a Gerrit change as returned by ``gerrit query``.
    """

    # Core identifiers
    number: int = Field(..., description="Gerrit change number")
    change_id: str = Field("", description="Gerrit Change-Id (I-prefixed)")
    project: str = Field("", description="Gerrit project name")

    # Content
    subject: str = Field("", description="First line of commit message")
    topic: str | None = Field(None, description="Change topic (if set)")

    # Owner and branch
    owner: AccountInfo = Field(default_factory=AccountInfo)
    branch: str = Field("", description="Target branch")

    # Status
    status: str = Field(ChangeStatus.NEW.value, description="Change status")
    url: str = Field("", description="Web URL for the change")

    # Patch sets
    current_patch_set: PatchSetInfo | None = None
    patch_sets: list[PatchSetInfo] = Field(default_factory=list)

    # Timestamps (seconds since the epoch)
    created_on: int = 0
    last_updated: int = 0

    @classmethod
    def from_query_row(cls, data: dict[str, Any]) -> ChangeInfo:
        """
        Create a ChangeInfo from one ``gerrit query --format=JSON`` row.

        Args:
            data: The decoded JSON object.

        Returns:
            A ChangeInfo instance.
        """
        current = data.get("currentPatchSet")
        return cls(
            number=_int(data.get("number")),
            change_id=data.get("id", ""),
            project=data.get("project", ""),
            subject=data.get("subject", ""),
            topic=data.get("topic"),
            owner=AccountInfo.from_query_row(data.get("owner")),
            branch=data.get("branch", ""),
            status=data.get("status", ChangeStatus.NEW.value),
            url=data.get("url", ""),
            current_patch_set=(
                PatchSetInfo.from_query_row(current) if current else None
            ),
            patch_sets=[
                PatchSetInfo.from_query_row(ps) for ps in data.get("patchSets", [])
            ],
            created_on=_int(data.get("createdOn")),
            last_updated=_int(data.get("lastUpdated")),
        )

    @property
    def current_patchset_number(self) -> int | None:
        """Number of the current patch set, if the query returned it."""
        if self.current_patch_set is not None:
            return self.current_patch_set.number
        if self.patch_sets:
            return max(ps.number for ps in self.patch_sets)
        return None

    def patch_set(self, number: int) -> PatchSetInfo | None:
        """Return patch set ``number`` if the query included it."""
        if self.current_patch_set and self.current_patch_set.number == number:
            return self.current_patch_set
        for ps in self.patch_sets:
            if ps.number == number:
                return ps
        return None

    @property
    def approvals_summary(self) -> str:
        """Votes on the current patch set, e.g. ``Code-Review+2 Verified+1``."""
        if self.current_patch_set is None:
            return ""
        return " ".join(a.short for a in self.current_patch_set.approvals)


def parse_text_blocks(text: str) -> list[dict[str, str]]:
    """
    Parse the plain-text ``gerrit query`` output into one dict per change.

    Each block starts with an unindented ``change <Change-Id>`` line and
    continues with indented ``key: value`` lines. A key with no value opens
    a nested section whose keys are flattened as ``section.key``. Repeated
    keys (e.g. several approvals) keep the last value. The trailing
    ``type: stats`` block is ignored.
    """
    blocks: list[dict[str, str]] = []
    current: dict[str, str] | None = None
    sections: list[tuple[int, str]] = []

    for raw in text.splitlines():
        if not raw.strip():
            continue
        indent = len(raw) - len(raw.lstrip())
        line = raw.strip()

        if indent == 0:
            if line.startswith("change "):
                current = {"change": line[len("change ") :].strip()}
                blocks.append(current)
            else:
                current = None
            sections = []
            continue
        if current is None or ":" not in line:
            continue

        key, _, value = line.partition(":")
        key = key.strip()
        value = value.strip()
        while sections and indent <= sections[-1][0]:
            sections.pop()
        path = ".".join([name for _, name in sections] + [key])
        if value:
            current[path] = value
        else:
            sections.append((indent, key))

    return blocks
