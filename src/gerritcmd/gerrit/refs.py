# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""Change and patch set references."""

from __future__ import annotations

from gerritcmd.errors import InvalidChangeSpec


def change_ref(change: int, patchset: int) -> str:
    """
    Return the sharded ref of a patch set.

    Gerrit shards change refs by the last two digits of the change number:
    change 1234 patch set 2 lives at ``refs/changes/34/1234/2``.
    """
    if change < 1 or patchset < 1:
        raise InvalidChangeSpec(f"Invalid change {change} patch set {patchset}")
    return f"refs/changes/{change % 100:02d}/{change}/{patchset}"


def parse_change_spec(spec: str) -> tuple[int, int | None]:
    """
    Parse ``CHANGE`` or ``CHANGE,PATCHSET`` (``CHANGE/PATCHSET`` also works).

    Raises:
        InvalidChangeSpec: If either part is not a positive integer.
    """
    text = spec.strip().replace("/", ",")
    change_text, _, patchset_text = text.partition(",")
    try:
        change = int(change_text)
        patchset = int(patchset_text) if patchset_text else None
    except ValueError as exc:
        raise InvalidChangeSpec(f"Invalid change '{spec}'") from exc
    if change < 1 or (patchset is not None and patchset < 1):
        raise InvalidChangeSpec(f"Invalid change '{spec}'")
    return change, patchset


def review_branch(change: int, patchset: int) -> str:
    """Local branch name used when checking out a patch set."""
    return f"change/{change}/{patchset}"
