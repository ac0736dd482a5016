# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""
Gerrit integration package for gerritcmd.

This package talks to a Gerrit server through its SSH command interface.

Modules:
    ssh: Command channel running ``gerrit <subcommand>`` over ssh
    models: Pydantic models for query results
    refs: Sharded change refs and CHANGE[,PATCHSET] parsing
    service: High-level service layer for Gerrit operations

Usage:
    from gerritcmd.gerrit import GerritService, create_gerrit_service

    service = create_gerrit_service(descriptor)
    changes = service.get_open_changes()
"""

from gerritcmd.gerrit.models import (
    AccountInfo,
    ApprovalInfo,
    ChangeInfo,
    ChangeStatus,
    PatchSetInfo,
    parse_text_blocks,
)
from gerritcmd.gerrit.refs import change_ref, parse_change_spec, review_branch
from gerritcmd.gerrit.service import (
    DEFAULT_CHANGE_OPTIONS,
    DEFAULT_LIST_OPTIONS,
    GerritService,
    GerritServiceError,
    create_gerrit_service,
)
from gerritcmd.gerrit.ssh import GerritSSHClient, fetch_commit_msg_hook

__all__ = [
    # SSH channel
    "GerritSSHClient",
    "fetch_commit_msg_hook",
    # Models
    "AccountInfo",
    "ApprovalInfo",
    "ChangeInfo",
    "ChangeStatus",
    "PatchSetInfo",
    "parse_text_blocks",
    # Refs
    "change_ref",
    "parse_change_spec",
    "review_branch",
    # Service
    "DEFAULT_CHANGE_OPTIONS",
    "DEFAULT_LIST_OPTIONS",
    "GerritService",
    "GerritServiceError",
    "create_gerrit_service",
]
