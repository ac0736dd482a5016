# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""
Key-value configuration stores.

The endpoint resolver never talks to git directly; it is handed a
:class:`ConfigStore` for the global scope and, inside a repository, one for
the local scope. :class:`GitConfigStore` is the production implementation.

Keys use git's dotted ``section.subsection.name`` form, e.g.
``gerrit.review.host`` or ``remote.origin.gerrit``.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path

from gerritcmd import git

log = logging.getLogger("gerritcmd.config_store")


class ConfigStore(ABC):
    """Abstract get/set/enumerate interface over a configuration scope."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value of ``key`` or None when unset."""

    @abstractmethod
    def get_all(self, key: str) -> list[str]:
        """Return every value of a multi-valued key."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Replace the value of ``key``."""

    @abstractmethod
    def add(self, key: str, value: str) -> None:
        """Append ``value`` to a multi-valued key."""

    @abstractmethod
    def items(self, prefix: str) -> list[tuple[str, str]]:
        """Return (key, value) pairs whose key starts with ``prefix``."""

    def set_many(self, values: Mapping[str, str]) -> None:
        """Write several keys in the mapping's iteration order."""
        for key, value in values.items():
            self.set(key, value)


class GitConfigStore(ConfigStore):
    """
    A :class:`ConfigStore` backed by ``git config``.

    Args:
        scope: "global" for the per-user store, "local" for the
               repository's own config.
        cwd: Directory to run git in; only meaningful for the local scope.
    """

    def __init__(self, scope: str = "global", cwd: Path | str | None = None) -> None:
        if scope not in ("global", "local"):
            raise ValueError(f"Unsupported config scope: {scope}")
        self.scope = scope
        self.cwd = cwd

    def __repr__(self) -> str:
        return f"GitConfigStore(scope={self.scope!r}, cwd={self.cwd!r})"

    def get(self, key: str) -> str | None:
        return git.config_get(key, scope=self.scope, cwd=self.cwd)

    def get_all(self, key: str) -> list[str]:
        return git.config_get_all(key, scope=self.scope, cwd=self.cwd)

    def set(self, key: str, value: str) -> None:
        log.debug("Setting %s config %s=%s", self.scope, key, value)
        git.config_set(key, value, scope=self.scope, cwd=self.cwd)

    def add(self, key: str, value: str) -> None:
        log.debug("Adding %s config %s=%s", self.scope, key, value)
        git.config_add(key, value, scope=self.scope, cwd=self.cwd)

    def items(self, prefix: str) -> list[tuple[str, str]]:
        pattern = "^" + re.escape(prefix)
        return git.config_get_regexp(pattern, scope=self.scope, cwd=self.cwd)
