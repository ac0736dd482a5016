# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""
Read-only SSH client alias table.

Parses the user's OpenSSH client configuration (``~/.ssh/config``) into a
mapping of alias -> :class:`SSHAlias`. Only literal ``Host`` names are
aliases; wildcard and negated patterns (``*``, ``?``, ``!``) are skipped, as
are ``Match`` blocks. Like ssh itself, the first value seen for a keyword
wins.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger("gerritcmd.ssh_config")

ENV_SSH_CONFIG = "GERRITCMD_SSH_CONFIG"

_KEYWORD_RE = re.compile(r"^\s*(\w+)\s*(?:=\s*|\s+)(.*?)\s*$")
_WILDCARD_CHARS = frozenset("*?!")


@dataclass(frozen=True)
class SSHAlias:
    """
    One ``Host`` entry of the SSH client configuration.

    Attributes:
        alias: The literal name given on the ``Host`` line.
        host: ``HostName`` value, or the alias itself when unset.
        user: ``User`` value, if any.
        port: ``Port`` value, if any.
    """

    alias: str
    host: str
    user: str | None = None
    port: int | None = None


def default_config_path() -> Path:
    """Return the SSH config path, honouring GERRITCMD_SSH_CONFIG."""
    override = os.environ.get(ENV_SSH_CONFIG)
    if override:
        return Path(override).expanduser()
    return Path("~/.ssh/config").expanduser()


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def parse_ssh_config(text: str) -> dict[str, SSHAlias]:
    """
    Parse SSH client configuration text into an alias table.

    Args:
        text: Contents of an ssh_config(5) file.

    Returns:
        Mapping of alias name to its resolved entry.
    """
    fields: dict[str, dict[str, str]] = {}
    order: list[str] = []
    current: list[str] = []

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        match = _KEYWORD_RE.match(line)
        if not match:
            continue
        keyword = match.group(1).lower()
        value = _unquote(match.group(2))

        if keyword == "host":
            current = [
                name
                for name in value.split()
                if not _WILDCARD_CHARS.intersection(name)
            ]
            for name in current:
                if name not in fields:
                    fields[name] = {}
                    order.append(name)
            continue
        if keyword == "match":
            current = []
            continue

        if keyword in ("hostname", "user", "port"):
            for name in current:
                fields[name].setdefault(keyword, value)

    table: dict[str, SSHAlias] = {}
    for name in order:
        entry = fields[name]
        port: int | None = None
        if "port" in entry:
            try:
                port = int(entry["port"])
            except ValueError:
                log.warning("Ignoring invalid Port %r for host %s", entry["port"], name)
        table[name] = SSHAlias(
            alias=name,
            host=entry.get("hostname", name),
            user=entry.get("user"),
            port=port,
        )
    return table


def load_ssh_aliases(path: Path | None = None) -> dict[str, SSHAlias]:
    """Load the alias table from ``path`` (default: the user's ssh config)."""
    path = path or default_config_path()
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        log.debug("No SSH config at %s", path)
        return {}
    except OSError as exc:
        log.warning("Cannot read SSH config %s: %s", path, exc)
        return {}
    aliases = parse_ssh_config(text)
    log.debug("Loaded %d SSH aliases from %s", len(aliases), path)
    return aliases
