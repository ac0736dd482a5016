# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""
Parsing of Git remote URLs pointing at a Gerrit SSH endpoint.

Supported URL shapes:

    ssh://user@host:29418/team/project.git
    user@host:29418/team/project.git
    host:29418/team/project
    user@alias:team/project.git        (host is an SSH alias)

Grammar (after an optional ``ssh://`` prefix has been stripped)::

    url      := [user "@"] host [":" rest] ["/" path]
    host     := text up to the first ":" (or the first "/" when there is none)

The host token is what gets looked up in the SSH alias table. How the
project is cut out of the rest of the URL depends on that lookup:

* Without an alias the URL carries ``host:port/project``, so the project
  is everything after the first "/".
* With an alias the alias already encodes host and port, so the project is
  everything after the ":" (a leading ``NNNN/`` port segment is dropped).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from gerritcmd.errors import GerritCmdError

SSH_SCHEME = "ssh://"

_PORT_SEGMENT_RE = re.compile(r"^(\d+)(?:/|$)")


class RemoteUrlError(GerritCmdError, ValueError):
    """Raised when a remote URL has no recognisable host."""


@dataclass(frozen=True)
class ParsedRemote:
    """
    Components of a remote URL.

    Attributes:
        user: Username before "@", or "" when absent.
        host: Host token (raw: it may be an SSH alias).
        port: Numeric port from the URL, or None when absent.
        project: Project path with any ".git" suffix removed.
    """

    user: str
    host: str
    port: int | None
    project: str


def strip_scheme(url: str) -> str:
    """Remove an optional ``ssh://`` prefix."""
    url = url.strip()
    if url.startswith(SSH_SCHEME):
        return url[len(SSH_SCHEME) :]
    return url


def strip_git_suffix(path: str) -> str:
    """Remove a trailing ".git" (and any trailing slash before it)."""
    path = path.rstrip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    return path


def _split_user(url: str) -> tuple[str, str]:
    # Only an "@" before the first ":" or "/" belongs to the user part
    head = re.split(r"[:/]", url, maxsplit=1)[0]
    if "@" in head:
        user, _, rest = url.partition("@")
        return user, rest
    return "", url


def host_token(url: str) -> str:
    """
    Return the raw host token of a remote URL.

    This is the text between "@" and the first ":"; when the URL has no
    ":" the token ends at the first "/".

    Raises:
        RemoteUrlError: If no host can be found.
    """
    _, rest = _split_user(strip_scheme(url))
    if ":" in rest:
        host = rest.split(":", 1)[0]
    else:
        host = rest.split("/", 1)[0]
    if not host:
        raise RemoteUrlError(f"No host in remote URL: {url}")
    return host


def parse_remote_url(url: str) -> ParsedRemote:
    """
    Parse ``[ssh://][user@]host[:port]/project[.git]``.

    The project is the portion after the first "/" of the scheme-less
    URL. A non-numeric port field yields ``port=None``.

    Raises:
        RemoteUrlError: If no host can be found.
    """
    bare = strip_scheme(url)
    host = host_token(bare)
    user, rest = _split_user(bare)

    port: int | None = None
    after_host = rest[len(host) :]
    if after_host.startswith(":"):
        match = _PORT_SEGMENT_RE.match(after_host[1:])
        if match:
            port = int(match.group(1))

    project = ""
    if "/" in rest:
        project = strip_git_suffix(rest.split("/", 1)[1])

    return ParsedRemote(user=user, host=host, port=port, project=project)


def alias_project(url: str) -> str:
    """
    Return the project path of a URL whose host token is an SSH alias.

    The project is the portion after the first ":" with a leading numeric
    port segment removed. URLs without ":" fall back to the portion after
    the first "/".
    """
    bare = strip_scheme(url)
    _, rest = _split_user(bare)
    if ":" in rest:
        path = rest.split(":", 1)[1]
        path = _PORT_SEGMENT_RE.sub("", path, count=1)
    elif "/" in rest:
        path = rest.split("/", 1)[1]
    else:
        path = ""
    return strip_git_suffix(path)
