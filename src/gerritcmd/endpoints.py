# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""
Endpoint resolution.

Turns a symbolic Gerrit endpoint name, or the current repository's remote,
into a :class:`ConnectionDescriptor` (user, host, port and, from a
repository, the remote project path).

Sources consulted:

1. An explicit endpoint name.
2. The repository binding ``remote.<remote>.gerrit`` (local scope).
3. Named endpoints ``gerrit.<name>.{host,user,port}`` (global scope).
4. The SSH client alias table, which overrides the host, user and port
   parsed out of a remote URL.

Nothing in this module prompts. A missing endpoint raises
:class:`~gerritcmd.errors.MissingConfig`; the interactive create flow
lives in :mod:`gerritcmd.prompts`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

from gerritcmd.config_store import ConfigStore
from gerritcmd.errors import (
    GitConfigMissing,
    MissingConfig,
    MissingProject,
    NoBoundEndpoint,
    NotARepository,
)
from gerritcmd.remote_url import alias_project, host_token, parse_remote_url
from gerritcmd.ssh_config import SSHAlias

log = logging.getLogger("gerritcmd.endpoints")

DEFAULT_PORT: Final[int] = 29418
DEFAULT_BRANCH: Final[str] = "master"
DEFAULT_REMOTE: Final[str] = "origin"

ENDPOINT_SECTION: Final[str] = "gerrit"
BINDING_KEY: Final[str] = "gerrit"


def _endpoint_key(name: str, field: str) -> str:
    return f"{ENDPOINT_SECTION}.{name}.{field}"


def _parse_port(value: str | None) -> int:
    if value is None or not value.strip():
        return DEFAULT_PORT
    try:
        port = int(value)
    except ValueError:
        log.warning("Ignoring non-numeric port %r, using %d", value, DEFAULT_PORT)
        return DEFAULT_PORT
    if not 1 <= port <= 65535:
        log.warning("Ignoring out-of-range port %d, using %d", port, DEFAULT_PORT)
        return DEFAULT_PORT
    return port


class NamedEndpoint(BaseModel):
    """A Gerrit server stored under a free-form name."""

    name: str
    host: str
    user: str = ""
    port: int = Field(DEFAULT_PORT, ge=1, le=65535)


class ConnectionDescriptor(BaseModel):
    """Everything needed to reach a Gerrit server over ssh."""

    model_config = ConfigDict(frozen=True)

    user: str = ""
    host: str
    port: int = DEFAULT_PORT
    project: str = ""

    @property
    def destination(self) -> str:
        """The ``user@host`` argument for ssh (just ``host`` without a user)."""
        return f"{self.user}@{self.host}" if self.user else self.host

    def ssh_url(self, project: str | None = None) -> str:
        """Return ``ssh://[user@]host:port/project``."""
        path = self.project if project is None else project
        return f"ssh://{self.destination}:{self.port}/{path}"


class EndpointResolver:
    """
    Resolve named endpoints and repository remotes to connection details.

    Args:
        global_store: Per-user store holding the named endpoints and the
                      remembered reviewers.
        local_store: The repository's own store, or None outside a
                     repository.
        aliases: SSH alias table keyed by alias name.
    """

    def __init__(
        self,
        global_store: ConfigStore,
        local_store: ConfigStore | None = None,
        aliases: Mapping[str, SSHAlias] | None = None,
    ) -> None:
        self.global_store = global_store
        self.local_store = local_store
        self.aliases: Mapping[str, SSHAlias] = aliases or {}

    # ------------------------------------------------------------------
    # Named endpoints
    # ------------------------------------------------------------------

    def lookup_named(self, name: str) -> NamedEndpoint | None:
        """Return the stored endpoint, or None when it has no host."""
        host = self.global_store.get(_endpoint_key(name, "host")) or ""
        if not host:
            return None
        return NamedEndpoint(
            name=name,
            host=host,
            user=self.global_store.get(_endpoint_key(name, "user")) or "",
            port=_parse_port(self.global_store.get(_endpoint_key(name, "port"))),
        )

    def resolve_named(self, name: str) -> ConnectionDescriptor:
        """
        Resolve an endpoint name to {user, host, port}.

        Raises:
            MissingConfig: If no host is stored under ``name``.
        """
        endpoint = self.lookup_named(name)
        if endpoint is None:
            raise MissingConfig(name)
        log.debug(
            "Resolved endpoint %s to %s:%d", name, endpoint.host, endpoint.port
        )
        return ConnectionDescriptor(
            user=endpoint.user, host=endpoint.host, port=endpoint.port
        )

    def save_named(self, endpoint: NamedEndpoint) -> None:
        """
        Persist all three fields of ``endpoint``.

        The host is written last; until it lands the entry still reads as
        missing, so an interrupted save never yields a half-configured
        endpoint.
        """
        self.global_store.set_many(
            {
                _endpoint_key(endpoint.name, "port"): str(endpoint.port),
                _endpoint_key(endpoint.name, "user"): endpoint.user,
                _endpoint_key(endpoint.name, "host"): endpoint.host,
            }
        )
        log.debug("Saved endpoint %s", endpoint.name)

    def list_named(self) -> list[NamedEndpoint]:
        """Return every stored endpoint that has a host, sorted by name."""
        prefix = f"{ENDPOINT_SECTION}."
        names: set[str] = set()
        for key, value in self.global_store.items(prefix):
            section, _, rest = key.partition(".")
            name, _, field = rest.rpartition(".")
            if section == ENDPOINT_SECTION and name and field == "host" and value:
                names.add(name)
        endpoints = [self.lookup_named(name) for name in sorted(names)]
        return [endpoint for endpoint in endpoints if endpoint is not None]

    # ------------------------------------------------------------------
    # Repository context
    # ------------------------------------------------------------------

    def _require_local(self) -> ConfigStore:
        if self.local_store is None:
            raise NotARepository()
        return self.local_store

    def upstream_remote(self, branch: str = DEFAULT_BRANCH) -> str:
        """Return the remote ``branch`` tracks, falling back to origin."""
        store = self._require_local()
        return store.get(f"branch.{branch}.remote") or DEFAULT_REMOTE

    def bound_name(self, branch: str = DEFAULT_BRANCH) -> str:
        """
        Return the endpoint name bound to the repository.

        Raises:
            NotARepository: Outside a repository.
            NoBoundEndpoint: If the remote has no recorded endpoint.
        """
        remote = self.upstream_remote(branch)
        name = self._require_local().get(f"remote.{remote}.{BINDING_KEY}") or ""
        if not name:
            raise NoBoundEndpoint(remote)
        return name

    def resolve_bound(self, branch: str = DEFAULT_BRANCH) -> ConnectionDescriptor:
        """Resolve the endpoint bound to the repository."""
        return self.resolve_named(self.bound_name(branch))

    def bind(self, name: str, remote: str | None = None) -> str:
        """Record ``name`` as the endpoint of ``remote``; returns the remote."""
        store = self._require_local()
        remote = remote or self.upstream_remote()
        store.set(f"remote.{remote}.{BINDING_KEY}", name)
        log.debug("Bound remote %s to endpoint %s", remote, name)
        return remote

    def resolve_from_repository(
        self, branch: str = DEFAULT_BRANCH
    ) -> ConnectionDescriptor:
        """
        Derive {user, host, port, project} from the remote ``branch`` tracks.

        When the URL's host token is an SSH alias, the alias's host, user
        and port win and the project is cut at ":"; otherwise everything is
        parsed from ``user@host:port/project.git`` and the project is cut
        at the first "/".

        Raises:
            NotARepository: Outside a repository.
            GitConfigMissing: If the remote has no URL.
        """
        store = self._require_local()
        remote = self.upstream_remote(branch)
        url_key = f"remote.{remote}.url"
        url = store.get(url_key)
        if not url:
            raise GitConfigMissing(url_key)

        parsed = parse_remote_url(url)
        alias = self.aliases.get(host_token(url))
        if alias is not None:
            descriptor = ConnectionDescriptor(
                user=alias.user if alias.user is not None else parsed.user,
                host=alias.host,
                port=alias.port or parsed.port or DEFAULT_PORT,
                project=alias_project(url),
            )
            log.debug("Remote %s uses SSH alias %s", remote, alias.alias)
        else:
            descriptor = ConnectionDescriptor(
                user=parsed.user,
                host=parsed.host,
                port=parsed.port or DEFAULT_PORT,
                project=parsed.project,
            )
        log.debug("Resolved remote %s (%s) to %s", remote, url, descriptor)
        return descriptor

    def resolve_repository(
        self, branch: str = DEFAULT_BRANCH
    ) -> ConnectionDescriptor:
        """
        Connection details for a command run inside a checkout.

        The project always comes from the remote URL. When the remote is
        bound to a configured endpoint, that endpoint's user, host and port
        replace the URL-derived ones; an unbound remote, or a binding whose
        endpoint is not configured, keeps the URL values.
        """
        descriptor = self.resolve_from_repository(branch)
        remote = self.upstream_remote(branch)
        name = self._require_local().get(f"remote.{remote}.{BINDING_KEY}") or ""
        if not name:
            return descriptor
        endpoint = self.lookup_named(name)
        if endpoint is None:
            log.debug("Endpoint %s bound to %s is not configured", name, remote)
            return descriptor
        return ConnectionDescriptor(
            user=endpoint.user,
            host=endpoint.host,
            port=endpoint.port,
            project=descriptor.project,
        )

    # ------------------------------------------------------------------
    # Reviewer history
    # ------------------------------------------------------------------

    def remembered_reviewers(self) -> list[str]:
        """Return the reviewers recorded under gerrit.reviewers."""
        return self.global_store.get_all(f"{ENDPOINT_SECTION}.reviewers")

    def remember_reviewers(self, reviewers: list[str]) -> list[str]:
        """Record reviewers not seen before; returns the ones added."""
        known = set(self.remembered_reviewers())
        added: list[str] = []
        for reviewer in reviewers:
            if reviewer and reviewer not in known:
                self.global_store.add(f"{ENDPOINT_SECTION}.reviewers", reviewer)
                known.add(reviewer)
                added.append(reviewer)
        return added


def require_project(descriptor: ConnectionDescriptor) -> str:
    """
    Return the descriptor's project.

    Raises:
        MissingProject: If the project is empty.
    """
    if not descriptor.project:
        raise MissingProject()
    return descriptor.project
