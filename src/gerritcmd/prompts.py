# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""
Interactive endpoint configuration.

Wraps the pure :class:`~gerritcmd.endpoints.EndpointResolver` with the
create-on-demand flow: when a named endpoint is missing the operator is
asked whether to create it, then prompted for host, user and port.
Declining any confirmation raises
:class:`~gerritcmd.errors.OperationDeclined`, which the CLI turns into a
silent, successful exit.
"""

from __future__ import annotations

import logging

import click
import typer

from gerritcmd.endpoints import (
    DEFAULT_PORT,
    ConnectionDescriptor,
    EndpointResolver,
    NamedEndpoint,
)
from gerritcmd.errors import MissingConfig, OperationDeclined

log = logging.getLogger("gerritcmd.prompts")

_PORT_TYPE = click.IntRange(1, 65535)


def _confirm(question: str) -> None:
    if not typer.confirm(question, default=True):
        raise OperationDeclined(question)


def _prompt_host(default: str) -> str:
    while True:
        host = typer.prompt("Host", default=default or None, type=str).strip()
        if host:
            return host
        typer.echo("Host cannot be empty.", err=True)


def edit_named(
    resolver: EndpointResolver, name: str, *, confirm_overwrite: bool = True
) -> NamedEndpoint:
    """
    Prompt for an endpoint's host, user and port and store them.

    Args:
        resolver: Resolver whose global store receives the endpoint.
        name: Endpoint name.
        confirm_overwrite: Ask before replacing an existing endpoint.

    Raises:
        OperationDeclined: If the operator refuses to overwrite.
    """
    current = resolver.lookup_named(name)
    if current is not None and confirm_overwrite:
        _confirm(f"Gerrit endpoint '{name}' already exists. Overwrite it?")

    host = _prompt_host(current.host if current else "")
    user = typer.prompt(
        "User", default=current.user if current else "", show_default=True
    ).strip()
    port = typer.prompt(
        "Port", default=current.port if current else DEFAULT_PORT, type=_PORT_TYPE
    )

    endpoint = NamedEndpoint(name=name, host=host, user=user, port=port)
    resolver.save_named(endpoint)
    log.info("Stored Gerrit endpoint %s (%s:%d)", name, host, port)
    return endpoint


def ensure_named(resolver: EndpointResolver, name: str) -> ConnectionDescriptor:
    """
    Resolve ``name``, offering to create it when it is not configured.

    Raises:
        OperationDeclined: If the operator does not want to create it.
    """
    try:
        return resolver.resolve_named(name)
    except MissingConfig:
        log.debug("Endpoint %s is not configured", name)

    _confirm(f"No Gerrit endpoint named '{name}'. Create it?")
    edit_named(resolver, name, confirm_overwrite=False)
    return resolver.resolve_named(name)
