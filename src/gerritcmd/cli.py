# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, git
from .config_store import GitConfigStore
from .endpoints import (
    DEFAULT_BRANCH,
    ConnectionDescriptor,
    EndpointResolver,
    require_project,
)
from .errors import ChangeNotFound, GerritCmdError, OperationDeclined
from .gerrit.models import ChangeInfo
from .gerrit.refs import change_ref, parse_change_spec, review_branch
from .gerrit.service import GerritService, create_gerrit_service
from .gerrit.ssh import fetch_commit_msg_hook
from .prompts import edit_named, ensure_named
from .ssh_config import load_ssh_aliases

log = logging.getLogger("gerritcmd.cli")

app = typer.Typer(
    help="Drive a Gerrit code review workflow over ssh from a git checkout",
    no_args_is_help=True,
)
console = Console(markup=False)
err_console = Console(stderr=True, markup=False)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"gerritcmd version {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    """Send log records to stderr through Rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    branch: str = typer.Option(
        DEFAULT_BRANCH,
        "--branch",
        "-b",
        envvar="GERRIT_BRANCH",
        help="Local branch whose upstream remote identifies the Gerrit server",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        envvar="GERRITCMD_DEBUG",
        help="Log every git and ssh invocation",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
):
    """
    Translate short review commands into git and 'ssh ... gerrit' calls.

    Gerrit endpoints are stored in the global git config as
    gerrit.<name>.host/user/port; a checkout records the endpoint it was
    cloned from in remote.<remote>.gerrit.
    """
    _setup_logging(verbose)
    ctx.obj = {"branch": branch}


def _make_resolver(cwd: Optional[Path] = None) -> EndpointResolver:
    """Build a resolver over the user's git config and ssh aliases."""
    local_store = None
    if git.is_repository(cwd):
        local_store = GitConfigStore("local", cwd=cwd)
    return EndpointResolver(
        GitConfigStore("global"),
        local_store=local_store,
        aliases=load_ssh_aliases(),
    )


@contextmanager
def _handle_errors() -> Iterator[None]:
    """Turn gerritcmd errors into an error banner and an exit code."""
    try:
        yield
    except OperationDeclined as exc:
        log.debug("Declined: %s", exc)
        raise typer.Exit(0) from exc
    except GerritCmdError as exc:
        err_console.print(f"Error: {exc}", style="bold red")
        raise typer.Exit(exc.exit_code) from exc


def _branch(ctx: typer.Context) -> str:
    return (ctx.obj or {}).get("branch", DEFAULT_BRANCH)


def _named_or_bound(
    resolver: EndpointResolver, name: Optional[str], branch: str
) -> ConnectionDescriptor:
    """Resolve an explicit endpoint name, or the one bound to the checkout."""
    return ensure_named(resolver, name or resolver.bound_name(branch))


def _repository_service(ctx: typer.Context) -> GerritService:
    resolver = _make_resolver()
    descriptor = resolver.resolve_repository(_branch(ctx))
    require_project(descriptor)
    return create_gerrit_service(descriptor)


# ----------------------------------------------------------------------
# Endpoint configuration
# ----------------------------------------------------------------------


@app.command()
def config(
    name: str = typer.Argument(..., help="Endpoint name"),
):
    """Create or edit a named Gerrit endpoint."""
    with _handle_errors():
        endpoint = edit_named(_make_resolver(), name)
        console.print(
            f"Saved endpoint {endpoint.name}: "
            f"{endpoint.user + '@' if endpoint.user else ''}"
            f"{endpoint.host}:{endpoint.port}"
        )


@app.command()
def endpoints():
    """List the configured Gerrit endpoints."""
    with _handle_errors():
        stored = _make_resolver().list_named()
        if not stored:
            console.print("No Gerrit endpoints configured; run 'gerrit config NAME'")
            return

        table = Table(title="Gerrit Endpoints")
        table.add_column("Name", style="cyan")
        table.add_column("Host", style="green")
        table.add_column("User", style="yellow")
        table.add_column("Port", style="white")
        for endpoint in stored:
            table.add_row(endpoint.name, endpoint.host, endpoint.user, str(endpoint.port))
        console.print(table)


@app.command()
def clone(
    name: str = typer.Argument(..., help="Endpoint name"),
    project: str = typer.Argument(..., help="Gerrit project path"),
    directory: Optional[str] = typer.Argument(
        None, help="Target directory (default: last component of the project)"
    ),
    install_hook: bool = typer.Option(
        True, "--hook/--no-hook", help="Install the server's commit-msg hook"
    ),
):
    """Clone a project from a named endpoint and bind the checkout to it."""
    with _handle_errors():
        descriptor = ensure_named(_make_resolver(), name)
        target = Path(directory or project.rstrip("/").rsplit("/", 1)[-1])
        git.clone(descriptor.ssh_url(project), target)

        _make_resolver(cwd=target).bind(name, remote="origin")
        if install_hook:
            hook = fetch_commit_msg_hook(descriptor, target)
            log.debug("Installed %s", hook)
        console.print(f"Cloned {project} into {target} (endpoint {name})")


@app.command()
def bind(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Endpoint name"),
    remote: Optional[str] = typer.Option(
        None, "--remote", "-r", help="Remote to bind (default: upstream of --branch)"
    ),
):
    """Record which named endpoint the current checkout talks to."""
    with _handle_errors():
        resolver = _make_resolver()
        remote = remote or resolver.upstream_remote(_branch(ctx))
        ensure_named(resolver, name)
        bound = resolver.bind(name, remote)
        console.print(f"Remote {bound} is now bound to endpoint {name}")


# ----------------------------------------------------------------------
# Server commands
# ----------------------------------------------------------------------


@app.command()
def projects(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(
        None, help="Endpoint name (default: the checkout's bound endpoint)"
    ),
):
    """List the projects on a Gerrit server."""
    with _handle_errors():
        descriptor = _named_or_bound(_make_resolver(), name, _branch(ctx))
        for project in create_gerrit_service(descriptor).get_projects():
            console.print(project)


@app.command(
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True}
)
def ssh(
    ctx: typer.Context,
    args: List[str] = typer.Argument(..., help="Arguments for the gerrit command"),
    name: Optional[str] = typer.Option(
        None, "--gerrit", "-g", help="Endpoint name (default: the bound endpoint)"
    ),
):
    """Run an arbitrary 'gerrit' command on the server."""
    with _handle_errors():
        descriptor = _named_or_bound(_make_resolver(), name, _branch(ctx))
        create_gerrit_service(descriptor).run_raw(args)


# ----------------------------------------------------------------------
# Change workflow
# ----------------------------------------------------------------------


def _push_refspec(
    target: str, draft: bool, topic: Optional[str], reviewers: List[str]
) -> str:
    namespace = "drafts" if draft else "for"
    refspec = f"HEAD:refs/{namespace}/{target}"
    options = []
    if topic:
        options.append(f"topic={topic}")
    options.extend(f"r={reviewer}" for reviewer in reviewers)
    if options:
        refspec += "%" + ",".join(options)
    return refspec


@app.command()
def push(
    ctx: typer.Context,
    target: Optional[str] = typer.Argument(
        None, help="Target branch on the server (default: --branch)"
    ),
    draft: bool = typer.Option(False, "--draft", help="Push as a draft change"),
    topic: Optional[str] = typer.Option(None, "--topic", "-t", help="Change topic"),
    reviewers: Optional[List[str]] = typer.Option(
        None, "--reviewer", "-r", help="Reviewer to add (repeatable)"
    ),
):
    """Push HEAD for review."""
    with _handle_errors():
        branch = _branch(ctx)
        resolver = _make_resolver()
        remote = resolver.upstream_remote(branch)
        reviewers = reviewers or []

        refspec = _push_refspec(target or branch, draft, topic, reviewers)
        console.print(f"Pushing to {remote} {refspec}")
        git.push(remote, refspec)
        resolver.remember_reviewers(reviewers)


def _display_change(change: ChangeInfo, patchset: Optional[int] = None) -> None:
    """Display change information in a formatted table."""
    if patchset is None:
        shown = change.current_patch_set
    else:
        shown = change.patch_set(patchset)
        if shown is None:
            raise ChangeNotFound(f"{change.number},{patchset}")

    table = Table(title=f"Change {change.number}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Project", change.project)
    table.add_row("Branch", change.branch)
    table.add_row("Subject", change.subject)
    table.add_row("Owner", change.owner.display_name)
    table.add_row("Status", change.status)
    if change.topic:
        table.add_row("Topic", change.topic)
    table.add_row("Change-Id", change.change_id)
    if shown is not None:
        table.add_row("Patch Set", str(shown.number))
        table.add_row("Ref", shown.ref)
        table.add_row("Revision", shown.revision)
        if shown is change.current_patch_set:
            table.add_row("Votes", change.approvals_summary or "-")
    table.add_row("URL", change.url)

    console.print(table)


@app.command()
def changes(
    ctx: typer.Context,
    include_closed: bool = typer.Option(
        False, "--all", "-a", help="Include merged and abandoned changes"
    ),
    owner: Optional[str] = typer.Option(None, "--owner", help="Only changes by OWNER"),
    output_format: str = typer.Option(
        "table", "--format", help="Output format: table, json, text"
    ),
):
    """List the changes of the current project."""
    if output_format not in ("table", "json", "text"):
        raise typer.BadParameter(
            f"unknown format {output_format!r}", param_hint="--format"
        )
    with _handle_errors():
        service = _repository_service(ctx)
        if output_format == "text":
            for block in service.get_change_blocks(
                include_closed=include_closed, owner=owner
            ):
                console.print(
                    f"{block.get('number', '?')}  {block.get('subject', '')}"
                )
            return

        found = service.get_open_changes(include_closed=include_closed, owner=owner)
        if output_format == "json":
            for change in found:
                console.print(change.model_dump_json(), soft_wrap=True)
            return

        if not found:
            console.print(f"No changes in {service.project}")
            return

        table = Table(title=f"Changes: {service.project}")
        table.add_column("Change", style="cyan")
        table.add_column("Subject", style="white", max_width=50)
        table.add_column("Owner", style="yellow")
        table.add_column("Branch", style="white")
        table.add_column("Status", style="green")
        table.add_column("Votes", style="blue")
        for change in found:
            table.add_row(
                str(change.number),
                change.subject,
                change.owner.display_name,
                change.branch,
                change.status,
                change.approvals_summary,
            )
        console.print(table)


@app.command()
def show(
    ctx: typer.Context,
    change: str = typer.Argument(..., help="CHANGE or CHANGE,PATCHSET"),
):
    """Show a change of the current project, or one of its patch sets."""
    with _handle_errors():
        number, patchset = parse_change_spec(change)
        _display_change(
            _repository_service(ctx).get_change_info(number), patchset
        )


@app.command()
def checkout(
    ctx: typer.Context,
    change: str = typer.Argument(..., help="CHANGE or CHANGE,PATCHSET"),
):
    """Fetch a patch set and check it out on a local branch."""
    with _handle_errors():
        number, patchset = parse_change_spec(change)
        resolver = _make_resolver()
        branch = _branch(ctx)
        descriptor = resolver.resolve_repository(branch)
        require_project(descriptor)
        if patchset is None:
            patchset = create_gerrit_service(descriptor).get_current_patchset(number)

        ref = change_ref(number, patchset)
        local_branch = review_branch(number, patchset)
        git.fetch(resolver.upstream_remote(branch), ref)
        git.checkout_new_branch(local_branch)
        console.print(f"Checked out {ref} as {local_branch}")


@app.command()
def review(
    ctx: typer.Context,
    change: str = typer.Argument(..., help="CHANGE or CHANGE,PATCHSET"),
    code_review: Optional[int] = typer.Option(
        None, "--code-review", "-c", min=-2, max=2, help="Code-Review vote"
    ),
    verified: Optional[int] = typer.Option(
        None, "--verified", "-V", min=-1, max=1, help="Verified vote"
    ),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Comment"),
    submit: bool = typer.Option(False, "--submit", help="Submit the patch set"),
    abandon: bool = typer.Option(False, "--abandon", help="Abandon the change"),
    restore: bool = typer.Option(False, "--restore", help="Restore the change"),
):
    """Vote on, comment on, submit, abandon or restore a patch set."""
    with _handle_errors():
        number, patchset = parse_change_spec(change)
        service = _repository_service(ctx)
        if patchset is None:
            patchset = service.get_current_patchset(number)
        try:
            service.review(
                number,
                patchset,
                code_review=code_review,
                verified=verified,
                message=message,
                submit=submit,
                abandon=abandon,
                restore=restore,
            )
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        console.print(f"Reviewed {number},{patchset}")


@app.command()
def assign(
    ctx: typer.Context,
    change: str = typer.Argument(..., help="Change number"),
    reviewers: List[str] = typer.Argument(..., help="Reviewer usernames"),
):
    """Add reviewers to a change and remember them."""
    with _handle_errors():
        number, _ = parse_change_spec(change)
        resolver = _make_resolver()
        descriptor = resolver.resolve_repository(_branch(ctx))
        require_project(descriptor)

        create_gerrit_service(descriptor).add_reviewers(number, reviewers)
        resolver.remember_reviewers(reviewers)
        console.print(f"Added {', '.join(reviewers)} to change {number}")


@app.command(name="reviewers")
def list_reviewers():
    """List previously assigned reviewers."""
    with _handle_errors():
        for reviewer in _make_resolver().remembered_reviewers():
            console.print(reviewer)


if __name__ == "__main__":
    app()
