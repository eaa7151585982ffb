"""Main CLI interface for Gitty."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from gitty import __version__
from gitty.config import get_settings
from gitty.core.diff_parser import render_hunks
from gitty.core.errors import GittyError
from gitty.core.refactor import RefactorPlanner
from gitty.core.rewrite_engine import HistoryRewriteEngine
from gitty.core.session import Workspace
from gitty.core.settings_store import SettingsStore
from gitty.models import Conflict, Err, Ok

console = Console()


def configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def open_workspace_or_exit(repo_path: str) -> Workspace:
    """Open the repository at ``repo_path`` or exit with an error message."""
    workspace = Workspace()
    try:
        workspace.open(repo_path)
    except GittyError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e
    return workspace


def exit_on_error(result) -> None:
    if isinstance(result, Err):
        console.print(f"[red]Error ({result.kind.value}): {result.message}[/red]")
        sys.exit(1)


@click.group()
@click.version_option(__version__)
@click.option("-v", "--verbose", count=True, help="Increase log output (-vv for debug)")
@click.option(
    "--repo",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Path to the repository",
)
@click.pass_context
def main(ctx: click.Context, verbose: int, repo: str):
    """Gitty - Visually rewrite Git history."""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["repo"] = repo


@main.command()
@click.option("--host", default=None, help="Interface to bind (default from GITTY_HOST)")
@click.option("--port", default=None, type=int, help="Port to bind (default from GITTY_PORT)")
def serve(host: Optional[str], port: Optional[int]):
    """Run the HTTP API used by the desktop front end."""
    import uvicorn

    from gitty.api import create_app

    settings = get_settings()
    uvicorn.run(create_app(settings), host=host or settings.host, port=port or settings.port)


@main.command()
@click.pass_context
def info(ctx: click.Context):
    """Show the current branch, remotes and working tree state."""
    repository = open_workspace_or_exit(ctx.obj["repo"]).repository
    repo_info = repository.info()

    console.print(f"[bold]Repository:[/bold] {repo_info.path}")
    branch = "(detached HEAD)" if repo_info.is_detached else repo_info.current_branch
    console.print(f"[bold]Branch:[/bold] {branch}")
    for remote in repo_info.remotes:
        console.print(f"[bold]Remote:[/bold] {remote.name} {remote.fetch_url}")
    state = "[yellow]dirty[/yellow]" if repo_info.has_uncommitted_changes else "[green]clean[/green]"
    console.print(f"[bold]Working tree:[/bold] {state}")
    if repository.rebase_in_progress():
        console.print("[yellow]A rebase is in progress; finish or abort it before rewriting.[/yellow]")


@main.command()
@click.option("--limit", default=None, type=int, help="Number of commits to show")
@click.pass_context
def log(ctx: click.Context, limit: Optional[int]):
    """Show commit history, newest first."""
    repository = open_workspace_or_exit(ctx.obj["repo"]).repository
    commits = repository.history(limit or get_settings().history_limit)

    table = Table(title="History")
    table.add_column("Hash", style="cyan", no_wrap=True)
    table.add_column("Date", style="magenta")
    table.add_column("Author", style="green")
    table.add_column("Message")
    table.add_column("Refs", style="yellow")
    for commit in commits:
        table.add_row(
            commit.abbreviated_hash,
            commit.date.strftime("%Y-%m-%d %H:%M"),
            commit.author_name,
            commit.message.splitlines()[0] if commit.message else "",
            ", ".join(commit.refs),
        )
    console.print(table)


@main.command()
@click.argument("commit_hash")
@click.pass_context
def files(ctx: click.Context, commit_hash: str):
    """List the files changed by COMMIT_HASH."""
    repository = open_workspace_or_exit(ctx.obj["repo"]).repository
    try:
        changes = repository.commit_files(commit_hash)
    except GittyError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e

    for change in changes:
        rename = f" (from {change.old_path})" if change.old_path else ""
        console.print(
            f"[cyan]{change.status.value:>8}[/cyan] {change.filepath}{rename} "
            f"[green]+{change.insertions}[/green] [red]-{change.deletions}[/red]"
        )


@main.command()
@click.argument("commit_hash")
@click.argument("filepath")
@click.pass_context
def diff(ctx: click.Context, commit_hash: str, filepath: str):
    """Show the hunks COMMIT_HASH introduced in FILEPATH."""
    repository = open_workspace_or_exit(ctx.obj["repo"]).repository
    try:
        result = repository.file_diff(commit_hash, filepath)
    except GittyError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e

    if not result.hunks:
        console.print("[yellow]No changes[/yellow]")
        return
    syntax = Syntax(render_hunks(result.hunks), "diff", theme="monokai", word_wrap=True)
    console.print(Panel(syntax, title=filepath, border_style="blue", padding=(0, 1)))


@main.command()
@click.argument("filepath")
@click.argument("target_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def plan(ctx: click.Context, filepath: str, target_file: str):
    """Propose commits that take FILEPATH to the content of TARGET_FILE."""
    workspace = open_workspace_or_exit(ctx.obj["repo"])
    settings = get_settings()
    planner = RefactorPlanner(settings, SettingsStore(settings.data_dir))
    try:
        target_content = Path(target_file).read_text(encoding="utf-8")
        refactor_plan = planner.analyze(filepath, target_content, repository=workspace.repository)
    finally:
        planner.close()

    for index, step in enumerate(refactor_plan.commits, start=1):
        console.print(f"[bold]{index}.[/bold] {step.message} [dim]({step.id})[/dim]")


def _resolve_conflicts(engine: HistoryRewriteEngine, result: Conflict, strategy: str):
    """Resolve every halted step with ``strategy`` until the rebase ends."""
    while isinstance(result, Conflict):
        paths = ", ".join(entry.filepath for entry in result.conflicts)
        console.print(f"[yellow]Conflicts in: {paths}[/yellow]")
        if strategy == "abort":
            return engine.abort()

        resolver = engine.resolver
        for entry in result.conflicts:
            if strategy == "ours":
                resolver.use_ours(entry.filepath)
            else:
                resolver.use_theirs(entry.filepath)
        console.print(f"[blue]Resolved {len(result.conflicts)} file(s) with {strategy}[/blue]")
        result = resolver.submit()
    return result


@main.command()
@click.argument("commit_hash")
@click.argument("filepath")
@click.option(
    "--content-from",
    "content_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="File whose content replaces FILEPATH in the commit",
)
@click.option("--message", "-m", default=None, help="New commit message")
@click.option(
    "--on-conflict",
    type=click.Choice(["abort", "ours", "theirs"]),
    default="abort",
    help="How to resolve conflicts while replaying later commits",
)
@click.option("--push", "remote", default=None, help="Force push the rewritten branch to this remote")
@click.option("--yes", is_flag=True, help="Do not ask before force pushing")
@click.pass_context
def rewrite(ctx: click.Context, commit_hash: str, filepath: str, content_file: str,
            message: Optional[str], on_conflict: str, remote: Optional[str], yes: bool):
    """Replace FILEPATH in COMMIT_HASH and replay the later commits."""
    workspace = open_workspace_or_exit(ctx.obj["repo"])
    engine = HistoryRewriteEngine(workspace)
    content = Path(content_file).read_text(encoding="utf-8")

    started = engine.start_edit(commit_hash)
    exit_on_error(started)
    branch = started.data["original_branch"]
    console.print(f"[blue]{started.message} (from {branch})[/blue]")

    saved = engine.save_amend(filepath, content, message)
    if isinstance(saved, Err):
        engine.cancel()
        exit_on_error(saved)
    console.print(f"[blue]Amended as {saved.data['new_hash'][:7]}[/blue]")

    result = engine.rebase()
    if isinstance(result, Conflict):
        result = _resolve_conflicts(engine, result, on_conflict)
        if isinstance(result, Ok) and on_conflict == "abort":
            console.print(f"[yellow]Rewrite aborted, {branch} is unchanged[/yellow]")
            sys.exit(1)
    exit_on_error(result)

    console.print(f"[green]✅ {branch} rewritten, now at {result.data['new_head'][:7]}[/green]")
    engine.finish()

    if remote:
        if not yes and not click.confirm(f"Force push {branch} to {remote}?", default=False):
            console.print("[yellow]Push skipped[/yellow]")
            return
        pushed = engine.force_push(remote, branch, confirmed=True)
        exit_on_error(pushed)
        console.print(f"[green]{pushed.message}[/green]")


@main.group()
def settings():
    """Read and write stored settings."""


@settings.command("get")
@click.argument("key", required=False)
def settings_get(key: Optional[str]):
    """Show KEY, or every stored setting."""
    store = SettingsStore(get_settings().data_dir)
    if key is None:
        for name, value in sorted(store.get_all().items()):
            console.print(f"{name}={value}")
        return
    value = store.get(key)
    if value is None:
        console.print(f"[yellow]{key} is not set[/yellow]")
        sys.exit(1)
    console.print(value)


@settings.command("set")
@click.argument("key")
@click.argument("value")
def settings_set(key: str, value: str):
    """Store VALUE under KEY."""
    SettingsStore(get_settings().data_dir).set(key, value)
    console.print(f"[green]Saved {key}[/green]")


if __name__ == "__main__":
    main()
