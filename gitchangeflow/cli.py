#!/usr/bin/env python3
import asyncio
import functools
import os
from pathlib import Path
from typing import List, Optional

import click
from git.exc import InvalidGitRepositoryError, NoSuchPathError
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import DEFAULT_CONFIG_FILENAME, Config
from .core import GitDomainService
from .errors import AppError, ErrorCode
from .logging_setup import configure_logging
from .models import ChangeGroup, InboundReport, Severity, SmartCommitPlan
from .observers import ConsoleLogObserver, FileLogObserver
from .provider import GitPythonProvider
from .result import Err

console = Console()

SEVERITY_STYLES = {
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "dim",
}

path_option = click.option(
    "-p",
    "--path",
    default=".",
    help="Path to git repository (defaults to current directory)",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)


def run_async(coro):
    """Run a coroutine to completion from synchronous click code."""
    return asyncio.run(coro)


def handle_errors(func):
    """Print unexpected errors in red and exit non-zero."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.Abort, click.ClickException):
            raise
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
        except Exception as e:
            console.print(f"[red]Error: {str(e)}[/red]")
            raise click.Abort()

    return wrapper


def fail(error: AppError) -> None:
    console.print(f"[red]Error: {error.message}[/red]")
    if error.details is not None:
        console.print(f"[dim]{error.details}[/dim]")
    raise click.Abort()


def load_config(ctx: click.Context, repo_path: Path) -> Config:
    """Load configuration and set up diagnostic logging from it."""
    config = Config.load(repo_path)
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    configure_logging("DEBUG" if verbose else config.log_level, Console(stderr=True))
    return config


def open_service(repo_path: Path, config: Config) -> GitDomainService:
    try:
        provider = GitPythonProvider(str(repo_path))
    except (InvalidGitRepositoryError, NoSuchPathError):
        console.print(f"[red]Error: {repo_path} is not a git repository[/red]")
        raise click.Abort()
    return GitDomainService(provider, config)


def print_config(repo_path: Path) -> None:
    config = Config.load(repo_path)
    config_path = repo_path / DEFAULT_CONFIG_FILENAME
    source = "config" if config_path.exists() else "default"

    console.print("\n[bold]Current Configuration Settings:[/bold]")
    if config_path.exists():
        console.print(f"[dim]Config file: {str(config_path).replace(os.sep, '/')}[/dim]")
    else:
        console.print("[dim]Using default values (no config file found)[/dim]")

    console.print(f"\n{'Setting':<22} {'Value':<20} {'Source':<10}")
    console.print("-" * 52)
    for name, value in config.model_dump().items():
        env_var = f"GITCHANGEFLOW_{name.upper()}"
        setting_source = "env" if env_var in os.environ else source
        console.print(f"{name:<22} {str(value):<20} {setting_source:<10}")

    console.print(
        f"\nTo modify these settings, create or edit {DEFAULT_CONFIG_FILENAME} in your repository root"
    )


def init_config(repo_path: Path) -> None:
    config_path = repo_path / DEFAULT_CONFIG_FILENAME
    if config_path.exists():
        console.print(f"[yellow]{DEFAULT_CONFIG_FILENAME} already exists; leaving it unchanged[/yellow]")
        return
    Config().save(repo_path)
    console.print(f"[green]Wrote default settings to {DEFAULT_CONFIG_FILENAME}[/green]")


def attach_log_observers(service: GitDomainService, config: Config, log_file: Optional[Path]) -> None:
    service.add_observer(ConsoleLogObserver(console))
    log_file_path = log_file or config.get_log_file()
    if log_file_path:
        service.add_observer(FileLogObserver(str(log_file_path)))


def print_group(group: ChangeGroup, warning: Optional[str] = None) -> None:
    console.print(f"\n[green]{group.suggested_message.full}[/green]")
    console.print(f"Files: {', '.join(group.paths)}")
    if len(group.files) > 1:
        console.print(f"[dim]Similarity: {group.similarity:.2f}[/dim]")
    if warning:
        console.print(f"[yellow]Warning: {warning}[/yellow]")


def print_plan(plan: SmartCommitPlan) -> None:
    console.print(
        f"[bold]{len(plan.changes)} changed file(s) in {len(plan.groups)} proposed commit(s)[/bold]"
    )
    for group in plan.groups:
        print_group(group, plan.warnings.get(group.id))


def confirm_groups(groups: List[ChangeGroup]) -> List[ChangeGroup]:
    """Ask about each proposed group and return the approved ones in order."""
    approved = []
    for group in groups:
        print_group(group)
        if click.confirm("Commit this group?", default=True):
            approved.append(group)
    return approved


def print_report(report: InboundReport) -> None:
    console.print(f"\n[bold]Inbound changes from {report.remote}/{report.branch}[/bold]")
    console.print(report.summary.description)
    console.print(
        f"[dim]{report.total_inbound} inbound, {report.total_local} local change(s)[/dim]"
    )

    if report.conflicts:
        table = Table(title="Potential conflicts")
        table.add_column("Path")
        table.add_column("Local")
        table.add_column("Remote")
        table.add_column("Severity")
        for conflict in report.conflicts:
            style = SEVERITY_STYLES[conflict.severity]
            table.add_row(
                conflict.path,
                conflict.local_status.name.lower(),
                conflict.remote_status.name.lower(),
                f"[{style}]{conflict.severity.value}[/{style}]",
            )
        console.print(table)

    if report.summary.file_types:
        types = ", ".join(f"{ext}: {count}" for ext, count in sorted(report.summary.file_types.items()))
        console.print(f"File types: {types}")

    console.print("\n[bold]Recommendations:[/bold]")
    for recommendation in report.summary.recommendations:
        console.print(recommendation)
    console.print(f"\n[blue]{report.diff_link}[/blue]")


@click.group(invoke_without_command=True)
@click.option(
    "--config-list", is_flag=True, help="Display current configuration settings"
)
@click.option(
    "--config-init", is_flag=True, help="Write a default .gitchangeflow.toml in the current directory"
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.version_option(__version__, prog_name="gitchangeflow")
@click.pass_context
def main(ctx: click.Context, config_list: bool, config_init: bool, verbose: bool):
    """
    Group working-tree changes into commits and check what a pull would bring in.

    Configuration can be set in .gitchangeflow.toml in the repository root.
    Command line options override configuration file settings.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    if config_init:
        init_config(Path(".").absolute())
        ctx.exit()

    if config_list:
        print_config(Path(".").absolute())
        ctx.exit()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@path_option
@click.option(
    "-d", "--dry-run", is_flag=True, help="Show proposed commits without making changes"
)
@click.option(
    "-y", "--yes", is_flag=True, help="Commit every group without asking (overrides config setting)"
)
@click.option(
    "-l",
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Optional file to log git operations (overrides config setting)",
)
@click.pass_context
@handle_errors
def commit(ctx: click.Context, path: Path, dry_run: bool, yes: bool, log_file: Optional[Path]):
    """Group current changes and commit each group."""
    repo_path = path.absolute()
    config = load_config(ctx, repo_path)
    if yes:
        config.auto_approve = True

    service = open_service(repo_path, config)

    if dry_run:
        plan_result = run_async(service.smart_commit.plan())
        if isinstance(plan_result, Err):
            if plan_result.error.code == ErrorCode.NO_CHANGES:
                console.print("[yellow]No changes to commit[/yellow]")
                return
            fail(plan_result.error)
        print_plan(plan_result.value)
        console.print("\n[yellow]Dry run: no commits were made[/yellow]")
        return

    attach_log_observers(service, config, log_file)
    result = run_async(
        service.smart_commit.run(auto_approve=config.auto_approve, approve=confirm_groups)
    )
    if isinstance(result, Err):
        if result.error.code == ErrorCode.NO_CHANGES:
            console.print("[yellow]No changes to commit[/yellow]")
            return
        fail(result.error)

    summary = result.value
    console.print(
        f"\n[bold green]Created {len(summary.commits)} commit(s) from "
        f"{summary.total_files} file(s) in {summary.duration_ms:.0f}ms[/bold green]"
    )


@main.command()
@path_option
@click.option("-r", "--remote", help="Remote to analyze (overrides config setting)")
@click.option(
    "-l",
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Optional file to log git operations (overrides config setting)",
)
@click.pass_context
@handle_errors
def inbound(ctx: click.Context, path: Path, remote: Optional[str], log_file: Optional[Path]):
    """Fetch the remote and report conflicts a pull would cause."""
    repo_path = path.absolute()
    config = load_config(ctx, repo_path)
    if remote is not None:
        config.remote_name = remote

    service = open_service(repo_path, config)
    attach_log_observers(service, config, log_file)
    result = run_async(service.inbound_analyzer.analyze())
    if isinstance(result, Err):
        fail(result.error)
    print_report(result.value)


@main.command()
@path_option
@click.pass_context
@handle_errors
def status(ctx: click.Context, path: Path):
    """Check that git is usable and show the repository status."""
    repo_path = path.absolute()
    config = load_config(ctx, repo_path)

    service = open_service(repo_path, config)
    result = run_async(service.initialize())
    if isinstance(result, Err):
        fail(result.error)

    git_status = result.value
    state = "[yellow]dirty[/yellow]" if git_status.is_dirty else "[green]clean[/green]"
    console.print(f"On branch [bold]{git_status.branch}[/bold] ({state})")
    console.print(
        f"Staged: {git_status.staged}  Unstaged: {git_status.unstaged}  "
        f"Untracked: {git_status.untracked}"
    )


@main.command()
@path_option
@click.option("-r", "--remote", help="Remote to pull from (overrides config setting)")
@click.option("-b", "--branch", help="Remote branch to pull (defaults to the current branch)")
@click.pass_context
@handle_errors
def pull(ctx: click.Context, path: Path, remote: Optional[str], branch: Optional[str]):
    """Pull the remote into the current branch."""
    repo_path = path.absolute()
    config = load_config(ctx, repo_path)
    if remote is not None:
        config.remote_name = remote

    service = open_service(repo_path, config)
    result = run_async(service.pull(branch))
    if isinstance(result, Err):
        fail(result.error)

    console.print(f"[bold]{result.value.branch}[/bold]: {result.value.message}")


@main.command("commit-staged")
@path_option
@click.option("-m", "--message", required=True, help="Commit message")
@click.pass_context
@handle_errors
def commit_staged(ctx: click.Context, path: Path, message: str):
    """Commit the staged changes as they are, with the given message."""
    repo_path = path.absolute()
    config = load_config(ctx, repo_path)

    service = open_service(repo_path, config)
    result = run_async(service.commit(message))
    if isinstance(result, Err):
        fail(result.error)

    console.print(f"[green]Created commit {result.value[:8]}[/green]")


if __name__ == "__main__":
    main()
