"""Command line interface for twig."""

import logging
import re
from pathlib import Path
from re import Pattern
from typing import Annotated, Optional

import typer
from rich import print
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from twig.git import GitError, GitRepo
from twig.report import EMPTY_PROPERTY, BranchReport

app = typer.Typer(help="List git branches by last commit and manage branch properties", no_args_is_help=True)
console = Console()
logger = logging.getLogger(__name__)

PathOption = Annotated[Path, typer.Option(help="Path to git repository")]
BranchOption = Annotated[Optional[str], typer.Option("--branch", "-b", help="Branch to use instead of the current one")]
PropertyArgument = Annotated[str, typer.Argument(help="Branch property name")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    """List git branches by last commit and manage branch properties."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def compile_pattern(value: Optional[str], option: str) -> Optional[Pattern[str]]:
    """Compile a branch name pattern given on the command line."""
    if value is None:
        return None
    try:
        return re.compile(value)
    except re.error as err:
        raise typer.BadParameter(f"Invalid regular expression: {err}", param_hint=option) from err


def get_repo(path: Path, name_only: Optional[Pattern[str]] = None, name_except: Optional[Pattern[str]] = None) -> GitRepo:
    """Get git repository instance."""
    try:
        return GitRepo(path, name_only=name_only, name_except=name_except)
    except GitError as err:
        print(f"[red]Error:[/red] {escape(str(err))}")
        raise typer.Exit(code=1) from err


def resolve_branch(repo: GitRepo, branch: Optional[str]) -> str:
    """Get the branch to work on, defaulting to the current branch."""
    if branch:
        return branch
    current = repo.get_current_branch_name()
    if not current:
        print("[red]Error:[/red] Not on a branch, use --branch to pick one")
        raise typer.Exit(code=1)
    return current


def create_branch_table(report: BranchReport) -> Table:
    """Create a table with one row per branch in the report."""
    table = Table(
        show_header=True,
        header_style="bold",
        show_edge=True,
    )
    table.add_column("Last Commit", style="yellow", no_wrap=True)
    for column in report.columns:
        table.add_column(escape(column), style="magenta", no_wrap=True)
    table.add_column("Branch", style="cyan", no_wrap=True)

    for branch in report.branches:
        display_name = escape(branch.name)
        if branch.name == report.current_branch:
            display_name = f"{display_name} [turquoise2](current)[/turquoise2]"
        values = [escape(branch.get_property(column)) or f"[dim]{EMPTY_PROPERTY}[/dim]" for column in report.columns]
        table.add_row(str(branch.last_commit_time), *values, display_name)
    return table


@app.command("list")
def list_branches(
    path: PathOption = Path("."),
    max_days_old: Annotated[
        Optional[int],
        typer.Option(min=0, envvar="TWIG_MAX_DAYS_OLD", help="Only list branches committed to in the last N days"),
    ] = None,
    only_name: Annotated[
        Optional[str],
        typer.Option(envvar="TWIG_ONLY_NAME", help="Only list branches matching this regular expression"),
    ] = None,
    except_name: Annotated[
        Optional[str],
        typer.Option(envvar="TWIG_EXCEPT_NAME", help="Skip branches matching this regular expression"),
    ] = None,
    plain: Annotated[bool, typer.Option("--plain", help="Print plain text instead of a table")] = False,
) -> None:
    """List branches, most recently committed first."""
    repo = get_repo(
        path,
        name_only=compile_pattern(only_name, "--only-name"),
        name_except=compile_pattern(except_name, "--except-name"),
    )

    try:
        report = repo.build_report(max_days_old=max_days_old)
    except GitError as err:
        print(f"[red]Error:[/red] {escape(str(err))}")
        raise typer.Exit(code=1) from err

    if plain:
        typer.echo(report.render())
        return

    if not report.branches:
        console.print(
            Panel(
                "[yellow]No branches to list[/yellow]",
                style="yellow",
                padding=(0, 2),
                expand=False,
            )
        )
        return

    logger.debug("Listing %d branch(es)", len(report.branches))
    console.print(create_branch_table(report))


@app.command()
def get(property_name: PropertyArgument, branch: BranchOption = None, path: PathOption = Path(".")) -> None:
    """Print a branch property."""
    repo = get_repo(path)
    branch_name = resolve_branch(repo, branch)

    try:
        value = repo.get_branch_property(branch_name, property_name)
    except GitError as err:
        print(f"[red]Error:[/red] {escape(str(err))}")
        raise typer.Exit(code=1) from err

    if not value:
        print(f'[yellow]There is no property "{escape(property_name)}" for branch "{escape(branch_name)}".[/yellow]')
        raise typer.Exit(code=1)
    typer.echo(value)


@app.command("set")
def set_property(
    property_name: PropertyArgument,
    value: Annotated[str, typer.Argument(help="New value, an empty value removes the property")],
    branch: BranchOption = None,
    path: PathOption = Path("."),
) -> None:
    """Set a branch property."""
    repo = get_repo(path)
    branch_name = resolve_branch(repo, branch)

    try:
        change = repo.set_branch_property(branch_name, property_name, value)
    except GitError as err:
        print(f"[red]Error:[/red] {escape(str(err))}")
        raise typer.Exit(code=1) from err

    if change.rejected:
        print(f"[red]{escape(change.message)}[/red]")
        raise typer.Exit(code=1)
    print(f"[green]{escape(change.message)}[/green]")


@app.command()
def unset(property_name: PropertyArgument, branch: BranchOption = None, path: PathOption = Path(".")) -> None:
    """Remove a branch property."""
    repo = get_repo(path)
    branch_name = resolve_branch(repo, branch)

    try:
        change = repo.unset_branch_property(branch_name, property_name)
    except GitError as err:
        print(f"[red]Error:[/red] {escape(str(err))}")
        raise typer.Exit(code=1) from err

    if change.rejected:
        print(f"[red]{escape(change.message)}[/red]")
        raise typer.Exit(code=1)
    print(f"[green]{escape(change.message)}[/green]")


if __name__ == "__main__":
    app()
