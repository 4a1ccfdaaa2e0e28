"""
CLI entry point for fork_syncer.

Provides command-line interface for mirroring repository pairs.
"""

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import DEFAULT_CONFIG_PATH, SyncConfig, create_default_config
from .errors import ConfigError, ForkSyncerError, MissingExecutable
from .executables import check_required
from .syncer import PairSyncer, SyncOptions, SyncRun, default_commit_message

console = Console()


def load_config(config_path: Path) -> SyncConfig:
    """Load the config file, exiting with a message if it can't be used."""
    try:
        return SyncConfig.from_yaml(config_path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config_path}[/red]")
        console.print("Run 'fork-syncer init' to create a configuration file.")
        raise SystemExit(1)
    except ConfigError as e:
        console.print(f"[red]Error loading config: {escape(str(e))}[/red]")
        raise SystemExit(1)


config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    help="Path to the sync configuration file",
)


@click.group()
@click.version_option(package_name="fork_syncer")
def cli():
    """Fork Syncer - Mirror private repositories into public forks."""
    pass


@cli.command()
@click.option("--source", "-s", help="Source repo path (ex: github.com/org/private-repo)")
@click.option("--dest", "-d", help="Destination repo path (ex: github.com/org/public-repo)")
@click.option("--name", "-n", help="Name of the pair (defaults to the source repo name)")
@click.option("--source-ref", default="master", show_default=True, help="Source tree to sync from")
@click.option("--dest-ref", default="master", show_default=True, help="Destination branch to sync to")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    help="Output config file path",
)
def init(
    source: str | None,
    dest: str | None,
    name: str | None,
    source_ref: str,
    dest_ref: str,
    output: Path,
):
    """Initialize a new sync configuration file."""
    if bool(source) != bool(dest):
        raise click.UsageError("--source and --dest must be given together")

    config = create_default_config(
        source=source,
        dest=dest,
        name=name,
        source_ref=source_ref,
        dest_ref=dest_ref,
    )
    config.to_yaml(output)
    console.print(f"[green]Created configuration file: {output}[/green]")
    for pair in config.pairs:
        console.print(f"  Pair {pair.name}: {pair}")
    console.print("\nEdit this file to add more pairs and their dependencies.")


@cli.command(name="list")
@config_option
def list_pairs(config_path: Path):
    """List configured repository pairs."""
    config = load_config(config_path)

    if not config.pairs:
        console.print("[yellow]No pairs configured.[/yellow]")
        return

    table = Table(title="Repository Pairs")
    table.add_column("Name", style="cyan")
    table.add_column("Source", style="green")
    table.add_column("Destination", style="yellow")
    table.add_column("Depends on", style="white")

    for pair in config.pairs:
        table.add_row(
            pair.name,
            escape(f"{pair.source.path} @ {pair.source_ref}"),
            escape(f"{pair.dest.path} @ {pair.dest_ref}"),
            ", ".join(pair.depends_on) or "-",
        )

    console.print(table)


@cli.command()
@config_option
@click.argument("names", nargs=-1)
@click.option("--all", "sync_all", is_flag=True, help="Sync all pairs")
@click.option("--keep", "-k", "keep_staging", is_flag=True, help="Keep staging area after completed")
@click.option(
    "--yes",
    "-y",
    "skip_confirm",
    is_flag=True,
    help="Skip confirmation before git commit & push of synced repo contents",
)
@click.option("--nodep", "skip_deps", is_flag=True, help="Skip processing of pair dependencies")
@click.option("--message", "-m", default=None, help="Commit message to use")
@click.option("--email", "-e", default=None, help="Email address to use for commit")
@click.option("--https", "use_https", is_flag=True, help="Clone over https instead of ssh")
def sync(
    config_path: Path,
    names: tuple[str, ...],
    sync_all: bool,
    keep_staging: bool,
    skip_confirm: bool,
    skip_deps: bool,
    message: str | None,
    email: str | None,
    use_https: bool,
):
    """Sync the named repository pairs (or --all)."""
    config = load_config(config_path)

    if sync_all:
        names = tuple(config.pair_names())
    if not names:
        raise click.UsageError(
            "Need to specify one or more pairs to sync "
            f"({', '.join(config.pair_names()) or 'none configured'}), or --all for all pairs"
        )

    try:
        pairs = [config.get_pair(name) for name in names]
    except ConfigError as e:
        raise click.UsageError(str(e))

    try:
        check_required()
    except MissingExecutable as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(1)

    if use_https:
        config.use_https = True

    run = SyncRun(
        options=SyncOptions(
            keep_staging=keep_staging,
            skip_confirm=skip_confirm,
            skip_deps=skip_deps,
            commit_message=message or default_commit_message(),
            committer_email=email,
        )
    )
    syncer = PairSyncer(config, run)

    for pair in pairs:
        console.print(f"\n[bold]Syncing {pair}[/bold]")
        try:
            syncer.sync(pair)
        except ForkSyncerError as e:
            console.print(f"[red]Failed to sync {pair}:[/red]")
            console.print(escape(str(e)))
            raise SystemExit(1)

    console.print(f"\n[green]Synced {len(run.synced)} pair(s).[/green]")


if __name__ == "__main__":
    cli()
