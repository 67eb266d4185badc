"""CLI interface for the pymirror daemon."""

import logging
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from .config import DEFAULT_CONFIG_FILE, MirrorConfig, load_config
from .exceptions import ConfigError, ConnectError, MirrorError
from .store import connect_store
from .sync import (
    MirrorEngine,
    SnapshotStateManager,
    build_snapshot,
    flatten_deleted,
)
from .sync.snapshot import count_files

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    """Configure logging; pymirror modules log at INFO, or DEBUG when verbose."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("pymirror").setLevel(logging.DEBUG if verbose else logging.INFO)


def _load_config(ctx: Any) -> MirrorConfig:
    try:
        return load_config(ctx.obj["config_path"])
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    envvar="PYMIRROR_CONFIG",
    help="Path to the JSON configuration file",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pymirror")
@click.pass_context
def main(ctx: Any, config_path: Path, verbose: bool) -> None:
    """pymirror - Mirror a local directory across intermittent FTP servers."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


@main.command()
@click.option("--once", is_flag=True, help="Run a single cycle and exit")
@click.pass_context
def run(ctx: Any, once: bool) -> None:
    """Run the mirror daemon.

    Polls every configured server on a fixed interval and reconciles the
    local tree whenever a server comes back online.
    """
    config = _load_config(ctx)
    engine = MirrorEngine(config)

    if once:
        try:
            engine.run_cycle()
        except MirrorError as e:
            logger.error(f"Cycle failed: {e}")
            ctx.exit(1)
        return

    try:
        engine.run_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


@main.command()
@click.option("--reset", is_flag=True, help="Remove the persisted snapshot state")
@click.pass_context
def status(ctx: Any, reset: bool) -> None:
    """Show the persisted snapshot state.

    Lists how many files are tracked and which paths are remembered as
    deleted. With --reset the state is removed instead, so the next sync
    treats every local file as new and propagates no deletions.
    """
    config = _load_config(ctx)
    manager = SnapshotStateManager(config.db)
    console = Console()

    try:
        if reset:
            if manager.clear_state():
                console.print(f"Removed snapshot state at {config.db}")
            else:
                console.print(f"No snapshot state at {config.db}")
            return

        if config.local.is_dir():
            local_files = count_files(build_snapshot(config.local))
            console.print(f"Local files: {local_files}")
        else:
            console.print(f"Local directory {config.local} does not exist yet")
    except MirrorError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if not config.db.exists():
        console.print(f"No snapshot state at {config.db}")
        return

    try:
        snapshot = manager.read_state()
    except MirrorError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    deleted = flatten_deleted(snapshot)
    console.print(f"State file: {config.db}")
    console.print(f"Tracked files: {count_files(snapshot)}")
    console.print(f"Deleted paths: {len(deleted)}")

    if deleted:
        table = Table("Deleted path")
        for path in deleted:
            table.add_row(path)
        console.print(table)


@main.command()
@click.pass_context
def check(ctx: Any) -> None:
    """Check which configured servers are reachable."""
    config = _load_config(ctx)
    console = Console()

    table = Table("Server", "Folder", "Status")
    any_online = False
    for server in config.servers:
        try:
            store = connect_store(server, config.timeout)
        except ConnectError as e:
            logger.debug(f"Connect to {server.address} failed: {e}")
            table.add_row(server.address, server.remote_root, "[red]offline[/red]")
            continue
        any_online = True
        store.close()
        table.add_row(server.address, server.remote_root, "[green]online[/green]")

    console.print(table)
    if not any_online:
        ctx.exit(1)


if __name__ == "__main__":
    main()
