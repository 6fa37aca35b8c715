"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from treesync import __version__
from treesync.api import ContentAPIClient, UserSession
from treesync.core import SynchronizationService
from treesync.exceptions import TreeSyncError
from treesync.models import ContentNode, SyncConfig, User
from treesync.storage import ConfigManager, Database, ObjectStore, OfflineDiskUsage
from treesync.transfer import Downloader, close_connection_pool
from treesync.utils.events import EventBus

from .formatters import (
    print_config,
    print_nodes_table,
    print_status_panel,
    print_sync_summary,
    print_validation_table,
)
from .status_bar import StatusBar

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("treesync")

app = typer.Typer(
    name="treesync",
    help=(
        "Keeps favorite branches of a remote content tree available offline."
        " Use 'treesync <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "treesync"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"
DATABASE_FILE = CONFIG_DIR / "treesync.sqlite"


@dataclass
class Runtime:
    """Everything a command needs to talk to the service and the local store."""

    config: SyncConfig
    service: SynchronizationService
    store: ObjectStore
    users: UserSession
    disk_usage: OfflineDiskUsage
    status_bar: StatusBar
    events: EventBus

    async def current_user(self) -> User:
        return await self.users.current_user()

    async def find_node(self, ref_id: str) -> ContentNode:
        node = await self.store.find(await self.current_user(), ref_id)
        if node is None:
            console.print(
                f"[red]✗ Unknown node '{ref_id}'.[/] Browse to it with "
                "[cyan]treesync browse[/cyan] first."
            )
            raise typer.Exit(code=1)
        return node


@asynccontextmanager
async def open_runtime(show_status: bool = True) -> AsyncIterator[Runtime]:
    """Loads the configuration and wires the synchronization service."""
    config = ConfigManager(CONFIG_FILE).load_config()
    offline_dir = Path(config.offline_dir).expanduser()
    db = Database(DATABASE_FILE)
    store = ObjectStore(db, offline_dir)
    api_client = ContentAPIClient(
        config.base_url, config.token, store, max_workers=config.max_workers
    )
    users = UserSession(config, api_client)
    disk_usage = OfflineDiskUsage(offline_dir)
    status_bar = StatusBar(console, enabled=show_status)
    events = EventBus()
    service = SynchronizationService(
        catalog=api_client,
        users=users,
        transport=Downloader(
            offline_dir, api_client, store, users, max_workers=config.max_workers
        ),
        disk_usage=disk_usage,
        favorites=store,
        db=db,
        status=status_bar,
        events=events,
        max_workers=config.max_workers,
        language=config.language,
    )
    try:
        async with status_bar:
            yield Runtime(config, service, store, users, disk_usage, status_bar, events)
    finally:
        await close_connection_pool()
        await api_client.close()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """treesync offline synchronizer"""
    if version:
        console.print(f"[bold]treesync[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("treesync").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]treesync init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        config_manager.load_config()
        print_config(CONFIG_FILE, config_manager.get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    base_url: str = typer.Argument(..., help="Root URL of the content API."),
    token: str = typer.Argument(..., help="Personal access token."),
    user_id: int = typer.Argument(..., help="Your user ID on the service."),
    user_name: str = typer.Option("", "--name", help="Display name."),
    quota_size_mb: int = typer.Option(
        1000, "--quota", help="Total space for offline files, in MB."
    ),
    download_size_mb: int = typer.Option(
        50, "--max-file-size", help="Largest file that is downloaded, in MB."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Create the configuration file."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    config_manager = ConfigManager(CONFIG_FILE)
    config_manager.save_new_config(
        {
            "base_url": base_url,
            "token": token,
            "user_id": user_id,
            "user_name": user_name,
            "quota_size_mb": quota_size_mb,
            "download_size_mb": download_size_mb,
        }
    )
    try:
        config_manager.load_config()
    except TreeSyncError as e:
        console.print(f"[red]✗ The configuration is not valid: {e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready! Try: [cyan]treesync browse[/cyan]")


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        print_validation_table(config)
    except TreeSyncError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def browse(
    ref_id: Optional[str] = typer.Argument(
        None, help="Node to open. Shows the desktop when omitted."
    ),
):
    """List one level of the content tree."""

    async def _browse():
        async with open_runtime(show_status=False) as rt:
            node = await rt.find_node(ref_id) if ref_id else None
            nodes = await rt.service.live_load(node)
            states = {n.obj_id: rt.service.favorite_state(n) for n in nodes}
            print_nodes_table(node.title if node else "Desktop", nodes, states)

    asyncio.run(_browse())


@app.command()
def favorite(ref_id: str = typer.Argument(..., help="Node to keep offline.")):
    """Mark a node as favorite and download it with all its children."""

    async def _favorite():
        start_time = time.monotonic()
        async with open_runtime() as rt:
            node = await rt.find_node(ref_id)
            await rt.service.favorite(node)
            results = rt.service.drainer.results
        print_sync_summary(results, time.monotonic() - start_time)

    asyncio.run(_favorite())


@app.command()
def unfavorite(ref_id: str = typer.Argument(..., help="Node to remove.")):
    """Remove a node from the favorites and delete its offline files."""

    async def _unfavorite():
        async with open_runtime(show_status=False) as rt:
            node = await rt.find_node(ref_id)
            await rt.service.unfavorite(node)
            console.print(f"[green]✓ '{node.title}' removed from favorites.[/green]")

    asyncio.run(_unfavorite())


@app.command()
def sync():
    """Download every favorite and its children for offline use."""

    async def _sync():
        start_time = time.monotonic()
        async with open_runtime() as rt:
            if await rt.service.has_unfinished_sync():
                log.warning(
                    "[yellow]⚠ The previous sync did not finish, "
                    "synchronizing everything again.[/yellow]"
                )
            await rt.service.load_all_offline_content()
            results = rt.service.drainer.results
            label = rt.service.last_sync_label
        print_sync_summary(results, time.monotonic() - start_time)
        if label:
            console.print(f"[dim]Last sync: {label}[/dim]")

    asyncio.run(_sync())


@app.command()
def status():
    """Show when the last sync finished and how much space is used."""

    async def _status():
        async with open_runtime(show_status=False) as rt:
            user = await rt.current_user()
            label = await rt.service.update_last_sync()
            unfinished = await rt.service.has_unfinished_sync()
            favorites = await rt.store.find_favorites(user)
            offline = await rt.store.find_offline_available(user)
            used = await rt.disk_usage.total_used_bytes()
            print_status_panel(
                label,
                unfinished,
                used,
                rt.config.settings.quota_bytes,
                len(favorites),
                sum(1 for n in offline if n.is_file),
            )

    asyncio.run(_status())


@app.command()
def vacuum():
    """Optimize the local database."""

    async def _vacuum():
        console.print("[cyan]Optimizing database...[/cyan]")
        await Database(DATABASE_FILE).vacuum()
        console.print("[green]✓ Database optimized.[/green]")

    asyncio.run(_vacuum())
