"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from treesync.models import ContentNode, FavoriteState, SyncConfig, SyncResults
from treesync.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Run `treesync init` to create a configuration file.",
            "• Run `treesync validate` to see which setting is rejected.",
        ],
        "NoUserError": [
            "• Your token may have expired. Run `treesync init --force` again.",
            "• Check that user_id in the configuration matches the token.",
        ],
        "SessionStorageError": [
            "• The local database could not be written.",
            "• Check free disk space and permissions of the config directory.",
        ],
        "ListingError": [
            "• The content service could not be reached or returned bad data.",
            "• Please try again in a few minutes.",
        ],
        "CircuitOpenError": [
            "• Too many requests to the content service failed in a row.",
            "• Check your internet connection and wait a minute.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding the token."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key == "token":
            value = "[hidden]"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: SyncConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Service:", f"[green]{config.base_url}[/green]")
    table.add_row("User:", f"{config.user_name or '-'} ({config.user_id})")
    table.add_row("Quota:", format_size(config.settings.quota_bytes))
    table.add_row("Max File Size:", format_size(config.settings.download_limit_bytes))
    table.add_row("Max Workers:", str(config.max_workers))
    table.add_row("Offline Directory:", f"[dim]{config.offline_dir}[/dim]")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


_FAVORITE_MARKS = {
    FavoriteState.NONE: "",
    FavoriteState.FAVORITE: "[yellow]★[/yellow]",
    FavoriteState.SYNCING: "[cyan]↻[/cyan]",
}


def print_nodes_table(
    title: str, nodes: list[ContentNode], states: dict[str, FavoriteState]
):
    """Displays one level of the content tree."""
    console = Console()
    if not nodes:
        console.print(f"[dim]{title}: no items.[/dim]")
        return

    table = Table(title=title, box=box.SIMPLE)
    table.add_column("Ref", style="dim", no_wrap=True)
    table.add_column("", width=2)
    table.add_column("Title", style="cyan")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Offline", justify="center")
    for node in nodes:
        table.add_row(
            node.ref_id,
            _FAVORITE_MARKS[states.get(node.obj_id, FavoriteState.NONE)],
            node.title,
            node.type.value,
            format_size(node.file_size) if node.is_file else "",
            "[green]✓[/green]" if node.is_offline_available else "",
        )
    console.print(table)


def print_sync_summary(results: list[SyncResults], duration_s: float):
    """Displays the final summary of an offline sync."""
    console = Console()

    totals = {
        "downloaded": 0,
        "already_synced": 0,
        "too_large": 0,
        "quota_exceeded": 0,
        "failed": 0,
    }
    downloaded_bytes = 0
    for result in results:
        for key, value in result.summary().items():
            if key in totals:
                totals[key] += value
        downloaded_bytes += sum(n.file_size for n in result.downloaded)

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Downloaded:", f"[bold green]{totals['downloaded']}[/bold green]"
    )
    stats_table.add_row("○ Up to date:", f"[green]{totals['already_synced']}[/green]")
    if totals["too_large"]:
        stats_table.add_row("⚠ Too large:", f"[yellow]{totals['too_large']}[/yellow]")
    if totals["quota_exceeded"]:
        stats_table.add_row(
            "⚠ Over quota:", f"[yellow]{totals['quota_exceeded']}[/yellow]"
        )
    if totals["failed"]:
        stats_table.add_row("✗ Failed:", f"[bold red]{totals['failed']}[/bold red]")

    stats_table.add_row("", "")
    stats_table.add_row("Total Size:", f"[cyan]{format_size(downloaded_bytes)}[/cyan]")
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    console.print()
    console.print(
        Panel(
            stats_table,
            title="[bold]Offline Sync Complete[/bold]",
            border_style="green" if not totals["failed"] else "yellow",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )


def print_status_panel(
    last_sync_label: Optional[str],
    unfinished: bool,
    used_bytes: int,
    quota_bytes: int,
    favorites: int,
    offline_files: int = 0,
):
    """Displays when the last sync finished and how much space is used."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()

    table.add_row("Last Sync:", last_sync_label or "[dim]never[/dim]")
    if unfinished:
        table.add_row("", "[yellow]⚠ The previous sync did not finish.[/yellow]")
    table.add_row("Favorites:", str(favorites))
    table.add_row("Offline Files:", str(offline_files))
    percent = (used_bytes / quota_bytes * 100) if quota_bytes else 0
    table.add_row(
        "Disk Usage:",
        f"{format_size(used_bytes)} / {format_size(quota_bytes)} ({percent:.0f}%)",
    )
    console.print(Panel(table, title="[bold]Sync Status[/bold]", border_style="cyan"))
