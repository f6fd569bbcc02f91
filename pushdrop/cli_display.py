"""Console rendering, prompts and sinks for the pushdrop CLI."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from .models import HistoryEntry, NotificationMessage

logger = logging.getLogger(__name__)

console = Console()


def render_configuration_summary(config: Dict[str, Any], out: Optional[Console] = None) -> None:
    """Render startup configuration summary."""
    target = out or console
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]pushdrop[/bold green]",
        subtitle="[dim]upload agent[/dim]",
        border_style="blue",
    )
    target.print(panel)


def render_history(entries: List[HistoryEntry], out: Optional[Console] = None) -> None:
    target = out or console
    if not entries:
        target.print("[dim]No uploads yet.[/dim]")
        return

    table = Table(title="Recent uploads")
    table.add_column("When", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("URL", style="cyan")
    for entry in entries:
        table.add_row(entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"), entry.name, entry.url)
    target.print(table)


class ConsoleNotificationSink:
    """Prints notifications to the terminal. Implements INotificationSink."""

    def __init__(self, out: Optional[Console] = None, enabled: bool = True):
        self._console = out or console
        self._enabled = enabled

    def post(self, message: NotificationMessage) -> None:
        logger.debug("Notification: %s | %s | %s", message.title, message.body, message.url)
        if not self._enabled:
            return
        body = message.body
        if message.url:
            body = f"{body}\n[link={message.url}]{message.url}[/link]"
        self._console.print(Panel(body, title=f"[bold]{message.title}[/bold]", expand=False))


class ConsoleActivityIndicator:
    """Shows a status line while uploads are running. Implements IActivityIndicator."""

    def __init__(self, out: Optional[Console] = None):
        self._console = out or console
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def set_busy(self, busy: bool) -> None:
        if busy == self._busy:
            return
        self._busy = busy
        if busy:
            self._console.print("[yellow]Uploading...[/yellow]")
        else:
            self._console.print("[green]Idle[/green]")


class ConsoleConfirmationPrompt:
    """Yes/no gate on the terminal. Implements IConfirmationPrompt."""

    def __init__(self, assume_yes: bool = False, out: Optional[Console] = None):
        self._assume_yes = assume_yes
        self._console = out or console

    def ask_yes_no(self, message: str) -> bool:
        if self._assume_yes:
            return True
        return Confirm.ask(message, console=self._console, default=True)
