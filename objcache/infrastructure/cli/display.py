import json
import logging
from typing import Any, Optional

from rich.box import HEAVY, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from objcache.domain.interfaces.user_interface import UserInterface
from objcache.domain.models.common import CacheStats

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None, error_console: Optional[Console] = None):
        """Initializes the rich consoles (values on stdout, diagnostics on stderr)."""
        self.console = console or Console()
        self.error_console = error_console or Console(stderr=True)

    def display_value(self, value: Any, **kwargs: Any) -> None:
        """Prints strings as-is, other values as JSON when possible, otherwise as their repr."""
        if isinstance(value, str):
            self.console.print(value, markup=False, highlight=False, soft_wrap=True)
            return
        try:
            text = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            self.console.print(repr(value), markup=False, highlight=False, soft_wrap=True)
            return
        self.console.print_json(text)

    def display_stats(self, stats: CacheStats, **kwargs: Any) -> None:
        """Renders hit/miss counters and per-group usage."""
        summary = Table(box=SIMPLE, show_header=False)
        summary.add_column("Metric", style="bold")
        summary.add_column("Value", justify="right")
        summary.add_row("Cache hits", str(stats.hits))
        summary.add_row("Cache misses", str(stats.misses))
        summary.add_row("Entries on disk", str(stats.disk_entries))
        summary.add_row("Bytes on disk", str(stats.disk_bytes))
        summary.add_row("Persistent store", "yes" if stats.persistent else "no (memory only)")
        self.console.print(summary)

        if stats.groups:
            groups = Table(title="In-memory groups", box=SIMPLE)
            groups.add_column("Group")
            groups.add_column("Entries", justify="right")
            groups.add_column("Bytes", justify="right")
            for name in sorted(stats.groups):
                group = stats.groups[name]
                groups.add_row(name, str(group.entries), str(group.size_bytes))
            self.console.print(groups)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.error_console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        self.console.print(f"[blue]Info:[/blue] {info_message}")

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        self.error_console.print(f"[bold yellow]Warning:[/bold yellow] {warning_message}")
