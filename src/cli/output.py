"""Terminal output handling using Rich library.

This module provides the OutputHandler class used by the operator commands
(setup, renew-token, validate). The serve command never writes to stdout,
which belongs to the MCP transport.
"""

from contextlib import contextmanager
from typing import Iterator, List, Tuple

from rich.console import Console
from rich.table import Table


class OutputHandler:
    """Handles terminal output for the operator commands.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Configuration saved")
        >>> with handler.spinner("Validating..."):
        ...     pass
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        self.verbosity = verbosity
        self.console = Console(
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        """Display success message in green."""
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        """Display error message in red."""
        self.console.print(f"[red]✗[/red] {message}", style="red")

    def warning(self, message: str) -> None:
        """Display warning message in yellow."""
        self.console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(message)

    def details(self, title: str, rows: List[Tuple[str, str]]) -> None:
        """Show a two-column table of settings (only if verbosity >= 1)."""
        if self.verbosity < 1:
            return
        table = Table(title=title, show_header=False, box=None)
        table.add_column("Setting", style="bold")
        table.add_column("Value")
        for name, value in rows:
            table.add_row(name, value)
        self.console.print(table)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Show a spinner while a network call runs."""
        with self.console.status(message, spinner="dots"):
            yield
