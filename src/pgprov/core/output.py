"""Console reporting for pgprov runs.

All user-facing text goes through the module-level ``console``: action
steps, skips of already-converged objects, dry-run previews, warnings
and errors. Warnings and errors go to stderr so that the output of the
``exists``/``status`` commands stays clean.
"""

from enum import IntEnum
from typing import Any, Iterable

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table


class Verbosity(IntEnum):
    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3


class Console:
    """Rich-backed reporter filtered by verbosity."""

    def __init__(self) -> None:
        self.verbosity = Verbosity.NORMAL
        self.dry_run = False
        self._out = RichConsole(highlight=False)
        self._err = RichConsole(stderr=True, highlight=False)

    def configure(self, verbosity: int = 1, dry_run: bool = False, no_color: bool = False) -> None:
        self.verbosity = Verbosity(min(verbosity, Verbosity.DEBUG))
        self.dry_run = dry_run
        self._out = RichConsole(highlight=False, no_color=no_color)
        self._err = RichConsole(stderr=True, highlight=False, no_color=no_color)

    def _emit(self, tag: str, message: str, *, level: Verbosity = Verbosity.NORMAL) -> None:
        if self.verbosity >= level:
            self._out.print(f"{tag} {message}")

    def info(self, message: str) -> None:
        self._emit("[green][INFO][/green]", message)

    def success(self, message: str) -> None:
        self._emit("[green][OK][/green]", message)

    def skip(self, message: str) -> None:
        """Report an object that is already in the wanted state."""
        self._emit("[dim][SKIP][/dim]", message)

    def step(self, message: str) -> None:
        self._emit("[blue]->[/blue]", message)

    def debug(self, message: str) -> None:
        self._emit("[cyan][DEBUG][/cyan]", message, level=Verbosity.DEBUG)

    def dry_run_msg(self, message: str) -> None:
        """Show what a dry run would have done."""
        if self.dry_run:
            self._out.print(f"[blue][DRY-RUN][/blue] Would: {message}")

    def hint(self, message: str) -> None:
        self._out.print(f"[cyan]Hint:[/cyan] {message}")

    def warn(self, message: str) -> None:
        self._err.print(f"[yellow][WARN][/yellow] {message}")

    def error(self, message: str) -> None:
        self._err.print(f"[red][ERROR][/red] {message}")

    def print(self, message: Any = "", **kwargs: Any) -> None:
        self._out.print(message, **kwargs)

    def table(self, title: str, columns: list[str], rows: Iterable[list[str]]) -> None:
        """Print rows such as apply results or platform paths."""
        table = Table(title=title)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*row)
        self._out.print(table)

    def yaml(self, text: str, title: str = "Configuration") -> None:
        self._out.print(Panel(Syntax(text, "yaml", theme="monokai"), title=title, border_style="cyan"))

    def summary(self, title: str, items: dict[str, Any]) -> None:
        """Print settings or secret status as ``key: value`` lines in a panel."""
        lines = []
        for key, value in items.items():
            if isinstance(value, bool):
                value = "[green]Yes[/green]" if value else "[red]No[/red]"
            lines.append(f"[bold]{key}:[/bold] {value}")
        self._out.print(Panel("\n".join(lines), title=title, border_style="blue"))

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question before a destructive action.

        An interrupted or closed prompt counts as "no".
        """
        suffix = r"\[Y/n]" if default else r"\[y/N]"
        try:
            answer = self._out.input(f"{message} {suffix}: ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            return False
        if not answer:
            return default
        return answer in ("y", "yes")


console = Console()
