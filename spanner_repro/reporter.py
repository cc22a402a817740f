from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from spanner_repro.demo import DemoResult
from spanner_repro.domain.models import Machine


def machine_table(machine: Machine) -> Table:
    """Render one machine row as a two-column field/value table."""
    table = Table(title=f"Machine {machine.id}", box=box.ROUNDED)
    table.add_column("Column", style="cyan", no_wrap=True)
    table.add_column("Value", style="magenta")
    for column, value in zip(machine.columns(), machine.values()):
        table.add_row(column, "NULL" if value is None else str(value))
    return table


def print_result(result: DemoResult, console: Optional[Console] = None) -> None:
    """
    Print the read-back row (when there is one) followed by `ok` or `!ok: <error>`.
    """
    console = console or Console()

    if result.machine is not None:
        console.print(machine_table(result.machine))

    if result.ok:
        console.print(f"[green]ok[/green] [dim]({result.updated_rows} row(s) updated)[/dim]")
    else:
        console.print(
            f"[red]!ok:[/red] {escape(str(result.error))} [dim](stage: {result.stage})[/dim]"
        )


__all__ = ["machine_table", "print_result"]
