"""One-shot terminal view of a scrape using Rich."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.table import Table

from klipper_exporter.metrics import Snapshot

log = logging.getLogger(__name__)


def _format_labels(labels) -> str:
    return ", ".join(f'{k}="{v}"' for k, v in labels)


def _format_value(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return f"{value:.4f}".rstrip("0")


def build_table(snapshot: Snapshot) -> Table:
    table = Table(
        title=f"{snapshot.target}  ({', '.join(snapshot.modules) or 'no modules'})",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Metric", style="cyan")
    table.add_column("Labels", style="dim")
    table.add_column("Value", justify="right")

    for sample in snapshot.samples:
        table.add_row(sample.name, _format_labels(sample.labels), _format_value(sample.value))
    return table


def print_snapshot(snapshot: Snapshot, console: Optional[Console] = None):
    console = console or Console()

    if snapshot.samples:
        console.print(build_table(snapshot))
    else:
        console.print(f"\n[bold yellow]No metrics collected from {snapshot.target}.[/bold yellow]")

    for module in snapshot.failed_modules:
        console.print(f"  [red]FAILED[/red]  {module} [dim](see log for details)[/dim]")
    console.print()
