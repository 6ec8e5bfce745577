from __future__ import annotations

from typing import List, Optional

from .rich_support import Console, Table, Text, box
from .types import ScanResult, ScanStats

_STATUS_STYLES = {
    "finished": "green",
    "stopped": "yellow",
    "interrupted": "red",
}


def _render_scan_overview(stats: ScanStats, console: Optional["Console"]) -> None:
    """
    Display high-level scan metrics (expected, sent, kept, duplicates, time).
    """
    duration_label = f"{stats.processing_seconds:.1f}s"

    if console is None:
        print(
            f"Overview: status={stats.status} expected={stats.items_expected} "
            f"sent={stats.items_sent} kept={stats.results_kept} "
            f"duplicates={stats.duplicates} failures={stats.failures} "
            f"locked={stats.locks_clicked} duration={duration_label}"
        )
        if stats.stop_reason:
            print(f"Stopped: {stats.stop_reason}")
        return

    table = Table(
        title="Scan Overview",
        box=box.SIMPLE,
        show_header=False,
        show_lines=False,
        padding=(0, 1),
    )
    table.add_column("Metric", justify="left", style="cyan", no_wrap=True)
    table.add_column("Value", justify="left", style="white")
    table.add_row("Status", Text(stats.status, style=_STATUS_STYLES.get(stats.status, "white")))
    if stats.stop_reason:
        table.add_row("Stop reason", stats.stop_reason)
    table.add_row("Artifacts expected", str(stats.items_expected))
    table.add_row("Artifacts captured", str(stats.items_sent))
    table.add_row("Artifacts kept", str(stats.results_kept))
    table.add_row("Duplicates", str(stats.duplicates))
    table.add_row("Unreadable", str(stats.failures))
    if stats.locks_clicked:
        table.add_row("Locked", str(stats.locks_clicked))
    table.add_row("Processing time", duration_label)
    console.print(table)


def _render_results(results: List[ScanResult], stats: ScanStats) -> None:
    console = (
        Console()
        if Console is not None
        and Table is not None
        and Text is not None
        and box is not None
        else None
    )

    _render_scan_overview(stats, console)

    if not results:
        if console is None:
            print("No results to display.")
        else:
            console.print()
            console.print("No results to display.")
        return

    if console is None:
        for idx, result in enumerate(results):
            lock = " locked" if result.lock else ""
            print(
                f"{idx:04d} | {result.name} +{result.level} {result.star}* | "
                f"{result.main_stat_name} {result.main_stat_value} | "
                f"{' / '.join(result.sub_stat)} | {result.equip}{lock}"
            )
        return

    console.print()
    table = Table(
        title="Artifact Scan Results",
        box=box.SIMPLE_HEAVY,
        show_header=True,
        header_style="bold",
        show_lines=False,
        pad_edge=False,
    )
    table.add_column("Idx", justify="right", style="cyan", width=4, no_wrap=True)
    table.add_column("Name", justify="left", style="white", overflow="fold")
    table.add_column("★", justify="center", style="yellow", no_wrap=True)
    table.add_column("Lv", justify="right", style="cyan", no_wrap=True)
    table.add_column("Main stat", justify="left", style="white", overflow="fold")
    table.add_column("Sub stats", justify="left", style="dim", overflow="fold")
    table.add_column("Equip", justify="left", style="dim", overflow="fold")
    table.add_column("Lock", justify="center", no_wrap=True)

    for idx, result in enumerate(results):
        table.add_row(
            f"{idx:04d}",
            result.name,
            str(result.star),
            f"+{result.level}",
            f"{result.main_stat_name} {result.main_stat_value}",
            "\n".join(s for s in result.sub_stat if s),
            result.equip,
            Text("yes", style="magenta") if result.lock else Text("-", style="dim"),
        )

    console.print(table)
