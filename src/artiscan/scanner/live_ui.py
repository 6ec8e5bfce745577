from __future__ import annotations

import time
from collections import Counter, deque
from typing import Deque, Tuple

from .outcomes import OUTCOME_ORDER, _outcome_style
from .rich_support import (
    BarColumn,
    Console,
    Group,
    Live,
    MofNCompleteColumn,
    Panel,
    Progress,
    SpinnerColumn,
    Table,
    Text,
    TimeElapsedColumn,
    TimeRemainingColumn,
    box,
)

# Colours of the rarity column, 1 to 5 stars
_STAR_STYLES = {
    1: "grey62",
    2: "green",
    3: "blue",
    4: "magenta",
    5: "yellow",
}

_MAX_EVENTS = 5


def _stars(star: int) -> Text:
    return Text("★" * max(star, 0) or "?", style=_STAR_STYLES.get(star, "white"))


class _ScanLiveUI:
    """
    Transient rich view of a running scan: where the pointer is in the
    grid, how many artifacts of each rarity went by and what happened to
    them, plus the last few events.
    """

    def __init__(self) -> None:
        if Console is None or Live is None or Progress is None or Table is None:
            raise RuntimeError("Rich is required for the live scan UI.")

        self.console = Console()
        self.phase = "Starting…"
        self.window_label = ""
        self.position = ""
        self.last_label = ""
        self.last_star = 0
        self.last_outcome = ""

        self._stars: Counter = Counter()
        self._outcomes: Counter = Counter()
        self._events: Deque[Tuple[str, Text]] = deque(maxlen=_MAX_EVENTS)

        self.progress = Progress(
            SpinnerColumn(style="cyan"),
            BarColumn(bar_width=None),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            expand=True,
        )
        self._task_id = self.progress.add_task("artifacts", total=None)
        self._live = Live(
            self._render(),
            console=self.console,
            refresh_per_second=8,
            transient=True,
        )

    def start(self) -> None:
        self._live.start()

    def stop(self) -> None:
        self._live.stop()

    def begin(self, total: int, window_label: str) -> None:
        self.window_label = window_label
        self.progress.update(self._task_id, total=total)
        self.refresh()

    def set_phase(self, phase: str) -> None:
        self.phase = phase
        self.refresh()

    def add_event(self, message: str, style: str = "dim") -> None:
        self._events.append((time.strftime("%H:%M:%S"), Text(message, style=style)))
        self.refresh()

    def record_artifact(self, position: str, star: int, outcome: str, label: str) -> None:
        self.progress.advance(self._task_id, 1)
        self._stars[star] += 1
        self._outcomes[outcome] += 1
        self.position = position
        self.last_star = star
        self.last_outcome = outcome
        self.last_label = label
        self.refresh()

    def refresh(self) -> None:
        self._live.update(self._render(), refresh=True)

    def _render_status(self) -> "Table":
        table = Table.grid(padding=(0, 1))
        table.add_column(style="cyan", justify="right", no_wrap=True)
        table.add_column(overflow="fold")
        table.add_row("Phase", self.phase)
        if self.window_label:
            table.add_row("Window", self.window_label)
        if self.position:
            table.add_row("Cell", self.position)
        if self.last_outcome:
            last = _stars(self.last_star)
            if self.last_label:
                last.append(f" {self.last_label}", style="white")
            table.add_row("Last", last)
            table.add_row("", Text(self.last_outcome, style=_outcome_style(self.last_outcome)))
        return table

    def _render_tally(self) -> "Table":
        table = Table(box=box.SIMPLE, show_header=True, header_style="dim", padding=(0, 1))
        table.add_column("Rarity", no_wrap=True)
        table.add_column("n", justify="right")
        table.add_column("Outcome", no_wrap=True)
        table.add_column("n", justify="right")

        rarities = sorted(self._stars, reverse=True)
        outcomes = [o for o in OUTCOME_ORDER if o in self._outcomes]
        for i in range(max(len(rarities), len(outcomes), 1)):
            star_cells = (
                (_stars(rarities[i]), str(self._stars[rarities[i]]))
                if i < len(rarities)
                else ("", "")
            )
            outcome_cells = (
                (Text(outcomes[i], style=_outcome_style(outcomes[i])), str(self._outcomes[outcomes[i]]))
                if i < len(outcomes)
                else ("", "")
            )
            table.add_row(*star_cells, *outcome_cells)
        return table

    def _render_events(self) -> "Table":
        table = Table.grid(padding=(0, 1))
        table.add_column(style="dim", no_wrap=True)
        table.add_column(overflow="fold")
        for stamp, line in self._events:
            table.add_row(stamp, line)
        return table

    def _render(self) -> "Group":
        body = Table.grid(expand=True)
        body.add_column(ratio=3)
        body.add_column(ratio=2)
        body.add_row(self._render_status(), self._render_tally())

        parts = [
            Panel(
                body,
                title="[bold cyan]ArtiScan[/]",
                subtitle="[dim]right click or Esc to stop[/]",
                box=box.ROUNDED,
                padding=(0, 1),
            ),
            self.progress,
        ]
        if self._events:
            parts.append(self._render_events())
        return Group(*parts)
