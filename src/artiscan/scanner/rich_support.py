from __future__ import annotations

try:
    from rich import box
    from rich.console import Console, Group
    from rich.live import Live
    from rich.panel import Panel
    from rich.progress import (
        BarColumn,
        MofNCompleteColumn,
        Progress,
        SpinnerColumn,
        TimeElapsedColumn,
        TimeRemainingColumn,
    )
    from rich.table import Table
    from rich.text import Text
except ImportError:  # pragma: no cover - optional dependency
    box = None
    Console = None
    Group = None
    Live = None
    Panel = None
    BarColumn = None
    MofNCompleteColumn = None
    Progress = None
    SpinnerColumn = None
    TimeElapsedColumn = None
    TimeRemainingColumn = None
    Table = None
    Text = None
