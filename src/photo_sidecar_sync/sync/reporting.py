"""Console rendering of sync events and cooperative cancellation."""

import signal
from types import FrameType

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table

from photo_sidecar_sync.sync.events import Result, SyncEvent, SyncSummary

RESULT_STYLES = {
    Result.DONE: "green",
    Result.DRY_RUN: "cyan",
    Result.NOT_FOUND: "yellow",
    Result.CONFLICT: "yellow",
    Result.FAILED: "bold red",
}


def make_progress(console: Console | None = None) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
    )


def format_event(event: SyncEvent) -> str:
    style = RESULT_STYLES.get(event.result, "dim")
    line = f"[{style}]{event.kind:<6} {event.result:<9}[/{style}] {event.path}"
    if event.message:
        line += f"  [dim]({event.message})[/dim]"
    return line


class EventPrinter:
    """Event subscriber: advances a progress task and logs notable outcomes.

    Skips and already-present files are only printed when ``verbose``.
    """

    def __init__(self, progress: Progress, task: TaskID, verbose: bool = False) -> None:
        self.progress = progress
        self.task = task
        self.verbose = verbose

    def __call__(self, event: SyncEvent) -> None:
        quiet = event.result in (Result.UNCHANGED, Result.EXISTS)
        if self.verbose or not quiet:
            self.progress.console.print(format_event(event), highlight=False)
        self.progress.advance(self.task)


def summary_table(title: str, summary: SyncSummary) -> Table:
    table = Table(title=title)
    table.add_column("Action")
    table.add_column("Result")
    table.add_column("Count", justify="right")
    for (kind, result), count in sorted(summary.counts.items()):
        table.add_row(str(kind), str(result), str(count))
    table.add_row("total", "", str(summary.processed), style="bold")
    if summary.cancelled:
        table.caption = "Cancelled before completion"
    return table


class CancelFlag:
    """Turns the first Ctrl+C into a cancellation request honored between items.

    A second Ctrl+C raises KeyboardInterrupt as usual.
    """

    def __init__(self) -> None:
        self.requested = False
        self._previous = None

    def __call__(self) -> bool:
        return self.requested

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        if self.requested:
            raise KeyboardInterrupt
        self.requested = True
        Console(stderr=True).print(
            "[yellow]Cancellation requested, finishing the current item...[/yellow]"
        )

    def __enter__(self) -> "CancelFlag":
        self._previous = signal.signal(signal.SIGINT, self._handle)
        return self

    def __exit__(self, *exc_info: object) -> None:
        signal.signal(signal.SIGINT, self._previous)
