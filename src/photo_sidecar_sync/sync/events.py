"""Per-item outcome events emitted by the sync engines."""

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class Action(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"
    DELETE = "delete"
    COPY = "copy"


class Result(StrEnum):
    DONE = "done"
    DRY_RUN = "dry_run"
    UNCHANGED = "unchanged"
    EXISTS = "exists"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncEvent:
    """Outcome of one item: what was attempted on which path, and how it ended."""

    kind: Action
    path: Path
    result: Result
    message: str = ""

    @property
    def failed(self) -> bool:
        return self.result is Result.FAILED


EventHandler = Callable[[SyncEvent], None]
CancelCheck = Callable[[], bool]


def _ignore(event: SyncEvent) -> None:
    pass


def _never() -> bool:
    return False


@dataclass
class SyncSummary:
    """Counts of outcomes for one pass."""

    counts: Counter = field(default_factory=Counter)
    processed: int = 0
    cancelled: bool = False

    def record(self, event: SyncEvent) -> None:
        self.counts[(event.kind, event.result)] += 1
        self.processed += 1

    def count(self, kind: Action, result: Result | None = None) -> int:
        if result is not None:
            return self.counts[(kind, result)]
        return sum(n for (k, _), n in self.counts.items() if k is kind)

    @property
    def failures(self) -> int:
        return sum(n for (_, r), n in self.counts.items() if r is Result.FAILED)

    @property
    def changes(self) -> int:
        """Files created, updated, deleted or copied (dry-run previews included)."""
        return sum(
            n
            for (k, r), n in self.counts.items()
            if k is not Action.SKIP and r in (Result.DONE, Result.DRY_RUN)
        )

    def as_dict(self) -> dict[str, int]:
        return {f"{k}:{r}": n for (k, r), n in sorted(self.counts.items())}


class EventEmitter:
    """Fans events out to a subscriber while keeping the pass summary."""

    def __init__(
        self, on_event: EventHandler | None = None, should_cancel: CancelCheck | None = None
    ) -> None:
        self.on_event = on_event or _ignore
        self.should_cancel = should_cancel or _never
        self.summary = SyncSummary()

    def emit(self, kind: Action, path: Path, result: Result, message: str = "") -> SyncEvent:
        event = SyncEvent(kind=kind, path=path, result=result, message=message)
        self.summary.record(event)
        self.on_event(event)
        return event

    def cancel_requested(self) -> bool:
        """Checked between items only; marks the summary as cancelled."""
        if self.should_cancel():
            self.summary.cancelled = True
            return True
        return False
