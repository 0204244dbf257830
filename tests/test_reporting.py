"""Tests for sync events, summaries and console reporting."""

import signal
from pathlib import Path

import pytest
from rich.console import Console

from photo_sidecar_sync.sync.events import Action, EventEmitter, Result, SyncEvent, SyncSummary
from photo_sidecar_sync.sync.reporting import (
    CancelFlag,
    EventPrinter,
    format_event,
    make_progress,
    summary_table,
)


def test_emitter_records_and_forwards():
    received = []
    emitter = EventEmitter(received.append)
    event = emitter.emit(Action.CREATE, Path("a.xmp"), Result.DONE)
    assert received == [event]
    assert emitter.summary.processed == 1
    assert emitter.summary.count(Action.CREATE) == 1


def test_emitter_cancel_marks_summary():
    emitter = EventEmitter(should_cancel=lambda: True)
    assert emitter.cancel_requested() is True
    assert emitter.summary.cancelled is True


def test_emitter_without_subscribers():
    emitter = EventEmitter()
    emitter.emit(Action.SKIP, Path("a.xmp"), Result.UNCHANGED)
    assert emitter.cancel_requested() is False


def test_summary_counts():
    summary = SyncSummary()
    for kind, result in [
        (Action.CREATE, Result.DONE),
        (Action.UPDATE, Result.FAILED),
        (Action.DELETE, Result.DRY_RUN),
        (Action.SKIP, Result.UNCHANGED),
        (Action.SKIP, Result.CONFLICT),
    ]:
        summary.record(SyncEvent(kind, Path("x"), result))

    assert summary.processed == 5
    assert summary.failures == 1
    assert summary.changes == 2
    assert summary.count(Action.SKIP) == 2
    assert summary.count(Action.SKIP, Result.CONFLICT) == 1
    assert summary.as_dict()["create:done"] == 1


def test_event_failed_flag():
    assert SyncEvent(Action.COPY, Path("x"), Result.FAILED).failed
    assert not SyncEvent(Action.COPY, Path("x"), Result.DONE).failed


def test_format_event_includes_message():
    line = format_event(SyncEvent(Action.UPDATE, Path("a/IMG.JPG.xmp"), Result.FAILED, "boom"))
    assert "update" in line
    assert "failed" in line
    assert "a/IMG.JPG.xmp" in line
    assert "boom" in line


def make_printer(verbose):
    progress = make_progress(Console(record=True, width=200))
    task = progress.add_task("test", total=2)
    return progress, task, EventPrinter(progress, task, verbose=verbose)


@pytest.mark.parametrize("verbose,printed", [(False, False), (True, True)])
def test_printer_hides_unchanged_unless_verbose(verbose, printed):
    progress, task, printer = make_printer(verbose)
    printer(SyncEvent(Action.SKIP, Path("quiet.xmp"), Result.UNCHANGED))
    printer(SyncEvent(Action.CREATE, Path("loud.xmp"), Result.DONE))

    output = progress.console.export_text()
    assert "loud.xmp" in output
    assert ("quiet.xmp" in output) is printed
    assert progress.tasks[0].completed == 2


def test_summary_table_rows():
    summary = SyncSummary(cancelled=True)
    summary.record(SyncEvent(Action.CREATE, Path("x"), Result.DONE))
    table = summary_table("Sync", summary)
    assert table.row_count == 2
    assert table.caption == "Cancelled before completion"


def test_cancel_flag_first_interrupt_requests_cancellation():
    with CancelFlag() as cancel:
        assert cancel() is False
        handler = signal.getsignal(signal.SIGINT)
        handler(signal.SIGINT, None)
        assert cancel() is True
        with pytest.raises(KeyboardInterrupt):
            handler(signal.SIGINT, None)
    assert signal.getsignal(signal.SIGINT) is not handler
