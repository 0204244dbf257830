"""Replicate newly created images (and their sidecars) into an inbox folder."""

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from itertools import batched
from pathlib import Path

from photo_sidecar_sync.files import file_created_at, is_image, iter_files
from photo_sidecar_sync.models import sidecar_path_for
from photo_sidecar_sync.sync.events import (
    Action,
    CancelCheck,
    EventEmitter,
    EventHandler,
    Result,
    SyncSummary,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


@dataclass(frozen=True)
class InboxResult:
    """Summary of a copy pass plus the cursor to persist (None: keep the old one)."""

    summary: SyncSummary
    next_cursor: datetime | None


class InboxCopyEngine:
    """Copy images created after a cutoff into a flat destination folder.

    Existing destination files are never overwritten; names already present
    are skipped without comparing content.
    """

    def __init__(
        self,
        source_root: Path,
        destination: Path,
        image_extensions: frozenset[str],
        batch_size: int = DEFAULT_BATCH_SIZE,
        dry_run: bool = False,
        on_event: EventHandler | None = None,
        should_cancel: CancelCheck | None = None,
        created_at: Callable[[Path], datetime] = file_created_at,
        on_batch: Callable[[int], None] | None = None,
    ) -> None:
        self.source_root = source_root
        self.destination = destination
        self.image_extensions = image_extensions
        self.batch_size = batch_size
        self.dry_run = dry_run
        self.on_event = on_event
        self.should_cancel = should_cancel
        self.created_at = created_at
        self.on_batch = on_batch
        self.unreadable: list[Path] = []
        self.selected_at: datetime | None = None

    def select(self, cutoff: datetime | None) -> list[Path]:
        """Images whose creation time is strictly after ``cutoff`` (all when None).

        Images whose creation time cannot be read are kept in ``unreadable``;
        the next :meth:`run` reports them as failures.
        """
        if not self.source_root.is_dir():
            raise FileNotFoundError(f"Source root does not exist: {self.source_root}")
        self.selected_at = datetime.now(UTC)
        selected = []
        self.unreadable = []
        for path in iter_files(self.source_root):
            if not is_image(path, self.image_extensions):
                continue
            try:
                created = self.created_at(path)
            except OSError as exc:
                logger.warning("Cannot stat %s: %s", path, exc)
                self.unreadable.append(path)
                continue
            if cutoff is None or created > cutoff:
                selected.append(path)
        return selected

    def run(self, cutoff: datetime | None, images: list[Path] | None = None) -> InboxResult:
        """Copy the selection; ``next_cursor`` is set only for a clean, complete pass.

        The cursor is the time the selection was made, so files arriving
        during the pass are picked up by the next one.
        """
        if images is None:
            images = self.select(cutoff)
        started_at = self.selected_at or datetime.now(UTC)
        if not self.dry_run:
            self.destination.mkdir(parents=True, exist_ok=True)

        emitter = EventEmitter(self.on_event, self.should_cancel)
        for path in self.unreadable:
            emitter.emit(Action.COPY, path, Result.FAILED, "creation time unreadable")
        for number, batch in enumerate(batched(images, self.batch_size), 1):
            for image in batch:
                if emitter.cancel_requested():
                    return InboxResult(emitter.summary, None)
                self._copy(image, emitter)
                sidecar = sidecar_path_for(image)
                if sidecar.exists():
                    self._copy(sidecar, emitter)
            if self.on_batch is not None:
                self.on_batch(number)

        summary = emitter.summary
        clean = not summary.failures and not self.dry_run
        return InboxResult(summary, started_at if clean else None)

    def _copy(self, source: Path, emitter: EventEmitter) -> None:
        target = self.destination / source.name
        if target.exists():
            emitter.emit(Action.SKIP, target, Result.EXISTS)
            return
        if self.dry_run:
            emitter.emit(Action.COPY, target, Result.DRY_RUN)
            return
        try:
            shutil.copy2(source, target)
        except OSError as exc:
            emitter.emit(Action.COPY, source, Result.FAILED, str(exc))
            return
        emitter.emit(Action.COPY, target, Result.DONE)
