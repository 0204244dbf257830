"""Timestamp-driven differential sync of sidecars against source annotations."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from photo_sidecar_sync.catalog.client import AssetNotFoundError, CatalogError
from photo_sidecar_sync.files import (
    base_path,
    is_image,
    is_sidecar,
    is_source_annotation,
    iter_files,
    replace_into_place,
    temp_path_for,
)
from photo_sidecar_sync.models import SyncPairing
from photo_sidecar_sync.sidecar.stripper import TagStripError, TagStripper
from photo_sidecar_sync.sync.events import (
    Action,
    CancelCheck,
    EventEmitter,
    EventHandler,
    Result,
    SyncSummary,
)
from photo_sidecar_sync.sync.extraction import CatalogSidecarBuilder

logger = logging.getLogger(__name__)


class SidecarProducer(Protocol):
    """Write the complete sidecar content for a pairing to ``destination``."""

    def produce(self, pairing: SyncPairing, destination: Path) -> None: ...


class StrippedAnnotationProducer:
    """Sidecar = source annotation minus desktop-tool specific tags."""

    def __init__(self, stripper: TagStripper) -> None:
        self.stripper = stripper

    def produce(self, pairing: SyncPairing, destination: Path) -> None:
        self.stripper.strip_and_copy(pairing.annotation, destination)


class CatalogRenderProducer:
    """Sidecar = catalog metadata of the image, rendered from scratch."""

    def __init__(self, builder: CatalogSidecarBuilder) -> None:
        self.builder = builder

    def produce(self, pairing: SyncPairing, destination: Path) -> None:
        document = self.builder.build(pairing.image)
        destination.write_text(document.content, encoding="utf-8")


@dataclass
class TreeScan:
    """Result of walking the tree once: pairings and existing sidecars by base path."""

    pairings: dict[Path, SyncPairing] = field(default_factory=dict)
    sidecars: dict[Path, Path] = field(default_factory=dict)  # sidecar -> base path

    @property
    def matched(self) -> list[SyncPairing]:
        return [p for p in self.pairings.values() if p.matched]

    @property
    def conflicts(self) -> list[SyncPairing]:
        return [p for p in self.pairings.values() if p.conflicts]

    def orphans(self) -> list[Path]:
        """Sidecars that no matched pairing expects.

        Sidecars sharing a base path with a conflicting pairing are kept.
        """
        expected = {p.sidecar for p in self.matched}
        protected = {p.base_path for p in self.conflicts}
        return [
            sidecar
            for sidecar, base in self.sidecars.items()
            if sidecar not in expected and base not in protected
        ]


class DifferentialSyncEngine:
    """Create, update, skip or delete sidecars so they mirror the source annotations.

    A pairing is an image and a ``<stem>.xmp`` source annotation in the same
    directory. Its sidecar ``<image name>.xmp`` is (re)produced when missing or
    when the annotation is strictly newer; sidecars without a matched pairing
    are deleted once all pairings were processed.
    """

    def __init__(
        self,
        root: Path,
        producer: SidecarProducer,
        image_extensions: frozenset[str],
        dry_run: bool = False,
        on_event: EventHandler | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> None:
        self.root = root
        self.producer = producer
        self.image_extensions = image_extensions
        self.dry_run = dry_run
        self.on_event = on_event
        self.should_cancel = should_cancel

    def scan(self) -> TreeScan:
        """Walk the tree once and build the pairing table."""
        if not self.root.is_dir():
            raise FileNotFoundError(f"Source root does not exist: {self.root}")

        scan = TreeScan()
        for path in iter_files(self.root):
            if is_sidecar(path, self.image_extensions):
                scan.sidecars[path] = base_path(path, self.image_extensions)
                continue
            if is_source_annotation(path, self.image_extensions):
                slot = "annotation"
            elif is_image(path, self.image_extensions):
                slot = "image"
            else:
                continue

            base = base_path(path, self.image_extensions)
            pairing = scan.pairings.setdefault(base, SyncPairing(base_path=base))
            if getattr(pairing, slot) is None:
                setattr(pairing, slot, path)
            else:
                logger.warning("%s shares its base path with %s", path, getattr(pairing, slot))
                pairing.conflicts.append(path)
        return scan

    def classify(self, pairing: SyncPairing) -> Action:
        """Create, Update or Skip for a matched pairing.

        Only a strictly newer annotation triggers an update; equal
        modification times are a Skip.
        """
        sidecar = pairing.sidecar
        if not sidecar.exists():
            return Action.CREATE
        if pairing.annotation.stat().st_mtime_ns > sidecar.stat().st_mtime_ns:
            return Action.UPDATE
        return Action.SKIP

    def run(self, scan: TreeScan | None = None) -> SyncSummary:
        if scan is None:
            scan = self.scan()
        emitter = EventEmitter(self.on_event, self.should_cancel)

        for pairing in scan.conflicts:
            emitter.emit(
                Action.SKIP,
                pairing.base_path,
                Result.CONFLICT,
                f"{len(pairing.conflicts) + 1} files share this base path",
            )

        for pairing in scan.matched:
            if emitter.cancel_requested():
                return emitter.summary
            self._process(pairing, emitter)

        for orphan in scan.orphans():
            if emitter.cancel_requested():
                return emitter.summary
            self._delete(orphan, emitter)
        return emitter.summary

    def _process(self, pairing: SyncPairing, emitter: EventEmitter) -> None:
        sidecar = pairing.sidecar
        try:
            action = self.classify(pairing)
        except OSError as exc:
            emitter.emit(Action.UPDATE, sidecar, Result.FAILED, str(exc))
            return
        if action is Action.SKIP:
            emitter.emit(Action.SKIP, sidecar, Result.UNCHANGED)
            return

        temp = temp_path_for(sidecar)
        try:
            self.producer.produce(pairing, temp)
            if not self.dry_run:
                replace_into_place(temp, sidecar)
        except AssetNotFoundError:
            emitter.emit(action, pairing.image, Result.NOT_FOUND, "not found in catalog")
            return
        except (TagStripError, CatalogError, OSError) as exc:
            logger.debug("Producing %s failed", sidecar, exc_info=True)
            emitter.emit(action, sidecar, Result.FAILED, str(exc))
            return
        finally:
            temp.unlink(missing_ok=True)

        emitter.emit(action, sidecar, Result.DRY_RUN if self.dry_run else Result.DONE)

    def _delete(self, sidecar: Path, emitter: EventEmitter) -> None:
        if self.dry_run:
            emitter.emit(Action.DELETE, sidecar, Result.DRY_RUN, "orphaned sidecar")
            return
        try:
            sidecar.unlink()
        except FileNotFoundError:
            emitter.emit(Action.DELETE, sidecar, Result.UNCHANGED, "already gone")
            return
        except OSError as exc:
            emitter.emit(Action.DELETE, sidecar, Result.FAILED, str(exc))
            return
        emitter.emit(Action.DELETE, sidecar, Result.DONE, "orphaned sidecar")
