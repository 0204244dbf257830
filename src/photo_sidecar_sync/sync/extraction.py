"""Catalog-driven sidecar generation: checksum -> asset -> regions -> XMP."""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from photo_sidecar_sync.catalog.client import AssetNotFoundError, CatalogError
from photo_sidecar_sync.catalog.extractor import MetadataExtractor
from photo_sidecar_sync.catalog.resolver import ChecksumResolver
from photo_sidecar_sync.files import file_created_at, is_image, iter_files
from photo_sidecar_sync.models import SidecarDocument, sidecar_path_for
from photo_sidecar_sync.sidecar.orientation import read_local_orientation, transform_faces
from photo_sidecar_sync.sidecar.renderer import SidecarRenderer, write_sidecar
from photo_sidecar_sync.sync.events import (
    Action,
    CancelCheck,
    EventEmitter,
    EventHandler,
    Result,
    SyncSummary,
)

logger = logging.getLogger(__name__)


class CatalogSidecarBuilder:
    """Build the sidecar of a local image from its catalog record."""

    def __init__(
        self,
        resolver: ChecksumResolver,
        extractor: MetadataExtractor,
        renderer: SidecarRenderer | None = None,
        created_at: Callable[[Path], datetime] = file_created_at,
    ) -> None:
        self.resolver = resolver
        self.extractor = extractor
        self.renderer = renderer or SidecarRenderer()
        self.created_at = created_at

    def build(self, image: Path) -> SidecarDocument:
        """Resolve, extract, transform and render.

        Raises:
            AssetNotFoundError: the checksum is unknown to the catalog.
            CatalogError: transport failure.
            OSError: the image cannot be read.
        """
        asset_id = self.resolver.resolve(image)
        if asset_id is None:
            raise AssetNotFoundError(f"No catalog asset matches {image.name}")
        asset = self.extractor.extract(asset_id)

        orientation = asset.orientation
        if orientation is None:
            orientation = read_local_orientation(image)
        regions = transform_faces(asset, orientation)

        content = self.renderer.render(
            asset,
            regions,
            title=image.name,
            fallback_created_at=self.created_at(image),
            orientation=orientation,
        )
        return SidecarDocument(image_path=image, content=content)


class ExtractionEngine:
    """Write one sidecar per image that resolves to a catalog asset."""

    def __init__(
        self,
        builder: CatalogSidecarBuilder,
        image_extensions: frozenset[str],
        dry_run: bool = False,
        overwrite: bool = False,
        on_event: EventHandler | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> None:
        self.builder = builder
        self.image_extensions = image_extensions
        self.dry_run = dry_run
        self.overwrite = overwrite
        self.on_event = on_event
        self.should_cancel = should_cancel

    def collect(self, root: Path) -> list[Path]:
        if not root.is_dir():
            raise FileNotFoundError(f"Source root does not exist: {root}")
        return [p for p in iter_files(root) if is_image(p, self.image_extensions)]

    def run(self, root: Path, images: list[Path] | None = None) -> SyncSummary:
        """Process every image below ``root`` (or the pre-collected ``images``)."""
        if images is None:
            images = self.collect(root)
        emitter = EventEmitter(self.on_event, self.should_cancel)
        for image in images:
            if emitter.cancel_requested():
                break
            self._process(image, emitter)
        return emitter.summary

    def _process(self, image: Path, emitter: EventEmitter) -> None:
        sidecar = sidecar_path_for(image)
        existed = sidecar.exists()
        if existed and not self.overwrite:
            emitter.emit(Action.SKIP, image, Result.UNCHANGED, "sidecar exists")
            return
        kind = Action.UPDATE if existed else Action.CREATE

        try:
            document = self.builder.build(image)
            written = write_sidecar(document.content, sidecar, dry_run=self.dry_run)
        except AssetNotFoundError:
            emitter.emit(kind, image, Result.NOT_FOUND, "not found in catalog")
            return
        except (CatalogError, OSError) as exc:
            logger.debug("Extraction failed for %s", image, exc_info=True)
            emitter.emit(kind, image, Result.FAILED, str(exc))
            return

        emitter.emit(kind, sidecar, Result.DONE if written else Result.DRY_RUN)
