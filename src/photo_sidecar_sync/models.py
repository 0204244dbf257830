"""Data models for catalog assets, face regions and sync pairings."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class FaceAnnotation:
    """A named face box in source-pixel coordinates."""

    name: str
    x1: float
    y1: float
    x2: float
    y2: float
    image_width: int | None  # pixel size the box was produced against
    image_height: int | None


@dataclass(frozen=True)
class AssetRecord:
    """A remote catalog entry, as far as sidecar rendering needs it."""

    id: str
    checksum: str | None
    captured_at: datetime | None
    latitude: float | None
    longitude: float | None
    make: str | None
    model: str | None
    width: int | None
    height: int | None
    orientation: int | None
    is_favorite: bool
    description: str | None = None
    original_file_name: str | None = None
    faces: tuple[FaceAnnotation, ...] = ()


@dataclass(frozen=True)
class NormalizedFaceRegion:
    """A face box in unit-square, display-orientation coordinates.

    ``x`` and ``y`` denote the box center.
    """

    name: str
    x: float
    y: float
    w: float
    h: float


@dataclass(frozen=True)
class SidecarDocument:
    """Rendered sidecar content for one image."""

    image_path: Path
    content: str

    @property
    def path(self) -> Path:
        return sidecar_path_for(self.image_path)


@dataclass
class SyncPairing:
    """An image and its candidate source annotation sharing a base path."""

    base_path: Path  # directory / filename stem
    image: Path | None = None
    annotation: Path | None = None
    conflicts: list[Path] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.image is not None and self.annotation is not None and not self.conflicts

    @property
    def sidecar(self) -> Path | None:
        """Expected sidecar path, or None when there is no image."""
        if self.image is None:
            return None
        return sidecar_path_for(self.image)


@dataclass(frozen=True)
class ExternalLibrary:
    """An external library registered on the catalog server."""

    id: str
    name: str
    import_paths: tuple[str, ...]


@dataclass
class SyncRun:
    """A persisted record of one engine pass."""

    id: int | None
    kind: str
    root: str
    started_at: datetime
    finished_at: datetime | None
    dry_run: bool
    cancelled: bool
    counts: dict[str, int]


def sidecar_path_for(image_path: Path) -> Path:
    """Return ``<image name>.xmp`` beside the image (extension kept)."""
    return image_path.with_name(f"{image_path.name}.xmp")
